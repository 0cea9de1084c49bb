"""Core REST category: communities and bitstreams."""

from dspace_api.core.api import router

__all__ = ["router"]
