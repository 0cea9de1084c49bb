"""FastAPI routers for the core REST category."""

from __future__ import annotations

from fastapi import APIRouter

from dspace_api.core.api import bitstreams, logos

router = APIRouter(prefix="/api/core")

router.include_router(logos.router)
router.include_router(bitstreams.router)

__all__ = ["router"]
