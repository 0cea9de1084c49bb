"""Error translation helpers for core API routers."""

from __future__ import annotations

import logging

from fastapi import HTTPException, status

from dspace_api.core.domain import exceptions

LOGGER = logging.getLogger(__name__)


def to_http_error(exc: Exception) -> HTTPException:
	"""Translate domain exceptions to FastAPI HTTP errors."""
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, exceptions.DSpaceError):
		if exc.status_code >= 500:
			LOGGER.error("core_request_failed", exc_info=exc)
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	LOGGER.error("core_request_unhandled", exc_info=exc)
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="internal_error")
