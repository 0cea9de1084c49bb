"""Custom exceptions for the core REST category."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class DSpaceError(Exception):
	"""Base class for errors surfaced by core endpoints."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	detail: str = "bad_request"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class NotFoundError(DSpaceError):
	"""Thrown when an identifier does not resolve to a stored object."""

	status_code = status.HTTP_404_NOT_FOUND
	detail = "not_found"


class UnprocessableEntityError(DSpaceError):
	"""Raised when a well-routed request carries an unusable body."""

	status_code = _HTTP_422
	detail = "unprocessable_entity"

	def __init__(self, detail: str | None = None, *, reason: str | None = None) -> None:
		super().__init__(detail)
		self.reason = reason or "invalid"


class StorageError(DSpaceError):
	"""Raised when the database or the assetstore fails mid-request."""

	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	detail = "storage_error"
