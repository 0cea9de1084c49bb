"""Community logo routes.

POST carries the logo as the multipart field ``file``. Requests on the same
path and method without that field are answered with a fixed 422 instead of
a generic framework error, so dispatch inspects the decoded body before
picking the operation.
"""

from __future__ import annotations

from typing import Awaitable, Callable
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from starlette.datastructures import FormData, UploadFile

from dspace_api.core.api import _convertors  # noqa: F401  registers the dso_id path convertor
from dspace_api.core.api._errors import to_http_error
from dspace_api.core.domain import authorization, models
from dspace_api.core.domain.services import CommunityLogoService
from dspace_api.core.schemas import dto
from dspace_api.infra.auth import AuthenticatedUser
from dspace_api.settings import settings

router = APIRouter(tags=["core:communities"])
_service = CommunityLogoService()

FILE_FIELD = "file"

LogoHandler = Callable[[UUID, FormData], Awaitable[Response]]


async def _to_payload(upload: UploadFile) -> models.UploadPayload:
	# One byte past the limit is enough for the size check to reject it
	data = await upload.read(settings.logo_max_bytes + 1)
	return models.UploadPayload(
		filename=upload.filename or FILE_FIELD,
		content_type=upload.content_type,
		data=data,
	)


async def create_or_replace_logo(community_id: UUID, form: FormData) -> Response:
	upload = form[FILE_FIELD]
	payload = await _to_payload(upload)  # type: ignore[arg-type]
	resource = await _service.create_or_replace_logo(community_id, payload)
	return JSONResponse(
		status_code=status.HTTP_201_CREATED,
		content=jsonable_encoder(resource, by_alias=True),
	)


async def reject_missing_file(community_id: UUID, form: FormData) -> Response:
	return await _service.reject_missing_file(community_id)


def select_logo_handler(form: FormData) -> LogoHandler:
	"""Pick the operation from the decoded body shape."""
	upload = form.get(FILE_FIELD)
	if isinstance(upload, UploadFile) and upload.filename:
		return create_or_replace_logo
	return reject_missing_file


@router.post(
	"/communities/{uuid:dso_id}/logo",
	status_code=status.HTTP_201_CREATED,
	response_model=dto.BitstreamResource,
	responses={422: {"description": "No file was given or the logo is not acceptable"}},
)
async def create_logo_endpoint(
	request: Request,
	uuid: UUID,
	_: AuthenticatedUser = Depends(authorization.require_permission(authorization.COMMUNITY, "WRITE")),
) -> Response:
	try:
		form = await request.form()
		try:
			handler = select_logo_handler(form)
			return await handler(uuid, form)
		finally:
			await form.close()
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get(
	"/communities/{uuid:dso_id}/logo",
	response_model=dto.BitstreamResource,
	responses={204: {"description": "The community has no logo"}},
)
async def get_logo_endpoint(uuid: UUID) -> Response:
	try:
		resource = await _service.get_logo(uuid)
	except Exception as exc:
		raise to_http_error(exc) from exc
	if resource is None:
		return Response(status_code=status.HTTP_204_NO_CONTENT)
	return JSONResponse(content=jsonable_encoder(resource, by_alias=True))
