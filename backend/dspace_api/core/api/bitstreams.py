"""Bitstream routes backing the links of bitstream resources."""

from __future__ import annotations

from typing import BinaryIO, Iterator
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from dspace_api.core.api import _convertors  # noqa: F401  registers the dso_id path convertor
from dspace_api.core.api._errors import to_http_error
from dspace_api.core.domain.services import BitstreamService
from dspace_api.core.schemas import dto

router = APIRouter(tags=["core:bitstreams"])
_service = BitstreamService()

CHUNK_SIZE = 64 * 1024


def _iter_chunks(handle: BinaryIO) -> Iterator[bytes]:
	with handle:
		for chunk in iter(lambda: handle.read(CHUNK_SIZE), b""):
			yield chunk


def _inline_disposition(filename: str) -> str:
	quoted = quote(filename)
	if quoted != filename:
		return f"inline; filename*=utf-8''{quoted}"
	return f'inline; filename="{filename}"'


@router.get("/bitstreams/{uuid:dso_id}", response_model=dto.BitstreamResource)
async def get_bitstream_endpoint(uuid: UUID) -> dto.BitstreamResource:
	try:
		return await _service.get_bitstream(uuid)
	except Exception as exc:
		raise to_http_error(exc) from exc


@router.get("/bitstreams/{uuid:dso_id}/content", response_class=StreamingResponse)
async def get_bitstream_content_endpoint(uuid: UUID) -> StreamingResponse:
	try:
		bitstream, handle, size = await _service.open_content(uuid)
	except Exception as exc:
		raise to_http_error(exc) from exc
	return StreamingResponse(
		_iter_chunks(handle),
		media_type=bitstream.mime_type,
		headers={
			"Content-Disposition": _inline_disposition(bitstream.name),
			"Content-Length": str(size),
		},
	)
