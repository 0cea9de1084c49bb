from uuid import uuid4

import pytest

from dspace_api.core.api import bitstreams as bitstreams_api
from dspace_api.core.domain import models
from dspace_api.core.domain.services import BitstreamService


@pytest.fixture()
def bitstream_service(monkeypatch, bitstreams, store, contexts) -> BitstreamService:
	service = BitstreamService(bitstreams=bitstreams, store=store, contexts=contexts)
	monkeypatch.setattr(bitstreams_api, "_service", service)
	return service


@pytest.mark.asyncio
async def test_uploaded_logo_is_readable_through_its_links(
	api_client, bitstream_service, logo_service, communities, png_bytes
):
	community = communities.add()

	created = await logo_service.create_or_replace_logo(
		community.id, models.UploadPayload(filename="test.png", content_type="image/png", data=png_bytes)
	)

	meta = await api_client.get(f"/api/core/bitstreams/{created.uuid}")
	content = await api_client.get(f"/api/core/bitstreams/{created.uuid}/content")

	assert meta.status_code == 200
	assert meta.json()["_links"]["content"]["href"].endswith(f"/bitstreams/{created.uuid}/content")
	assert content.status_code == 200
	assert content.content == png_bytes
	assert content.headers["content-type"] == "image/png"
	assert content.headers["content-disposition"].startswith("inline")
	assert content.headers["content-length"] == str(len(png_bytes))


@pytest.mark.asyncio
async def test_unknown_bitstream_returns_404(api_client, bitstream_service):
	resp = await api_client.get(f"/api/core/bitstreams/{uuid4()}/content")

	assert resp.status_code == 404
	assert resp.json()["request_id"]


@pytest.mark.asyncio
async def test_replaced_logo_is_no_longer_served(
	api_client, bitstream_service, logo_service, communities, png_bytes
):
	community = communities.add()

	first = await logo_service.create_or_replace_logo(
		community.id, models.UploadPayload(filename="a.png", content_type="image/png", data=png_bytes)
	)
	await logo_service.create_or_replace_logo(
		community.id, models.UploadPayload(filename="b.png", content_type="image/png", data=png_bytes)
	)

	resp = await api_client.get(f"/api/core/bitstreams/{first.uuid}")

	assert resp.status_code == 404


@pytest.mark.asyncio
@pytest.mark.parametrize("suffix", ["", "/content"])
async def test_undashed_identifier_does_not_route(api_client, bitstream_service, suffix):
	resp = await api_client.get(f"/api/core/bitstreams/{uuid4().hex}{suffix}")

	assert resp.status_code == 404
	assert resp.json()["detail"] == "Not Found"


@pytest.mark.asyncio
async def test_missing_content_file_returns_404(
	api_client, bitstream_service, logo_service, communities, bitstreams, store, png_bytes
):
	community = communities.add()
	created = await logo_service.create_or_replace_logo(
		community.id, models.UploadPayload(filename="test.png", content_type="image/png", data=png_bytes)
	)
	store.delete(bitstreams.rows[created.uuid].internal_id)

	resp = await api_client.get(f"/api/core/bitstreams/{created.uuid}/content")

	assert resp.status_code == 404
	assert str(created.uuid) in resp.json()["detail"]
