from contextlib import asynccontextmanager

import pytest

from dspace_api.infra import postgres
from dspace_api.settings import settings


@pytest.mark.asyncio
async def test_health_live_echoes_request_id(api_client):
	resp = await api_client.get("/health/live", headers={"X-Request-Id": "req-live-1"})

	assert resp.status_code == 200
	assert resp.json()["status"] == "ok"
	assert resp.headers["x-request-id"] == "req-live-1"


@pytest.mark.asyncio
async def test_error_body_carries_request_id(api_client):
	resp = await api_client.put(
		"/api/core/communities/1c11f3f1-ba1f-4f36-908a-3f1ea9a557eb/logo",
		headers={"X-Request-Id": "req-405"},
	)

	assert resp.status_code == 405
	assert resp.json()["request_id"] == "req-405"


@pytest.mark.asyncio
async def test_metrics_are_private_without_token(api_client, monkeypatch):
	monkeypatch.setattr(settings, "obs_metrics_public", False)
	monkeypatch.setattr(settings, "obs_admin_token", "ops-token")

	denied = await api_client.get("/metrics")
	allowed = await api_client.get("/metrics", headers={"X-Admin-Token": "ops-token"})

	assert denied.status_code == 403
	assert allowed.status_code == 200
	assert "dspace_logo_uploads_total" in allowed.text


class ProbeConnection:
	def __init__(self, version) -> None:
		self.version = version

	async def execute(self, query):
		return "SELECT 1"

	async def fetchval(self, query):
		return self.version


class ProbePool:
	def __init__(self, version) -> None:
		self.version = version

	@asynccontextmanager
	async def acquire(self):
		yield ProbeConnection(self.version)


def _use_pool(monkeypatch, pool) -> None:
	async def _get_pool():
		return pool

	monkeypatch.setattr(postgres, "get_pool", _get_pool)


@pytest.mark.asyncio
async def test_ready_when_schema_and_assetstore_are_usable(api_client, monkeypatch):
	_use_pool(monkeypatch, ProbePool("0001"))

	resp = await api_client.get("/health/ready")

	assert resp.status_code == 200
	checks = resp.json()["checks"]
	assert checks["migrations"] == {"ok": True, "version": "0001", "required": "0001"}
	assert checks["assetstore"] == {"ok": True}


@pytest.mark.asyncio
async def test_degraded_without_migrations_or_writable_assetstore(api_client, monkeypatch, tmp_path):
	_use_pool(monkeypatch, ProbePool(None))
	blocker = tmp_path / "not-a-directory"
	blocker.write_text("x")
	monkeypatch.setattr(settings, "assetstore_dir", str(blocker))

	resp = await api_client.get("/health/ready")

	assert resp.status_code == 503
	body = resp.json()
	assert body["status"] == "degraded"
	assert body["checks"]["postgres"]["ok"] is True
	assert body["checks"]["migrations"] == {"ok": False, "error": "no_migrations"}
	assert body["checks"]["assetstore"]["ok"] is False
