import os
import sys
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("SECRET_KEY", "test-secret-key-with-enough-length-for-hs256")
os.environ.setdefault("ENV", "dev")

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from dspace_api.core.domain import models
from dspace_api.core.domain.context import ContextFactory
from dspace_api.core.domain.exceptions import NotFoundError
from dspace_api.core.domain.services import CommunityLogoService
from dspace_api.core.domain.storage import BitstreamStore
from dspace_api.infra import postgres
from dspace_api.main import app
from dspace_api.settings import settings


PNG_BYTES = (
	b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
	b"\x00\x00\x00\rIDATx\x9cc\xf8\xff\xff?\x00\x05\xfe\x02\xfe\xa7\x35\x81\x84\x00\x00\x00\x00IEND\xaeB`\x82"
)


class FakeTransaction:
	def __init__(self, events: list[str], *, fail_commit: bool = False) -> None:
		self.events = events
		self.fail_commit = fail_commit

	async def start(self) -> None:
		self.events.append("start")

	async def commit(self) -> None:
		if self.fail_commit:
			self.events.append("commit_failed")
			raise ConnectionError("connection lost during commit")
		self.events.append("commit")

	async def rollback(self) -> None:
		self.events.append("rollback")


class FakeConnection:
	def __init__(self, pool: "FakePool") -> None:
		self.pool = pool

	def transaction(self, *, readonly: bool = False) -> FakeTransaction:
		self.pool.readonly.append(readonly)
		return FakeTransaction(self.pool.events, fail_commit=self.pool.fail_commit)


class FakePool:
	"""Records the lifecycle of every connection and transaction it hands out."""

	def __init__(self) -> None:
		self.events: list[str] = []
		self.readonly: list[bool] = []
		self.fail_commit = False

	@asynccontextmanager
	async def acquire(self):
		self.events.append("acquire")
		try:
			yield FakeConnection(self)
		finally:
			self.events.append("release")


class InMemoryCommunities:
	def __init__(self) -> None:
		self.rows: dict[UUID, models.Community] = {}

	def add(self, community_id: UUID | None = None, *, name: str = "Test community") -> models.Community:
		now = datetime.now(timezone.utc)
		community = models.Community(id=community_id or uuid4(), name=name, created_at=now, updated_at=now)
		self.rows[community.id] = community
		return community

	async def find(self, context, community_id):
		return self.rows.get(community_id)

	async def replace_logo(self, context, community_id, bitstream_id):
		current = self.rows.get(community_id)
		if current is None:
			raise NotFoundError(f"The given uuid did not resolve to a community on the server: {community_id}")
		self.rows[community_id] = current.model_copy(update={"logo_bitstream_id": bitstream_id})
		return current.logo_bitstream_id


class InMemoryBitstreams:
	def __init__(self) -> None:
		self.rows: dict[UUID, models.Bitstream] = {}
		self.fail_with: Exception | None = None

	async def create(self, context, **fields):
		if self.fail_with is not None:
			raise self.fail_with
		bitstream = models.Bitstream(id=uuid4(), created_at=datetime.now(timezone.utc), **fields)
		self.rows[bitstream.id] = bitstream
		return bitstream

	async def get(self, context, bitstream_id):
		return self.rows.get(bitstream_id)

	async def mark_deleted(self, context, bitstream_id):
		self.rows[bitstream_id] = self.rows[bitstream_id].model_copy(update={"deleted": True})


class InMemoryPolicies:
	def __init__(self) -> None:
		self.copied: list[dict[str, object]] = []

	async def copy_policies(self, context, **kwargs):
		self.copied.append(kwargs)
		return 1


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings(tmp_path):
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id headers, which are only accepted in dev
	mode, and every stored file lands in a per-test assetstore.
	"""
	original_env = settings.environment
	original_assetstore = settings.assetstore_dir
	settings.environment = "dev"
	settings.assetstore_dir = str(tmp_path / "assetstore")
	try:
		yield
	finally:
		settings.environment = original_env
		settings.assetstore_dir = original_assetstore


@pytest.fixture()
def fake_pool() -> FakePool:
	return FakePool()


@pytest.fixture()
def contexts(fake_pool) -> ContextFactory:
	async def _provider():
		return fake_pool

	return ContextFactory(pool_provider=_provider)


@pytest.fixture()
def store(tmp_path) -> BitstreamStore:
	return BitstreamStore(tmp_path / "store")


@pytest.fixture()
def communities() -> InMemoryCommunities:
	return InMemoryCommunities()


@pytest.fixture()
def bitstreams() -> InMemoryBitstreams:
	return InMemoryBitstreams()


@pytest.fixture()
def policies() -> InMemoryPolicies:
	return InMemoryPolicies()


@pytest.fixture()
def logo_service(communities, bitstreams, policies, store, contexts) -> CommunityLogoService:
	return CommunityLogoService(
		communities=communities,
		bitstreams=bitstreams,
		policies=policies,
		store=store,
		contexts=contexts,
	)


@pytest.fixture()
def png_bytes() -> bytes:
	return PNG_BYTES


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
