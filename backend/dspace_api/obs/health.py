"""Liveness and readiness probes.

Readiness needs three things: Postgres answering, the schema at or past
``settings.health_min_migration``, and a writable assetstore directory.
"""

from __future__ import annotations

import asyncio
import logging
import tempfile
from pathlib import Path
from time import perf_counter
from typing import Any, Dict, Optional, Tuple

from dspace_api.infra import postgres
from dspace_api.obs import metrics
from dspace_api.settings import settings

LOGGER = logging.getLogger(__name__)


async def _postgres_status(timeout: float = 0.3) -> Tuple[Dict[str, Any], Optional[Any]]:
	try:
		pool = await postgres.get_pool()
	except Exception as exc:  # pragma: no cover - connection bootstrap failure
		metrics.mark_postgres(False)
		LOGGER.warning("postgres_unavailable", exc_info=True)
		return {"ok": False, "error": str(exc)}, None

	start = perf_counter()
	try:
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
	except Exception as exc:
		metrics.mark_postgres(False)
		LOGGER.warning("postgres_ping_failed", exc_info=True)
		return {"ok": False, "error": str(exc)}, pool
	latency = perf_counter() - start
	metrics.mark_postgres(True, latency_seconds=latency)
	return {"ok": True, "latency_ms": round(latency * 1000, 2)}, pool


async def _migration_status(pool) -> Dict[str, Any]:
	if pool is None:
		return {"ok": False, "error": "pool_unavailable"}
	try:
		async with pool.acquire() as conn:
			version = await conn.fetchval("SELECT max(version) FROM schema_migrations")
	except Exception as exc:
		return {"ok": False, "error": type(exc).__name__}
	if version is None:
		return {"ok": False, "error": "no_migrations"}
	required = settings.health_min_migration
	return {"ok": str(version) >= required, "version": str(version), "required": required}


def _probe_assetstore(root: Path) -> None:
	root.mkdir(parents=True, exist_ok=True)
	with tempfile.NamedTemporaryFile(dir=root, prefix=".probe-"):
		pass


async def _assetstore_status() -> Dict[str, Any]:
	root = Path(settings.assetstore_dir)
	try:
		await asyncio.to_thread(_probe_assetstore, root)
	except OSError as exc:
		LOGGER.warning("assetstore_not_writable", extra={"path": str(root)})
		return {"ok": False, "error": exc.strerror or type(exc).__name__}
	return {"ok": True}


async def liveness() -> Dict[str, Any]:
	return {"status": "ok"}


async def readiness() -> Tuple[int, Dict[str, Any]]:
	postgres_state, pool = await _postgres_status()
	checks = {
		"postgres": postgres_state,
		"migrations": await _migration_status(pool if postgres_state["ok"] else None),
		"assetstore": await _assetstore_status(),
	}
	ok = all(check["ok"] for check in checks.values())
	return (200 if ok else 503, {"status": "ok" if ok else "degraded", "checks": checks})
