"""Shared asyncpg pool for request contexts, permission lookups and probes."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

import asyncpg

from dspace_api.settings import settings

LOGGER = logging.getLogger(__name__)

_pool: Optional[asyncpg.pool.Pool] = None
_pool_lock = asyncio.Lock()


async def init_pool() -> asyncpg.pool.Pool:
	"""Create the pool once; concurrent first callers wait for the same pool."""
	global _pool
	async with _pool_lock:
		if _pool is None:
			_pool = await asyncpg.create_pool(
				dsn=settings.postgres_url,
				min_size=settings.postgres_min_pool_size,
				max_size=settings.postgres_max_pool_size,
				command_timeout=settings.postgres_command_timeout,
				server_settings={"application_name": settings.service_name},
			)
			LOGGER.info(
				"postgres_pool_ready",
				extra={"min_size": settings.postgres_min_pool_size, "max_size": settings.postgres_max_pool_size},
			)
	return _pool


async def get_pool() -> asyncpg.pool.Pool:
	return _pool if _pool is not None else await init_pool()


async def close_pool() -> None:
	global _pool
	async with _pool_lock:
		pool, _pool = _pool, None
	if pool is not None:
		await pool.close()
