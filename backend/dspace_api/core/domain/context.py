"""Per-request transactional context.

A context owns one pooled connection and one started transaction. It is
finished exactly once, either by ``complete()`` (commit) or ``abort()``
(rollback plus registered compensations). ``ContextFactory.open()`` scopes
the acquisition and aborts any context that leaves the block unfinished,
including on error paths.
"""

from __future__ import annotations

import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

import asyncpg

from dspace_api.infra.postgres import get_pool
from dspace_api.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)

Compensation = Callable[[], Union[None, Awaitable[None]]]

OPEN = "open"
COMPLETED = "completed"
ABORTED = "aborted"
FAILED = "failed"


class TransactionContext:
	"""Unit of work handed to repositories for the duration of one request."""

	def __init__(self, conn: Any, transaction: Any = None) -> None:
		self.conn = conn
		self._transaction = transaction
		self._state = OPEN
		self._compensations: list[Compensation] = []

	@property
	def state(self) -> str:
		return self._state

	@property
	def is_open(self) -> bool:
		return self._state == OPEN

	@property
	def is_finished(self) -> bool:
		return self._state in (COMPLETED, ABORTED)

	def on_abort(self, callback: Compensation) -> None:
		"""Register an undo step for side effects the database cannot roll back."""
		if not self.is_open:
			raise RuntimeError(f"context_{self._state}")
		self._compensations.append(callback)

	async def complete(self) -> None:
		if not self.is_open:
			raise RuntimeError(f"context_{self._state}")
		try:
			if self._transaction is not None:
				await self._transaction.commit()
		except BaseException:
			self._state = FAILED
			raise
		self._state = COMPLETED
		self._compensations.clear()

	async def abort(self) -> None:
		if self.is_finished:
			raise RuntimeError(f"context_{self._state}")
		failed_commit = self._state == FAILED
		self._state = ABORTED
		obs_metrics.context_aborted()
		try:
			if self._transaction is not None and not failed_commit:
				await self._transaction.rollback()
		finally:
			await self._run_compensations()

	async def _run_compensations(self) -> None:
		compensations, self._compensations = self._compensations, []
		for callback in reversed(compensations):
			try:
				result = callback()
				if inspect.isawaitable(result):
					await result
			except Exception:
				LOGGER.exception("context_compensation_failed")


class ContextFactory:
	"""Opens transaction contexts on the shared asyncpg pool."""

	def __init__(self, pool_provider: Optional[Callable[[], Awaitable[asyncpg.pool.Pool]]] = None) -> None:
		self._pool_provider = pool_provider or get_pool

	@asynccontextmanager
	async def open(self, *, readonly: bool = False) -> AsyncIterator[TransactionContext]:
		pool = await self._pool_provider()
		async with pool.acquire() as conn:
			transaction = conn.transaction(readonly=readonly)
			await transaction.start()
			context = TransactionContext(conn, transaction)
			try:
				yield context
			except BaseException as exc:
				if not context.is_finished:
					LOGGER.warning("context_aborted", extra={"error": type(exc).__name__})
					await context.abort()
				raise
			if not context.is_finished:
				LOGGER.warning("context_aborted", extra={"error": "not_completed"})
				await context.abort()
