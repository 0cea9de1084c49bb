"""Service layer for community logos."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
from typing import BinaryIO, NoReturn
from uuid import UUID

import asyncpg

from dspace_api.core.domain import authorization, models, repo as repo_module
from dspace_api.core.domain.context import ContextFactory, TransactionContext
from dspace_api.core.domain.exceptions import NotFoundError, StorageError, UnprocessableEntityError
from dspace_api.core.domain.storage import BitstreamStore
from dspace_api.core.schemas import dto
from dspace_api.obs import metrics as obs_metrics
from dspace_api.settings import settings

LOGGER = logging.getLogger(__name__)

NO_FILE_MESSAGE = "No file was given"


def _resolve_mime(payload: models.UploadPayload) -> str:
	declared = (payload.content_type or "").split(";", 1)[0].strip().lower()
	if declared and declared != "application/octet-stream":
		return declared
	guessed, _ = mimetypes.guess_type(payload.filename)
	return (guessed or declared or "application/octet-stream").lower()


def _reject(reason: str, message: str) -> UnprocessableEntityError:
	obs_metrics.logo_rejected(reason)
	LOGGER.info("logo_rejected", extra={"reason": reason})
	return UnprocessableEntityError(message, reason=reason)


class CommunityLogoService:
	"""Creates, replaces and reads the logo bitstream of a community."""

	def __init__(
		self,
		*,
		communities: repo_module.CommunityRepository | None = None,
		bitstreams: repo_module.BitstreamRepository | None = None,
		policies: repo_module.ResourcePolicyRepository | None = None,
		store: BitstreamStore | None = None,
		contexts: ContextFactory | None = None,
	) -> None:
		self.communities = communities or repo_module.CommunityRepository()
		self.bitstreams = bitstreams or repo_module.BitstreamRepository()
		self.policies = policies or repo_module.ResourcePolicyRepository()
		self.store = store or BitstreamStore()
		self.contexts = contexts or ContextFactory()

	# ------------------------------------------------------------------
	# Helpers

	async def _require_community(self, context: TransactionContext, community_id: UUID) -> models.Community:
		community = await self.communities.find(context, community_id)
		if community is None:
			raise NotFoundError(
				f"The given uuid did not resolve to a community on the server: {community_id}"
			)
		return community

	def _validate(self, payload: models.UploadPayload) -> str:
		if payload.size_bytes == 0:
			raise _reject("logo_empty", "The uploaded logo is empty")
		if payload.size_bytes > settings.logo_max_bytes:
			raise _reject(
				"logo_too_large",
				f"The uploaded logo exceeds the maximum size of {settings.logo_max_bytes} bytes",
			)
		mime = _resolve_mime(payload)
		if mime not in settings.logo_allowed_mime_types:
			raise _reject("logo_mime_not_allowed", f"Logos of type {mime} are not accepted")
		return mime

	# ------------------------------------------------------------------
	# Persistence collaborator

	async def set_logo(
		self,
		context: TransactionContext,
		community: models.Community,
		payload: models.UploadPayload,
	) -> models.Bitstream:
		"""Store ``payload`` and make it the community's logo, replacing any previous one."""
		mime = self._validate(payload)
		try:
			stored = await asyncio.to_thread(self.store.put, payload.data)
		except OSError as exc:
			raise StorageError("bitstream_write_failed") from exc
		context.on_abort(lambda: asyncio.to_thread(self.store.delete, stored.internal_id))
		try:
			bitstream = await self.bitstreams.create(
				context,
				name=payload.filename,
				internal_id=stored.internal_id,
				size_bytes=stored.size_bytes,
				checksum=stored.checksum,
				checksum_algorithm=stored.checksum_algorithm,
				mime_type=mime,
			)
			previous_id = await self.communities.replace_logo(context, community.id, bitstream.id)
			if previous_id is not None and previous_id != bitstream.id:
				await self.bitstreams.mark_deleted(context, previous_id)
			await self.policies.copy_policies(
				context,
				source_id=community.id,
				target_id=bitstream.id,
				target_type=authorization.BITSTREAM,
				action="READ",
			)
		except asyncpg.PostgresError as exc:
			raise StorageError("bitstream_persist_failed") from exc
		replaced = previous_id is not None
		obs_metrics.logo_stored(replaced=replaced, size_bytes=stored.size_bytes)
		LOGGER.info(
			"logo_replaced" if replaced else "logo_created",
			extra={
				"community_id": str(community.id),
				"bitstream_id": str(bitstream.id),
				"previous_bitstream_id": str(previous_id) if previous_id else None,
				"mime_type": mime,
				"size_bytes": stored.size_bytes,
			},
		)
		return bitstream

	# ------------------------------------------------------------------
	# Endpoint operations

	async def create_or_replace_logo(
		self,
		community_id: UUID,
		payload: models.UploadPayload,
	) -> dto.BitstreamResource:
		async with self.contexts.open() as context:
			community = await self._require_community(context, community_id)
			bitstream = await self.set_logo(context, community, payload)
			resource = dto.wrap_as_resource(bitstream)
			await context.complete()
		return resource

	async def reject_missing_file(self, community_id: UUID) -> NoReturn:
		obs_metrics.logo_rejected("missing_file")
		LOGGER.info("logo_rejected", extra={"reason": "missing_file", "community_id": str(community_id)})
		raise UnprocessableEntityError(NO_FILE_MESSAGE, reason="missing_file")

	async def get_logo(self, community_id: UUID) -> dto.BitstreamResource | None:
		async with self.contexts.open(readonly=True) as context:
			community = await self._require_community(context, community_id)
			bitstream = None
			if community.logo_bitstream_id is not None:
				bitstream = await self.bitstreams.get(context, community.logo_bitstream_id)
			await context.complete()
		if bitstream is None or bitstream.deleted:
			return None
		return dto.wrap_as_resource(bitstream)


class BitstreamService:
	"""Read access to stored bitstreams."""

	def __init__(
		self,
		*,
		bitstreams: repo_module.BitstreamRepository | None = None,
		store: BitstreamStore | None = None,
		contexts: ContextFactory | None = None,
	) -> None:
		self.bitstreams = bitstreams or repo_module.BitstreamRepository()
		self.store = store or BitstreamStore()
		self.contexts = contexts or ContextFactory()

	async def _find_live(self, bitstream_id: UUID) -> models.Bitstream:
		async with self.contexts.open(readonly=True) as context:
			bitstream = await self.bitstreams.get(context, bitstream_id)
			await context.complete()
		if bitstream is None or bitstream.deleted:
			raise NotFoundError(f"The given uuid did not resolve to a bitstream on the server: {bitstream_id}")
		return bitstream

	async def get_bitstream(self, bitstream_id: UUID) -> dto.BitstreamResource:
		return dto.wrap_as_resource(await self._find_live(bitstream_id))

	async def open_content(self, bitstream_id: UUID) -> tuple[models.Bitstream, BinaryIO, int]:
		"""Return the bitstream, an open handle on its bytes and their size.

		The caller owns the handle and must close it.
		"""
		bitstream = await self._find_live(bitstream_id)
		try:
			handle = await asyncio.to_thread(self.store.open_readable, bitstream.internal_id)
		except FileNotFoundError:
			LOGGER.warning("bitstream_content_missing", extra={"bitstream_id": str(bitstream_id)})
			raise NotFoundError(f"The content of bitstream {bitstream_id} is not available")
		return bitstream, handle, os.fstat(handle.fileno()).st_size
