"""Async repository helpers for communities, bitstreams and resource policies."""

from __future__ import annotations

from typing import Iterable, Optional
from uuid import UUID, uuid4

from dspace_api.core.domain import models
from dspace_api.core.domain.context import TransactionContext
from dspace_api.core.domain.exceptions import NotFoundError
from dspace_api.infra.postgres import get_pool

_BITSTREAM_COLUMNS = (
	"id, name, internal_id, size_bytes, checksum, checksum_algorithm, mime_type, "
	"bundle_name, deleted, created_at"
)


class CommunityRepository:
	"""Thin data-access layer around the community table."""

	async def find(self, context: TransactionContext, community_id: UUID) -> models.Community | None:
		record = await context.conn.fetchrow(
			"SELECT id, name, logo_bitstream_id, created_at, updated_at FROM community WHERE id=$1",
			community_id,
		)
		if not record:
			return None
		return models.Community.model_validate(dict(record))

	async def replace_logo(
		self,
		context: TransactionContext,
		community_id: UUID,
		bitstream_id: UUID,
	) -> Optional[UUID]:
		"""Point the community at a new logo and return the previous logo id.

		Raises NotFoundError when the community row is gone, e.g. deleted by a
		concurrent request after it was resolved.
		"""
		record = await context.conn.fetchrow(
			"""
			WITH previous AS (
				SELECT logo_bitstream_id FROM community WHERE id=$1 FOR UPDATE
			)
			UPDATE community
			SET logo_bitstream_id=$2, updated_at=NOW()
			WHERE id=$1
			RETURNING (SELECT logo_bitstream_id FROM previous) AS previous_logo_id
			""",
			community_id,
			bitstream_id,
		)
		if record is None:
			raise NotFoundError(
				f"The given uuid did not resolve to a community on the server: {community_id}"
			)
		return record["previous_logo_id"]


class BitstreamRepository:
	"""Data-access layer for bitstream rows; file bytes live in the assetstore."""

	async def create(
		self,
		context: TransactionContext,
		*,
		name: str,
		internal_id: str,
		size_bytes: int,
		checksum: str,
		mime_type: str,
		bundle_name: str = models.LOGO_BUNDLE,
		checksum_algorithm: str = "MD5",
	) -> models.Bitstream:
		record = await context.conn.fetchrow(
			f"""
			INSERT INTO bitstream (id, name, internal_id, size_bytes, checksum, checksum_algorithm,
				mime_type, bundle_name)
			VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
			RETURNING {_BITSTREAM_COLUMNS}
			""",
			uuid4(),
			name,
			internal_id,
			size_bytes,
			checksum,
			checksum_algorithm,
			mime_type,
			bundle_name,
		)
		return models.Bitstream.model_validate(dict(record))

	async def get(self, context: TransactionContext, bitstream_id: UUID) -> models.Bitstream | None:
		record = await context.conn.fetchrow(
			f"SELECT {_BITSTREAM_COLUMNS} FROM bitstream WHERE id=$1",
			bitstream_id,
		)
		return models.Bitstream.model_validate(dict(record)) if record else None

	async def mark_deleted(self, context: TransactionContext, bitstream_id: UUID) -> None:
		await context.conn.execute(
			"UPDATE bitstream SET deleted=TRUE WHERE id=$1 AND deleted=FALSE",
			bitstream_id,
		)


class ResourcePolicyRepository:
	"""Lookups against the resourcepolicy table."""

	async def has_policy(
		self,
		*,
		resource_id: UUID,
		resource_type: str,
		actions: Iterable[str],
		eperson_id: str,
		groups: Iterable[str] = (),
	) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			found = await conn.fetchval(
				"""
				SELECT EXISTS (
					SELECT 1 FROM resourcepolicy
					WHERE resource_id=$1
						AND resource_type=$2
						AND action = ANY($3::text[])
						AND (eperson_id=$4 OR group_name = ANY($5::text[]))
						AND (start_date IS NULL OR start_date <= NOW())
						AND (end_date IS NULL OR end_date > NOW())
				)
				""",
				resource_id,
				resource_type,
				list(actions),
				eperson_id,
				list(groups),
			)
		return bool(found)

	async def copy_policies(
		self,
		context: TransactionContext,
		*,
		source_id: UUID,
		target_id: UUID,
		target_type: str,
		action: str,
	) -> int:
		"""Duplicate the source's policies for ``action`` onto the target resource."""
		result = await context.conn.execute(
			"""
			INSERT INTO resourcepolicy (resource_id, resource_type, action, eperson_id, group_name,
				start_date, end_date)
			SELECT $2, $3, action, eperson_id, group_name, start_date, end_date
			FROM resourcepolicy
			WHERE resource_id=$1 AND action=$4
			""",
			source_id,
			target_id,
			target_type,
			action,
		)
		# asyncpg returns the command tag, e.g. "INSERT 0 2"
		return int(str(result).rsplit(" ", 1)[-1] or 0)
