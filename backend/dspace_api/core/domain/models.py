"""Domain models for communities and the bitstreams attached to them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

LOGO_BUNDLE = "LOGO"


class Community(BaseModel):
	"""Represents a community; only identity and logo are read here."""

	id: UUID
	name: str
	logo_bitstream_id: Optional[UUID] = None
	created_at: datetime
	updated_at: datetime

	model_config = ConfigDict(from_attributes=True)


class Bitstream(BaseModel):
	"""Represents a stored file and its assetstore metadata."""

	id: UUID
	name: str
	internal_id: str
	size_bytes: int
	checksum: str
	checksum_algorithm: str = "MD5"
	mime_type: str
	bundle_name: str = LOGO_BUNDLE
	deleted: bool = False
	created_at: datetime

	model_config = ConfigDict(from_attributes=True)


@dataclass(slots=True)
class UploadPayload:
	"""Uploaded file as received on the wire."""

	filename: str
	content_type: Optional[str]
	data: bytes

	@property
	def size_bytes(self) -> int:
		return len(self.data)
