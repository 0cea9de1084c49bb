"""Pydantic schemas for the core REST category (HAL representations)."""

from __future__ import annotations

from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from dspace_api.core.domain import models
from dspace_api.settings import settings


class _HalModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Link(BaseModel):
	href: str


class MetadataValue(_HalModel):
	value: str
	language: Optional[str] = None
	authority: Optional[str] = None
	confidence: int = -1
	place: int = 0


class CheckSum(_HalModel):
	check_sum_algorithm: str
	value: str


class BitstreamFormatResource(_HalModel):
	mimetype: str
	type: str = "bitstreamformat"


class BitstreamLinks(BaseModel):
	self: Link
	content: Link


class BitstreamEmbedded(BaseModel):
	format: BitstreamFormatResource


class BitstreamResource(_HalModel):
	id: UUID
	uuid: UUID
	name: str
	handle: Optional[str] = None
	metadata: Dict[str, List[MetadataValue]] = Field(default_factory=dict)
	bundle_name: str
	size_bytes: int
	check_sum: CheckSum
	sequence_id: Optional[int] = None
	type: str = "bitstream"
	embedded: BitstreamEmbedded = Field(alias="_embedded")
	links: BitstreamLinks = Field(alias="_links")


def bitstream_href(bitstream_id: UUID, *, base_url: str | None = None) -> str:
	base = (base_url or settings.rest_base_url).rstrip("/")
	return f"{base}/api/core/bitstreams/{bitstream_id}"


def wrap_as_resource(bitstream: models.Bitstream, *, base_url: str | None = None) -> BitstreamResource:
	"""Convert a stored bitstream into its hypermedia representation."""
	self_href = bitstream_href(bitstream.id, base_url=base_url)
	return BitstreamResource(
		id=bitstream.id,
		uuid=bitstream.id,
		name=bitstream.name,
		metadata={"dc.title": [MetadataValue(value=bitstream.name)]},
		bundle_name=bitstream.bundle_name,
		size_bytes=bitstream.size_bytes,
		check_sum=CheckSum(check_sum_algorithm=bitstream.checksum_algorithm, value=bitstream.checksum),
		embedded=BitstreamEmbedded(format=BitstreamFormatResource(mimetype=bitstream.mime_type)),
		links=BitstreamLinks(
			self=Link(href=self_href),
			content=Link(href=f"{self_href}/content"),
		),
	)
