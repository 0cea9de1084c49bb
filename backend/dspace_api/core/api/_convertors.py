"""Path convertors shared by the core routers."""

from __future__ import annotations

import uuid

from starlette.convertors import Convertor, register_url_convertor

_HEX = "[0-9a-fA-F]"


class CanonicalUUIDConvertor(Convertor):
	"""Accepts only the dashed 8-4-4-4-12 form, in either case."""

	regex = f"{_HEX}{{8}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{4}}-{_HEX}{{12}}"

	def convert(self, value: str) -> uuid.UUID:
		return uuid.UUID(value)

	def to_string(self, value: uuid.UUID) -> str:
		return str(value)


DSO_ID = "dso_id"

register_url_convertor(DSO_ID, CanonicalUUIDConvertor())
