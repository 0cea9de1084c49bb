"""Filesystem assetstore for bitstream bytes."""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import ulid

from dspace_api.settings import settings

# Number of two-character directory levels above each stored file
_DIRECTORY_LEVELS = 3


@dataclass(slots=True)
class StoredFile:
	internal_id: str
	size_bytes: int
	checksum: str
	checksum_algorithm: str = "MD5"


class BitstreamStore:
	"""Stores each bitstream under ``<root>/ab/cd/ef/<internal_id>``."""

	def __init__(self, root: str | Path | None = None) -> None:
		self._root = Path(root) if root is not None else None

	@property
	def root(self) -> Path:
		return self._root if self._root is not None else Path(settings.assetstore_dir)

	def path_for(self, internal_id: str) -> Path:
		if not internal_id or "/" in internal_id or "\\" in internal_id or internal_id.startswith("."):
			raise ValueError("invalid_internal_id")
		tail = internal_id.lower()[-2 * _DIRECTORY_LEVELS:]
		parts = [tail[i : i + 2] for i in range(0, 2 * _DIRECTORY_LEVELS, 2)]
		return self.root.joinpath(*parts, internal_id)

	def put(self, data: bytes) -> StoredFile:
		internal_id = ulid.new().str
		target = self.path_for(internal_id)
		target.parent.mkdir(parents=True, exist_ok=True)
		partial = target.with_name(f"{internal_id}.partial")
		try:
			with open(partial, "wb") as fh:
				fh.write(data)
				fh.flush()
				os.fsync(fh.fileno())
			os.replace(partial, target)
		except OSError:
			partial.unlink(missing_ok=True)
			raise
		return StoredFile(
			internal_id=internal_id,
			size_bytes=len(data),
			checksum=hashlib.md5(data).hexdigest(),
		)

	def open_readable(self, internal_id: str) -> BinaryIO:
		"""Open the stored bytes; the handle stays valid if the file is unlinked later."""
		return open(self.path_for(internal_id), "rb")

	def delete(self, internal_id: str) -> None:
		self.path_for(internal_id).unlink(missing_ok=True)
