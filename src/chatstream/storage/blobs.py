"""Filesystem blob store for attachment bytes."""

import logging
from functools import partial
from pathlib import Path, PurePath
from uuid import uuid4

from anyio import to_thread

from chatstream.errors import BlobStorageError

logger = logging.getLogger(__name__)


class BlobStore:
    """
    Stores payloads under a root directory and hands back opaque references.

    A reference is the generated file name (uuid + original extension); it
    never contains a directory component.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _ensure_root(self) -> Path:
        root = self.root.resolve()
        try:
            root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BlobStorageError(f"Cannot create storage directory {root}") from e
        return root

    def _path_for(self, ref: str) -> Path:
        """Resolve a reference inside the root (prevent directory traversal)."""
        root = self._ensure_root()
        target = (root / ref).resolve()
        try:
            target.relative_to(root)
        except ValueError:
            raise BlobStorageError(f"Invalid blob reference: {ref}")
        if target == root:
            raise BlobStorageError(f"Invalid blob reference: {ref}")
        return target

    async def store(self, filename: str | None, data: bytes) -> str:
        """Write a payload and return its reference."""
        if not data:
            raise BlobStorageError("Cannot store an empty file")

        suffix = PurePath(filename or "").suffix
        ref = f"{uuid4()}{suffix}"
        target = self._path_for(ref)
        try:
            await to_thread.run_sync(target.write_bytes, data)
        except OSError as e:
            raise BlobStorageError(f"Failed to store {filename!r}") from e
        logger.debug("Stored blob %s (%d bytes)", ref, len(data))
        return ref

    async def load(self, ref: str) -> bytes:
        target = self._path_for(ref)
        try:
            return await to_thread.run_sync(target.read_bytes)
        except OSError as e:
            raise BlobStorageError(f"Failed to load blob {ref}") from e

    async def delete(self, ref: str) -> None:
        """Remove a payload; a missing blob is not an error."""
        target = self._path_for(ref)
        try:
            await to_thread.run_sync(partial(target.unlink, missing_ok=True))
        except OSError as e:
            raise BlobStorageError(f"Failed to delete blob {ref}") from e
