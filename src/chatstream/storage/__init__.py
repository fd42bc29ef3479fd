"""Blob storage for attachment payloads."""

from functools import lru_cache

from chatstream.config import get_settings

from .blobs import BlobStore


@lru_cache
def get_blob_store() -> BlobStore:
    """Blob store rooted at the configured storage path."""
    return BlobStore(get_settings().storage_path)


__all__ = ["BlobStore", "get_blob_store"]
