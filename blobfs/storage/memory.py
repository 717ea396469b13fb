"""
In-process object store.

Behaves like the S3 adapter as far as the filesystem layer can tell; used by
the test-suite and for running without AWS.
"""

import asyncio
import hashlib
from dataclasses import dataclass
from datetime import datetime, timezone

from blobfs.errors import NotFoundError
from blobfs.storage.base import ObjectStore
from blobfs.types.fs import ObjectInfo


@dataclass
class _StoredObject:
    data: bytes
    last_modified: datetime

    @property
    def etag(self) -> str:
        return hashlib.md5(self.data).hexdigest()


class InMemoryObjectStore(ObjectStore):
    """Dictionary-backed ObjectStore."""

    def __init__(self, objects: dict[str, bytes] | None = None):
        self._objects: dict[str, _StoredObject] = {}
        for key, data in (objects or {}).items():
            self._objects[key] = _StoredObject(data, datetime.now(timezone.utc))

    @property
    def keys(self) -> list[str]:
        return sorted(self._objects)

    async def list(self, prefix: str) -> list[str]:
        await asyncio.sleep(0)
        return [key for key in sorted(self._objects) if key.startswith(prefix)]

    async def get(self, key: str) -> bytes:
        await asyncio.sleep(0)
        try:
            return self._objects[key].data
        except KeyError:
            raise NotFoundError(key) from None

    async def put(self, key: str, data: bytes) -> None:
        await asyncio.sleep(0)
        self._objects[key] = _StoredObject(bytes(data), datetime.now(timezone.utc))

    async def copy(self, src_key: str, dst_key: str) -> None:
        await asyncio.sleep(0)
        try:
            source = self._objects[src_key]
        except KeyError:
            raise NotFoundError(src_key) from None
        self._objects[dst_key] = _StoredObject(source.data, datetime.now(timezone.utc))

    async def delete(self, key: str) -> None:
        await asyncio.sleep(0)
        self._objects.pop(key, None)

    async def head(self, key: str) -> ObjectInfo:
        await asyncio.sleep(0)
        try:
            stored = self._objects[key]
        except KeyError:
            raise NotFoundError(key) from None
        return ObjectInfo(
            key=key,
            size=len(stored.data),
            last_modified=stored.last_modified,
            etag=stored.etag,
        )
