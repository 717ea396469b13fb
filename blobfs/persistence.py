"""
Filesystem store facade.

Bundles the virtual filesystem, the distributed lock and the path helpers into
one object, the shape a persistence layer consumes: call init() once, then use
the filesystem operations and bracket critical sections with lock() and
release_lock() (or ``async with store.locked()``).
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from types import ModuleType

from blobfs.aws import create_aws_clients
from blobfs.config import Settings, get_settings
from blobfs.fs import paths
from blobfs.fs.filesystem import VirtualFilesystem
from blobfs.lock.distributed import DistributedLock
from blobfs.queue.sqs import SqsQueueBroker
from blobfs.storage.s3 import S3ObjectStore
from blobfs.types.fs import BatchResult, FileStat
from blobfs.types.lock import LockHandle, LockSession

logger = logging.getLogger(__name__)


class FsStore:
    """
    Virtual filesystem plus global lock.

    Lock calls made before init() raise RuntimeError.
    """

    path: ModuleType = paths

    def __init__(self, fs: VirtualFilesystem, lock: DistributedLock):
        self.fs = fs
        self.lock_manager = lock
        self._session: LockSession | None = None

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "FsStore":
        """
        Build a store backed by S3 and SQS.

        Raises:
            ConfigurationError: AWS credentials are missing.
        """
        settings = settings or get_settings()
        s3, sqs = create_aws_clients(settings)
        return cls(
            fs=VirtualFilesystem(S3ObjectStore(s3, settings.s3_bucket)),
            lock=DistributedLock(SqsQueueBroker(sqs)),
        )

    async def init(self) -> LockSession:
        """Provision the lock queue. Must run once before any lock call."""
        self._session = await self.lock_manager.init()
        logger.info("Filesystem store initialized", extra={"queue_url": self._session.queue_url})
        return self._session

    @property
    def session(self) -> LockSession:
        if self._session is None:
            raise RuntimeError("Filesystem store not initialized. Call init() first.")
        return self._session

    # Filesystem

    async def readdir(self, path: str) -> list[str]:
        return await self.fs.readdir(path)

    async def read_file(self, path: str) -> bytes:
        return await self.fs.read_file(path)

    async def write_file(self, path: str, data: bytes | str) -> None:
        await self.fs.write_file(path, data)

    async def append_file(self, path: str, data: bytes | str) -> None:
        await self.fs.append_file(path, data)

    async def rename(self, old_path: str, new_path: str) -> BatchResult:
        return await self.fs.rename(old_path, new_path)

    async def exists(self, path: str) -> bool:
        return await self.fs.exists(path)

    async def stat(self, path: str) -> FileStat:
        return await self.fs.stat(path)

    async def mkdir(self, path: str) -> None:
        await self.fs.mkdir(path)

    async def remove(self, path: str) -> BatchResult:
        return await self.fs.remove(path)

    # Lock

    async def lock(
        self,
        *,
        max_wait: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> LockHandle:
        return await self.lock_manager.acquire(self.session, max_wait=max_wait, cancel=cancel)

    async def release_lock(self, handle: LockHandle) -> None:
        await self.lock_manager.release(self.session, handle)

    @asynccontextmanager
    async def locked(
        self,
        *,
        max_wait: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[LockHandle]:
        async with self.lock_manager.locked(
            self.session, max_wait=max_wait, cancel=cancel
        ) as handle:
            yield handle
