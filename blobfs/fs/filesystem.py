"""
Virtual filesystem over an object store.

The store has no directories. A directory is any prefix that other keys live
under; a path whose exact key holds no object is reported as a directory.
None of the multi-object operations are transactional: a concurrent writer can
observe or leave a partially renamed or removed tree. Hold the distributed lock
around them when that matters.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from blobfs.constants import SPAN_FS_REMOVE, SPAN_FS_RENAME, FsOperation
from blobfs.errors import NotFoundError, PartialFailureError
from blobfs.fs import paths
from blobfs.observability.metrics import MetricsCollector, get_metrics
from blobfs.observability.tracing import get_tracer
from blobfs.storage.base import ObjectStore
from blobfs.types.fs import BatchResult, FileStat

logger = logging.getLogger(__name__)


class VirtualFilesystem:
    """
    Path-addressed file operations mapped onto ObjectStore calls.

    Only NotFoundError is ever swallowed, and only where it has a meaning:
    append_file reads it as "empty", exists and stat read it as "not a file".
    """

    def __init__(self, store: ObjectStore, metrics: MetricsCollector | None = None):
        """
        Args:
            store: Object store holding the files.
            metrics: Metrics collector. Defaults to the global one.
        """
        self._store = store
        self._metrics = metrics or get_metrics()

    async def _list_subtree(self, path: str) -> tuple[str, list[str]]:
        root = paths.subtree_root(path)
        keys = await self._store.list(root)
        return root, [key for key in keys if paths.in_subtree(key, root)]

    async def readdir(self, path: str) -> list[str]:
        """
        Names of the immediate children of a directory.

        Keys ``a/b/c``, ``a/b/d`` and ``a/e`` give ``["b", "e"]`` for ``/a``
        (in no particular order).
        """
        self._metrics.record_fs_operation(FsOperation.READDIR)
        root, keys = await self._list_subtree(path)

        children: set[str] = set()
        for key in keys:
            segments = [segment for segment in key[len(root):].split(paths.sep) if segment]
            if segments:
                children.add(segments[0])
        return list(children)

    async def read_file(self, path: str) -> bytes:
        """Raises NotFoundError when nothing is stored at path."""
        self._metrics.record_fs_operation(FsOperation.READ_FILE)
        return await self._store.get(paths.to_key(path))

    async def write_file(self, path: str, data: bytes | str) -> None:
        self._metrics.record_fs_operation(FsOperation.WRITE_FILE)
        await self._store.put(paths.to_key(path), _as_bytes(data))

    async def append_file(self, path: str, data: bytes | str) -> None:
        """
        Read, concatenate, write back.

        A missing file counts as empty. Not atomic: two concurrent appends can
        lose one of the writes.
        """
        self._metrics.record_fs_operation(FsOperation.APPEND_FILE)
        key = paths.to_key(path)
        try:
            existing = await self._store.get(key)
        except NotFoundError:
            existing = b""
        await self._store.put(key, existing + _as_bytes(data))

    async def rename(self, old_path: str, new_path: str) -> BatchResult:
        """
        Move a file or a whole tree.

        Each object is copied to its new key, then its original is deleted.
        Every object is attempted even when some fail. Renaming a path onto
        itself changes nothing.

        Raises:
            PartialFailureError: Some objects were not moved; result lists them.
        """
        self._metrics.record_fs_operation(FsOperation.RENAME)
        new_root = paths.subtree_root(new_path)
        if paths.subtree_root(old_path) == new_root:
            # Copying onto itself and then deleting would lose the tree
            logger.info("Rename onto the same path ignored", extra={"path": old_path})
            return BatchResult()

        old_root, keys = await self._list_subtree(old_path)

        async def move(key: str) -> None:
            await self._store.copy(key, paths.relocate(key, old_root, new_root))
            await self._store.delete(key)

        with get_tracer().start_as_current_span(SPAN_FS_RENAME) as span:
            span.set_attribute("objects", len(keys))
            result = await self._run_batch(FsOperation.RENAME, keys, move)

        logger.info(
            "Renamed objects",
            extra={"old_path": old_path, "new_path": new_path, "objects": result.total},
        )
        return result

    async def exists(self, path: str) -> bool:
        self._metrics.record_fs_operation(FsOperation.EXISTS)
        key = paths.to_key(path)
        if not key:
            return False
        return await self._store.head_exists(key)

    async def stat(self, path: str) -> FileStat:
        """
        Stat a path.

        Directories have no object of their own, so any path without an object
        under its exact key is reported as a directory, even one with nothing
        below it.
        """
        self._metrics.record_fs_operation(FsOperation.STAT)
        key = paths.to_key(path)
        if not key:
            return FileStat(path=path, is_directory=True)
        try:
            info = await self._store.head(key)
        except NotFoundError:
            return FileStat(path=path, is_directory=True)
        return FileStat(
            path=path,
            is_directory=False,
            size=info.size,
            last_modified=info.last_modified,
        )

    async def mkdir(self, path: str) -> None:
        """Directories exist implicitly; nothing to create."""
        self._metrics.record_fs_operation(FsOperation.MKDIR)

    async def remove(self, path: str) -> BatchResult:
        """
        Delete a file or a whole tree.

        Raises:
            PartialFailureError: Some objects were not deleted; result lists them.
        """
        self._metrics.record_fs_operation(FsOperation.REMOVE)
        _, keys = await self._list_subtree(path)

        with get_tracer().start_as_current_span(SPAN_FS_REMOVE) as span:
            span.set_attribute("objects", len(keys))
            result = await self._run_batch(FsOperation.REMOVE, keys, self._store.delete)

        logger.info("Removed objects", extra={"path": path, "objects": result.total})
        return result

    async def _run_batch(
        self,
        operation: FsOperation,
        keys: list[str],
        action: Callable[[str], Awaitable[None]],
    ) -> BatchResult:
        outcomes = await asyncio.gather(*(action(key) for key in keys), return_exceptions=True)

        result = BatchResult()
        for key, outcome in zip(keys, outcomes):
            if isinstance(outcome, Exception):
                result.failed[key] = f"{type(outcome).__name__}: {outcome}"
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                result.processed.append(key)

        if result.failed:
            self._metrics.record_batch_failures(operation, len(result.failed))
            logger.error(
                "Batch operation partially failed",
                extra={
                    "operation": str(operation),
                    "failed": len(result.failed),
                    "processed": len(result.processed),
                },
            )
            raise PartialFailureError(str(operation), result)

        return result


def _as_bytes(data: bytes | str) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)
