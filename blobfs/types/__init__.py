"""
Type definitions for blobfs.
Contains value types shared by the storage, queue, lock and filesystem layers.
"""

from blobfs.types.fs import (
    BatchResult,
    FileStat,
    ObjectInfo,
)
from blobfs.types.lock import (
    LockHandle,
    LockRequest,
    LockSession,
    QueueMessage,
)

__all__ = [
    # Filesystem types
    "BatchResult",
    "FileStat",
    "ObjectInfo",
    # Lock types
    "LockHandle",
    "LockRequest",
    "LockSession",
    "QueueMessage",
]
