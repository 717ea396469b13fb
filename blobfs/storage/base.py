"""
Object store interface.
"""

from abc import ABC, abstractmethod

from blobfs.errors import NotFoundError
from blobfs.types.fs import ObjectInfo


class ObjectStore(ABC):
    """
    Key-addressed blob store with prefix listing.

    There are no directories: keys are flat strings that happen to contain
    ``/`` separators.
    """

    @abstractmethod
    async def list(self, prefix: str) -> list[str]:
        """List every key starting with prefix."""

    @abstractmethod
    async def get(self, key: str) -> bytes:
        """Return the object's content. Raises NotFoundError."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> None:
        """Create or overwrite the object under key."""

    @abstractmethod
    async def copy(self, src_key: str, dst_key: str) -> None:
        """Copy an object to another key within the same store."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete the object under key. Deleting a missing key is not an error."""

    @abstractmethod
    async def head(self, key: str) -> ObjectInfo:
        """Return object metadata without its content. Raises NotFoundError."""

    async def head_exists(self, key: str) -> bool:
        """Metadata-only existence probe."""
        try:
            await self.head(key)
        except NotFoundError:
            return False
        return True
