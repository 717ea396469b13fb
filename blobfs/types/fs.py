"""
Filesystem and object store type definitions.
"""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class ObjectInfo:
    """Metadata returned by a head probe on the object store."""

    key: str
    size: int
    last_modified: datetime | None = None
    etag: str | None = None


@dataclass(frozen=True)
class FileStat:
    """
    Result of VirtualFilesystem.stat().

    The store has no directories: a path with no object under its exact key
    is reported as a directory.
    """

    path: str
    is_directory: bool
    size: int = 0
    last_modified: datetime | None = None

    @property
    def is_file(self) -> bool:
        return not self.is_directory


@dataclass
class BatchResult:
    """
    Per-key outcome of a multi-object rename or remove.

    Attributes:
        processed: Source keys whose sub-operations all took effect.
        failed: Source key -> description of the error that stopped it.
    """

    processed: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def total(self) -> int:
        return len(self.processed) + len(self.failed)
