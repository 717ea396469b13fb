"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class PollOutcome(StrEnum):
    """
    What a single receive() inside the acquire loop observed.

    - EMPTY: no message visible in the arbitration group
    - FOREIGN: head request belongs to another instance, visibility restored
    - ORPHAN: head request is ours from an abandoned attempt, deleted
    - MALFORMED: head message is not a lock request, deleted
    - ACQUIRED: head request is the one this attempt published
    """

    EMPTY = "empty"
    FOREIGN = "foreign"
    ORPHAN = "orphan"
    MALFORMED = "malformed"
    ACQUIRED = "acquired"


class FsOperation(StrEnum):
    """Virtual filesystem operations, used as metric labels."""

    READDIR = "readdir"
    READ_FILE = "read_file"
    WRITE_FILE = "write_file"
    APPEND_FILE = "append_file"
    RENAME = "rename"
    EXISTS = "exists"
    STAT = "stat"
    MKDIR = "mkdir"
    REMOVE = "remove"


# Path conventions
PATH_SEP = "/"

# Default values
DEFAULT_VISIBILITY_TIMEOUT_SECONDS = 30
DEDUP_WINDOW_SECONDS = 300
FIFO_QUEUE_SUFFIX = ".fifo"

# S3 error codes meaning "no such object"
S3_NOT_FOUND_CODES = frozenset({"NoSuchKey", "404", "NotFound"})

# Metrics names
METRIC_LOCK_ACQUIRED = "lock_acquired_total"
METRIC_LOCK_RELEASED = "lock_released_total"
METRIC_LOCK_WAIT = "lock_wait_seconds"
METRIC_LOCK_POLLS = "lock_polls_total"
METRIC_LOCK_ABANDONED = "lock_abandoned_total"
METRIC_FS_OPERATIONS = "fs_operations_total"
METRIC_FS_BATCH_FAILURES = "fs_batch_failures_total"

# Trace span names
SPAN_LOCK_INIT = "lock.init"
SPAN_LOCK_ACQUIRE = "lock.acquire"
SPAN_LOCK_RELEASE = "lock.release"
SPAN_FS_RENAME = "fs.rename"
SPAN_FS_REMOVE = "fs.remove"
