"""
Exception hierarchy for blobfs.
"""


class BlobFsError(Exception):
    """Base class for all blobfs errors."""


class ConfigurationError(BlobFsError):
    """A required setting is missing or invalid."""


class NotFoundError(BlobFsError):
    """The object store has no object under the requested key."""

    def __init__(self, key: str):
        super().__init__(f"No object stored under key '{key}'")
        self.key = key


class BrokerError(BlobFsError):
    """
    A queue operation failed.

    Attributes:
        operation: Broker operation that failed (e.g. "delete").
        code: Broker error code, when one is available.
    """

    def __init__(self, operation: str, message: str, code: str | None = None):
        detail = f"{operation} failed: {message}"
        if code:
            detail = f"{operation} failed ({code}): {message}"
        super().__init__(detail)
        self.operation = operation
        self.code = code


class PartialFailureError(BlobFsError):
    """
    A multi-object operation finished with some keys failed.

    Keys listed in ``result.processed`` have already taken effect; nothing is
    rolled back.
    """

    def __init__(self, operation: str, result):
        failed = ", ".join(sorted(result.failed))
        super().__init__(
            f"{operation} failed for {len(result.failed)} of "
            f"{len(result.failed) + len(result.processed)} objects: {failed}"
        )
        self.operation = operation
        self.result = result

    @property
    def failed_keys(self) -> list[str]:
        return sorted(self.result.failed)


class LockTimeoutError(BlobFsError):
    """acquire() gave up after its maximum wait."""

    def __init__(self, waited_seconds: float):
        super().__init__(f"Lock not acquired within {waited_seconds:.2f}s")
        self.waited_seconds = waited_seconds


class LockCancelledError(BlobFsError):
    """acquire() was abandoned through its cancellation signal."""
