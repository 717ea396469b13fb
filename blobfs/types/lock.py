"""
Lock-related type definitions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LockRequest(BaseModel):
    """
    Body of a lock request message on the arbitration queue.

    Serialized with camelCase keys: ``{"instanceId": ..., "lockId": ...}``.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    instance_id: str = Field(alias="instanceId")
    lock_id: str = Field(alias="lockId")

    @field_validator("lock_id", mode="before")
    @classmethod
    def coerce_numeric_lock_id(cls, value: object) -> object:
        # Other producers may publish numeric ids such as timestamps
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    def to_body(self) -> str:
        """Serialize to a queue message body."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_body(cls, body: str) -> "LockRequest":
        """Parse a queue message body. Raises pydantic.ValidationError."""
        return cls.model_validate_json(body)


@dataclass(frozen=True)
class QueueMessage:
    """
    A received queue message.

    The receipt handle is the only way to delete or re-hide this exact
    delivery of the message.
    """

    body: str
    receipt_handle: str
    message_id: str | None = None


@dataclass(frozen=True)
class LockSession:
    """
    Binding to a provisioned arbitration queue.

    Produced by DistributedLock.init() and passed to every lock call.
    """

    queue_url: str
    group_id: str


@dataclass(frozen=True)
class LockHandle:
    """
    Proof of a granted lock.
    Wraps the receipt handle of the queue message that must be deleted on release.
    """

    receipt_handle: str
    lock_id: str
    instance_id: str
    acquired_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def held_seconds(self) -> float:
        """Seconds since the lock was granted."""
        return (datetime.now(timezone.utc) - self.acquired_at).total_seconds()
