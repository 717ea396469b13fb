"""
Queue broker interface.
"""

from abc import ABC, abstractmethod

from blobfs.types.lock import QueueMessage


class QueueBroker(ABC):
    """
    Message queue with FIFO groups and visibility timeouts.

    Within one message group of a FIFO queue, messages are delivered strictly
    in order, and while a received message of the group is still hidden, the
    group delivers nothing else.

    Every failure is raised as BrokerError.
    """

    @abstractmethod
    async def create_queue(
        self,
        name: str,
        fifo: bool = True,
        visibility_timeout: int | None = None,
    ) -> str:
        """Create the queue if needed and return its address."""

    @abstractmethod
    async def enqueue(
        self,
        queue_url: str,
        body: str,
        group_id: str,
        dedup_token: str,
    ) -> None:
        """Append a message to a group."""

    @abstractmethod
    async def receive(self, queue_url: str, wait_seconds: int = 0) -> QueueMessage | None:
        """Receive at most one visible message, hiding it for the visibility timeout."""

    @abstractmethod
    async def change_visibility(
        self,
        queue_url: str,
        receipt_handle: str,
        timeout_seconds: int,
    ) -> None:
        """Hide a received message for timeout_seconds from now (0 shows it again)."""

    @abstractmethod
    async def delete(self, queue_url: str, receipt_handle: str) -> None:
        """Delete a received message."""
