"""
In-process FIFO queue broker.

Simulates the SQS FIFO behaviour the lock protocol depends on, so several
simulated instances can contend for the lock inside one event loop:

- strict order within a message group
- a group is blocked while its head message is received and still hidden
- visibility expiry measured on an injectable clock
- a fresh receipt handle per delivery, invalidating older ones
- deduplication tokens collapsing repeated enqueues within a window
"""

import asyncio
import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from blobfs.constants import (
    DEDUP_WINDOW_SECONDS,
    DEFAULT_VISIBILITY_TIMEOUT_SECONDS,
    FIFO_QUEUE_SUFFIX,
)
from blobfs.errors import BrokerError
from blobfs.queue.base import QueueBroker
from blobfs.types.lock import QueueMessage

logger = logging.getLogger(__name__)

QUEUE_URL_PREFIX = "memory://queue/"


@dataclass
class _Message:
    message_id: str
    body: str
    group_id: str
    receipt_handle: str | None = None
    invisible_until: float = 0.0


@dataclass
class _Queue:
    name: str
    fifo: bool
    visibility_timeout: int
    messages: list[_Message] = field(default_factory=list)
    dedup_tokens: dict[str, float] = field(default_factory=dict)


class InMemoryFifoBroker(QueueBroker):
    """Dictionary-backed QueueBroker."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """
        Args:
            clock: Source of the current time in seconds, used for visibility
                and deduplication windows.
        """
        self._clock = clock
        self._queues: dict[str, _Queue] = {}

    def _get_queue(self, operation: str, queue_url: str) -> _Queue:
        try:
            return self._queues[queue_url]
        except KeyError:
            raise BrokerError(
                operation,
                f"queue {queue_url} does not exist",
                code="AWS.SimpleQueueService.NonExistentQueue",
            ) from None

    def _find_received(self, operation: str, queue: _Queue, receipt_handle: str) -> _Message:
        for message in queue.messages:
            if message.receipt_handle == receipt_handle:
                return message
        raise BrokerError(
            operation,
            "message not found for receipt handle",
            code="ReceiptHandleIsInvalid",
        )

    async def create_queue(
        self,
        name: str,
        fifo: bool = True,
        visibility_timeout: int | None = None,
    ) -> str:
        await asyncio.sleep(0)
        if fifo != name.endswith(FIFO_QUEUE_SUFFIX):
            raise BrokerError(
                "create_queue",
                f"FIFO queue names must end in '{FIFO_QUEUE_SUFFIX}'",
                code="InvalidParameterValue",
            )
        queue_url = f"{QUEUE_URL_PREFIX}{name}"
        if queue_url not in self._queues:
            self._queues[queue_url] = _Queue(
                name=name,
                fifo=fifo,
                visibility_timeout=(
                    DEFAULT_VISIBILITY_TIMEOUT_SECONDS
                    if visibility_timeout is None
                    else visibility_timeout
                ),
            )
            logger.debug("Created queue", extra={"queue_url": queue_url})
        return queue_url

    async def enqueue(
        self,
        queue_url: str,
        body: str,
        group_id: str,
        dedup_token: str,
    ) -> None:
        await asyncio.sleep(0)
        queue = self._get_queue("enqueue", queue_url)
        now = self._clock()

        queue.dedup_tokens = {
            token: seen_at
            for token, seen_at in queue.dedup_tokens.items()
            if now - seen_at < DEDUP_WINDOW_SECONDS
        }
        if dedup_token in queue.dedup_tokens:
            return
        queue.dedup_tokens[dedup_token] = now

        queue.messages.append(
            _Message(message_id=uuid.uuid4().hex, body=body, group_id=group_id)
        )

    async def receive(self, queue_url: str, wait_seconds: int = 0) -> QueueMessage | None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + wait_seconds
        while True:
            await asyncio.sleep(0)
            message = self._receive_now(self._get_queue("receive", queue_url))
            remaining = deadline - loop.time()
            if message is not None or remaining <= 0:
                return message
            await asyncio.sleep(min(0.05, remaining))

    def _receive_now(self, queue: _Queue) -> QueueMessage | None:
        now = self._clock()
        blocked_groups: set[str] = set()
        for message in queue.messages:
            if queue.fifo and message.group_id in blocked_groups:
                continue
            if message.invisible_until > now:
                blocked_groups.add(message.group_id)
                continue
            message.receipt_handle = uuid.uuid4().hex
            message.invisible_until = now + queue.visibility_timeout
            return QueueMessage(
                body=message.body,
                receipt_handle=message.receipt_handle,
                message_id=message.message_id,
            )
        return None

    async def change_visibility(
        self,
        queue_url: str,
        receipt_handle: str,
        timeout_seconds: int,
    ) -> None:
        await asyncio.sleep(0)
        queue = self._get_queue("change_visibility", queue_url)
        message = self._find_received("change_visibility", queue, receipt_handle)
        message.invisible_until = self._clock() + timeout_seconds

    async def delete(self, queue_url: str, receipt_handle: str) -> None:
        await asyncio.sleep(0)
        queue = self._get_queue("delete", queue_url)
        message = self._find_received("delete", queue, receipt_handle)
        queue.messages.remove(message)

    def pending_bodies(self, queue_url: str) -> list[str]:
        """Bodies of every undeleted message, in queue order."""
        return [message.body for message in self._get_queue("inspect", queue_url).messages]
