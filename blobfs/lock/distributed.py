"""
Distributed lock arbitrated through a FIFO queue.

Every acquire() publishes a lock request ``{instanceId, lockId}`` into a single
message group of a FIFO queue, then polls the queue. The broker delivers the
group strictly in order and hides the group while its head is received, so at
most one instance can be looking at the head request at any time:

- the head is another instance's request: make it visible again at once and
  keep polling, so its owner can see it
- the head is one of our own requests from an earlier, abandoned attempt:
  delete it (an orphan) and keep polling
- the head is the request this attempt published: the lock is ours, and the
  message stays hidden until release() deletes it

Requests are told apart by instance id alone, so one instance must not have
two attempts in the queue at once: the later one would delete the earlier one
as an orphan. Tasks sharing a DistributedLock therefore take turns on a local
gate before publishing. A second DistributedLock with the same identity is
treated as a restart of the instance and clears the first one's requests.

The lock is advisory and global. Nothing stops code that never called
acquire() from touching the shared state.
"""

import asyncio
import logging
import random
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from pydantic import ValidationError

from blobfs.config import get_settings
from blobfs.constants import (
    SPAN_LOCK_ACQUIRE,
    SPAN_LOCK_INIT,
    SPAN_LOCK_RELEASE,
    PollOutcome,
)
from blobfs.errors import BrokerError, LockCancelledError, LockTimeoutError
from blobfs.lock.identity import InstanceIdentity, get_instance_identity
from blobfs.observability.metrics import MetricsCollector, get_metrics
from blobfs.observability.tracing import get_tracer
from blobfs.queue.base import QueueBroker
from blobfs.types.lock import LockHandle, LockRequest, LockSession, QueueMessage

logger = logging.getLogger(__name__)

MAX_LOGGED_BODY = 256


class DistributedLock:
    """
    Cross-process mutual exclusion over a QueueBroker.

    Features:
    - Arrival-order fairness inherited from the FIFO message group
    - Cleanup of orphaned requests left by this instance's abandoned attempts
    - Optional maximum wait and cancellation signal on acquire()
    - Heartbeat keeping the held request hidden past the visibility timeout
    """

    def __init__(
        self,
        broker: QueueBroker,
        identity: InstanceIdentity | None = None,
        *,
        queue_name: str | None = None,
        group_id: str | None = None,
        visibility_timeout: int | None = None,
        heartbeat_interval: float | None = None,
        poll_interval: float | None = None,
        poll_jitter: float | None = None,
        receive_wait: int | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the lock.

        Args:
            broker: Queue broker used for arbitration.
            identity: Identity of this instance. Defaults to the process identity.
            queue_name: FIFO queue name (must end in ".fifo").
            group_id: Message group all lock requests go to.
            visibility_timeout: Seconds a received request stays hidden.
            heartbeat_interval: Seconds between visibility extensions in locked().
            poll_interval: Fixed delay after a poll that did not grant the lock.
            poll_jitter: Upper bound of a random delay added to poll_interval.
            receive_wait: Long-poll seconds passed to each receive().
            metrics: Metrics collector. Defaults to the global one.
        """
        settings = get_settings()

        self._broker = broker
        self.identity = identity or get_instance_identity()
        self.queue_name = queue_name or settings.lock_queue_name
        self.group_id = group_id or settings.lock_group_id
        self.visibility_timeout = (
            settings.lock_visibility_timeout_seconds
            if visibility_timeout is None
            else visibility_timeout
        )
        self.heartbeat_interval = (
            settings.lock_heartbeat_interval_seconds
            if heartbeat_interval is None
            else heartbeat_interval
        )
        self.poll_interval = (
            settings.lock_poll_interval_seconds if poll_interval is None else poll_interval
        )
        self.poll_jitter = settings.lock_poll_jitter_seconds if poll_jitter is None else poll_jitter
        self.receive_wait = (
            settings.lock_receive_wait_seconds if receive_wait is None else receive_wait
        )
        self._metrics = metrics or get_metrics()

        # Held from before publishing a request until its release
        self._gate = asyncio.Lock()
        self._gate_holder: str | None = None

        if self.heartbeat_interval >= self.visibility_timeout:
            logger.warning(
                "Heartbeat interval is not shorter than the visibility timeout; "
                "a held lock request may reappear at the head of the queue",
                extra={
                    "heartbeat_interval": self.heartbeat_interval,
                    "visibility_timeout": self.visibility_timeout,
                },
            )

    @property
    def instance_id(self) -> str:
        return self.identity.instance_id

    async def init(self) -> LockSession:
        """
        Provision (or bind to) the arbitration queue.

        Returns:
            LockSession: To be passed to every other lock call.
        """
        with get_tracer().start_as_current_span(SPAN_LOCK_INIT):
            queue_url = await self._broker.create_queue(
                self.queue_name,
                fifo=True,
                visibility_timeout=self.visibility_timeout,
            )

        logger.info(
            "Lock queue ready",
            extra={"queue_url": queue_url, "group_id": self.group_id},
        )
        return LockSession(queue_url=queue_url, group_id=self.group_id)

    async def acquire(
        self,
        session: LockSession,
        *,
        max_wait: float | None = None,
        cancel: asyncio.Event | None = None,
    ) -> LockHandle:
        """
        Block until this instance owns the lock.

        An attempt that stops early (timeout, cancellation, task cancellation)
        leaves its request in the queue. The next acquire() from this instance
        removes it as an orphan.

        Args:
            session: Session returned by init().
            max_wait: Give up after this many seconds. None waits forever.
            cancel: Event checked after every poll; once set, stop waiting.

        Returns:
            LockHandle: Pass to release() exactly once.

        Raises:
            LockTimeoutError: max_wait elapsed.
            LockCancelledError: cancel was set.
            BrokerError: A queue call failed.
        """
        request = LockRequest(instance_id=self.instance_id, lock_id=uuid.uuid4().hex)
        loop = asyncio.get_running_loop()
        started = loop.time()

        if not await self._enter_gate(max_wait, cancel):
            waited = loop.time() - started
            reason = "cancelled" if cancel is not None and cancel.is_set() else "timeout"
            self._metrics.record_lock_abandoned(reason)
            logger.warning(
                "Lock acquire abandoned while another task of this instance held the lock",
                extra={"lock_id": request.lock_id, "reason": reason},
            )
            if reason == "cancelled":
                raise LockCancelledError(f"Acquire of lock {request.lock_id} cancelled")
            raise LockTimeoutError(waited)

        try:
            with get_tracer().start_as_current_span(SPAN_LOCK_ACQUIRE) as span:
                span.set_attribute("lock_id", request.lock_id)
                span.set_attribute("instance_id", request.instance_id)

                await self._broker.enqueue(
                    session.queue_url,
                    request.to_body(),
                    group_id=session.group_id,
                    dedup_token=uuid.uuid4().hex,
                )
                logger.debug("Published lock request", extra={"lock_id": request.lock_id})

                try:
                    handle = await self._wait_for_turn(
                        session, request, started, max_wait, cancel
                    )
                except asyncio.CancelledError:
                    self._abandon(request, "task_cancelled")
                    raise

                waited = loop.time() - started
                span.set_attribute("wait_seconds", waited)
        except BaseException:
            self._gate.release()
            raise

        self._gate_holder = handle.lock_id
        self._metrics.record_lock_acquired(self.instance_id, waited)
        logger.info(
            "Lock acquired",
            extra={"lock_id": request.lock_id, "wait_seconds": round(waited, 3)},
        )
        return handle

    async def _enter_gate(self, max_wait: float | None, cancel: asyncio.Event | None) -> bool:
        """
        Wait until no other task of this instance holds or is acquiring the lock.

        Returns:
            bool: False if max_wait elapsed or cancel was set first.
        """
        if not self._gate.locked():
            await self._gate.acquire()
            return True

        entering = asyncio.ensure_future(self._gate.acquire())
        cancelled = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
        waiters = {entering} if cancelled is None else {entering, cancelled}
        try:
            await asyncio.wait(waiters, timeout=max_wait, return_when=asyncio.FIRST_COMPLETED)
            return entering.done()
        except asyncio.CancelledError:
            if entering.done() and not entering.cancelled():
                self._gate.release()
            raise
        finally:
            if cancelled is not None:
                cancelled.cancel()
            if not entering.done():
                entering.cancel()

    def _leave_gate(self, handle: LockHandle) -> None:
        if self._gate_holder == handle.lock_id:
            self._gate_holder = None
            self._gate.release()

    async def _wait_for_turn(
        self,
        session: LockSession,
        request: LockRequest,
        started: float,
        max_wait: float | None,
        cancel: asyncio.Event | None,
    ) -> LockHandle:
        loop = asyncio.get_running_loop()

        while True:
            message = await self._broker.receive(
                session.queue_url, wait_seconds=self.receive_wait
            )
            outcome = await self._inspect(session, request, message)
            self._metrics.record_poll(outcome)

            if outcome is PollOutcome.ACQUIRED:
                return LockHandle(
                    receipt_handle=message.receipt_handle,
                    lock_id=request.lock_id,
                    instance_id=request.instance_id,
                )

            if cancel is not None and cancel.is_set():
                self._abandon(request, "cancelled")
                raise LockCancelledError(f"Acquire of lock {request.lock_id} cancelled")

            waited = loop.time() - started
            if max_wait is not None and waited >= max_wait:
                self._abandon(request, "timeout")
                raise LockTimeoutError(waited)

            # An orphan was just removed, so the next request may already be ours
            if outcome in (PollOutcome.EMPTY, PollOutcome.FOREIGN):
                await self._backoff()

    async def _inspect(
        self,
        session: LockSession,
        request: LockRequest,
        message: QueueMessage | None,
    ) -> PollOutcome:
        """Classify the received head message and apply the matching side effect."""
        if message is None:
            return PollOutcome.EMPTY

        try:
            head = LockRequest.from_body(message.body)
        except ValidationError:
            # Nobody can ever claim it and it blocks the whole group
            logger.warning(
                "Deleting malformed message from lock queue",
                extra={
                    "message_id": message.message_id,
                    "body": message.body[:MAX_LOGGED_BODY],
                },
            )
            await self._broker.delete(session.queue_url, message.receipt_handle)
            return PollOutcome.MALFORMED

        if head.instance_id != request.instance_id:
            await self._broker.change_visibility(session.queue_url, message.receipt_handle, 0)
            return PollOutcome.FOREIGN

        if head.lock_id != request.lock_id:
            logger.info(
                "Removing orphaned lock request",
                extra={"orphan_lock_id": head.lock_id, "lock_id": request.lock_id},
            )
            await self._broker.delete(session.queue_url, message.receipt_handle)
            return PollOutcome.ORPHAN

        return PollOutcome.ACQUIRED

    async def _backoff(self) -> None:
        delay = self.poll_interval
        if self.poll_jitter > 0:
            delay += random.uniform(0, self.poll_jitter)
        await asyncio.sleep(delay)

    def _abandon(self, request: LockRequest, reason: str) -> None:
        self._metrics.record_lock_abandoned(reason)
        logger.warning(
            "Lock acquire abandoned; request left in queue as an orphan",
            extra={"lock_id": request.lock_id, "reason": reason},
        )

    async def release(self, session: LockSession, handle: LockHandle) -> None:
        """
        Release a held lock by deleting its request from the queue.

        The next pending request in the group becomes the head. Releasing the
        same handle twice raises the broker's BrokerError. Other tasks of this
        instance may acquire again even if the delete failed.
        """
        try:
            with get_tracer().start_as_current_span(SPAN_LOCK_RELEASE) as span:
                span.set_attribute("lock_id", handle.lock_id)
                await self._broker.delete(session.queue_url, handle.receipt_handle)
        finally:
            self._leave_gate(handle)

        self._metrics.record_lock_released(self.instance_id)
        logger.info(
            "Lock released",
            extra={"lock_id": handle.lock_id, "held_seconds": round(handle.held_seconds, 3)},
        )

    async def extend(
        self,
        session: LockSession,
        handle: LockHandle,
        timeout: int | None = None,
    ) -> None:
        """
        Keep a held request hidden for another timeout seconds from now.

        Args:
            session: Session returned by init().
            handle: Handle of the held lock.
            timeout: Seconds; defaults to the configured visibility timeout.
        """
        await self._broker.change_visibility(
            session.queue_url,
            handle.receipt_handle,
            self.visibility_timeout if timeout is None else timeout,
        )

    @asynccontextmanager
    async def locked(
        self,
        session: LockSession,
        *,
        max_wait: float | None = None,
        cancel: asyncio.Event | None = None,
        heartbeat: bool = True,
    ) -> AsyncIterator[LockHandle]:
        """
        Hold the lock for the duration of an ``async with`` block.

        Example:
            async with lock.locked(session):
                await fs.append_file("/log", b"entry")
        """
        handle = await self.acquire(session, max_wait=max_wait, cancel=cancel)

        heartbeat_task: asyncio.Task | None = None
        if heartbeat:
            heartbeat_task = asyncio.create_task(self._heartbeat_loop(session, handle))

        try:
            yield handle
        finally:
            if heartbeat_task is not None:
                heartbeat_task.cancel()
                try:
                    await heartbeat_task
                except asyncio.CancelledError:
                    pass
            await self.release(session, handle)

    async def _heartbeat_loop(self, session: LockSession, handle: LockHandle) -> None:
        """
        Periodically extend the held request's visibility.

        Without it the request reappears at the head of the group once the
        visibility timeout passes.
        """
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            try:
                await self.extend(session, handle)
                logger.debug("Extended lock visibility", extra={"lock_id": handle.lock_id})
            except BrokerError:
                logger.exception(
                    "Failed to extend lock visibility",
                    extra={"lock_id": handle.lock_id},
                )
