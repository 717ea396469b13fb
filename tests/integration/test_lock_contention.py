"""
Integration tests for the lock protocol with several simulated instances.

Every instance has its own identity and DistributedLock but they share one
in-memory FIFO queue, the only channel they coordinate through.
"""

import asyncio
import random

from blobfs.fs.filesystem import VirtualFilesystem
from blobfs.queue.memory import InMemoryFifoBroker
from blobfs.types.lock import LockSession


class TestLockContention:
    """Integration tests for concurrent acquisition."""

    async def test_mutual_exclusion_across_instances(self, make_lock, session: LockSession):
        """Test at most one instance holds the lock at any instant."""
        locks = [make_lock(f"host-{i}", poll_jitter=0.001) for i in range(4)]
        holders: list[str] = []
        max_concurrent = 0
        grants: list[str] = []

        async def instance(lock, rounds: int) -> None:
            nonlocal max_concurrent
            for _ in range(rounds):
                handle = await lock.acquire(session)
                holders.append(lock.instance_id)
                max_concurrent = max(max_concurrent, len(holders))
                grants.append(lock.instance_id)
                await asyncio.sleep(random.uniform(0, 0.002))
                holders.remove(lock.instance_id)
                await lock.release(session, handle)

        await asyncio.wait_for(
            asyncio.gather(*(instance(lock, 5) for lock in locks)),
            timeout=30,
        )

        assert max_concurrent == 1
        assert len(grants) == 20
        assert {lock.instance_id for lock in locks} == set(grants)

    async def test_next_pending_request_is_granted_next(
        self,
        make_lock,
        broker: InMemoryFifoBroker,
        session: LockSession,
    ):
        """Test ownership passes in arrival order after each release."""
        first, second, third = (make_lock(name) for name in ("host-1", "host-2", "host-3"))
        order: list[str] = []

        held = await first.acquire(session)
        order.append("host-1")

        async def wait_then_release(lock, name: str) -> None:
            handle = await lock.acquire(session)
            order.append(name)
            await lock.release(session, handle)

        second_task = asyncio.create_task(wait_then_release(second, "host-2"))
        while len(broker.pending_bodies(session.queue_url)) < 2:
            await asyncio.sleep(0)
        third_task = asyncio.create_task(wait_then_release(third, "host-3"))
        while len(broker.pending_bodies(session.queue_url)) < 3:
            await asyncio.sleep(0)

        # Nobody else gets in while the first holder keeps the lock
        await asyncio.sleep(0.02)
        assert order == ["host-1"]

        await first.release(session, held)
        await asyncio.wait_for(asyncio.gather(second_task, third_task), timeout=10)

        assert order == ["host-1", "host-2", "host-3"]
        assert broker.pending_bodies(session.queue_url) == []

    async def test_tasks_sharing_an_instance_take_turns(
        self,
        make_lock,
        broker: InMemoryFifoBroker,
        session: LockSession,
    ):
        """Test two tasks of one instance both get the lock, in call order."""
        holder = make_lock("host-b")
        shared = make_lock("host-a", poll_interval=0.001)
        order: list[str] = []

        held = await holder.acquire(session)

        async def attempt(name: str) -> str:
            handle = await shared.acquire(session, max_wait=5)
            order.append(name)
            await asyncio.sleep(0.01)
            await shared.release(session, handle)
            return handle.lock_id

        first = asyncio.create_task(attempt("first"))
        while len(broker.pending_bodies(session.queue_url)) < 2:
            await asyncio.sleep(0)
        second = asyncio.create_task(attempt("second"))

        # The second task waits locally instead of queueing a rival request
        await asyncio.sleep(0.02)
        assert len(broker.pending_bodies(session.queue_url)) == 2

        await holder.release(session, held)
        lock_ids = await asyncio.wait_for(asyncio.gather(first, second), timeout=10)

        assert order == ["first", "second"]
        assert lock_ids[0] != lock_ids[1]
        assert broker.pending_bodies(session.queue_url) == []

    async def test_orphan_from_crashed_attempt_does_not_block(
        self,
        make_lock,
        broker: InMemoryFifoBroker,
        session: LockSession,
    ):
        """Test a restarted instance clears its own abandoned request and proceeds."""
        before_crash = make_lock("host-1")
        other = make_lock("host-2")

        held = await before_crash.acquire(session)
        # The process dies without releasing; its message reappears later
        await broker.change_visibility(session.queue_url, held.receipt_handle, 0)

        waiting = asyncio.create_task(other.acquire(session, max_wait=5))
        await asyncio.sleep(0.01)
        assert not waiting.done()

        # Same host and install location, so the same instance id
        after_restart = make_lock("host-1")
        restarted = asyncio.create_task(after_restart.acquire(session, max_wait=5))

        other_handle = await asyncio.wait_for(waiting, timeout=5)
        await other.release(session, other_handle)
        handle = await asyncio.wait_for(restarted, timeout=5)
        await after_restart.release(session, handle)

        assert broker.pending_bodies(session.queue_url) == []

    async def test_lock_serializes_appends(
        self,
        make_lock,
        fs: VirtualFilesystem,
        session: LockSession,
    ):
        """Test read-modify-write appends lose nothing when bracketed by the lock."""
        locks = [make_lock(f"host-{i}", poll_jitter=0.001) for i in range(3)]

        async def append_lines(lock, name: str) -> None:
            for n in range(3):
                async with lock.locked(session, heartbeat=False):
                    await fs.append_file("/shared/log", f"{name}-{n}\n")

        await asyncio.wait_for(
            asyncio.gather(*(append_lines(lock, f"i{idx}") for idx, lock in enumerate(locks))),
            timeout=30,
        )

        lines = (await fs.read_file("/shared/log")).decode().splitlines()
        assert sorted(lines) == sorted(f"i{i}-{n}" for i in range(3) for n in range(3))
