"""
Pytest configuration and shared fixtures.
"""

from collections.abc import Callable

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from blobfs.fs.filesystem import VirtualFilesystem
from blobfs.lock.distributed import DistributedLock
from blobfs.lock.identity import InstanceIdentity
from blobfs.observability.metrics import MetricsCollector
from blobfs.queue.memory import InMemoryFifoBroker
from blobfs.storage.memory import InMemoryObjectStore
from blobfs.types.lock import LockSession

TEST_QUEUE_NAME = "test-lock.fifo"


class FakeClock:
    """Manually advanced clock for visibility and dedup windows."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def registry() -> CollectorRegistry:
    """Private Prometheus registry per test."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    """Metrics collector on the private registry."""
    return MetricsCollector(registry=registry)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def broker(clock: FakeClock) -> InMemoryFifoBroker:
    return InMemoryFifoBroker(clock=clock)


@pytest.fixture
def object_store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def fs(object_store: InMemoryObjectStore, metrics: MetricsCollector) -> VirtualFilesystem:
    return VirtualFilesystem(object_store, metrics=metrics)


@pytest.fixture
def make_identity() -> Callable[[str], InstanceIdentity]:
    """Build a distinct identity per simulated host."""

    def factory(hostname: str) -> InstanceIdentity:
        return InstanceIdentity.from_parts(hostname, "/opt/app")

    return factory


@pytest.fixture
def make_lock(
    broker: InMemoryFifoBroker,
    metrics: MetricsCollector,
    make_identity: Callable[[str], InstanceIdentity],
) -> Callable[..., DistributedLock]:
    """Build a lock for a simulated instance sharing the test broker."""

    def factory(hostname: str = "host-a", **kwargs) -> DistributedLock:
        options = {
            "queue_name": TEST_QUEUE_NAME,
            "group_id": "default",
            "visibility_timeout": 30,
            "heartbeat_interval": 10.0,
            "poll_interval": 0.0,
            "poll_jitter": 0.0,
            "receive_wait": 0,
            "metrics": metrics,
        }
        options.update(kwargs)
        return DistributedLock(broker, make_identity(hostname), **options)

    return factory


@pytest_asyncio.fixture
async def session(make_lock: Callable[..., DistributedLock]) -> LockSession:
    """Provisioned arbitration queue."""
    return await make_lock().init()
