"""
Lock module.
Contains instance identity and the queue-arbitrated distributed lock.
"""

from blobfs.lock.distributed import DistributedLock
from blobfs.lock.identity import (
    InstanceIdentity,
    derive_instance_id,
    get_instance_identity,
)

__all__ = [
    "DistributedLock",
    "InstanceIdentity",
    "derive_instance_id",
    "get_instance_identity",
]
