"""
Storage module.
Contains the object store interface and its S3 and in-memory implementations.
"""

from blobfs.storage.base import ObjectStore
from blobfs.storage.memory import InMemoryObjectStore
from blobfs.storage.s3 import S3ObjectStore

__all__ = [
    "ObjectStore",
    "InMemoryObjectStore",
    "S3ObjectStore",
]
