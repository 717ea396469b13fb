"""
Process instance identity.

Lock requests carry the id of the instance that published them so that an
instance can recognise its own requests at the head of the queue. The id is a
SHA-1 of the host name and the install location: stable across restarts of the
same install, different between hosts or install paths. It is a label, not a
credential.
"""

import hashlib
import socket
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

INSTALL_LOCATION = str(Path(__file__).resolve().parent.parent)


def derive_instance_id(hostname: str, location: str) -> str:
    """Digest of host identity concatenated with install location."""
    return hashlib.sha1((hostname + location).encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class InstanceIdentity:
    """Fingerprint of one runtime instance."""

    hostname: str
    location: str
    instance_id: str

    @classmethod
    def from_parts(cls, hostname: str, location: str) -> "InstanceIdentity":
        return cls(
            hostname=hostname,
            location=location,
            instance_id=derive_instance_id(hostname, location),
        )


@lru_cache
def get_instance_identity() -> InstanceIdentity:
    """Identity of this process, computed on first use."""
    return InstanceIdentity.from_parts(socket.gethostname(), INSTALL_LOCATION)
