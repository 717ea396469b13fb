"""
Filesystem module.
Contains the virtual filesystem and its path helpers.
"""

from blobfs.fs import paths
from blobfs.fs.filesystem import VirtualFilesystem

__all__ = [
    "VirtualFilesystem",
    "paths",
]
