"""
Path helpers for the virtual filesystem.

Paths are ``/``-separated strings. A store key is the path without its
leading separator.
"""

import posixpath

from blobfs.constants import PATH_SEP

sep = PATH_SEP
basename = posixpath.basename


def join(a: str, b: str) -> str:
    """Plain separator concatenation; no normalization."""
    return f"{a}{sep}{b}"


def to_key(path: str) -> str:
    """Store key for a path: one leading separator stripped."""
    return path[1:] if path.startswith(sep) else path


def subtree_root(path: str) -> str:
    """Key prefix covering a path and everything below it ("" for the root)."""
    return to_key(path).rstrip(sep)


def in_subtree(key: str, root: str) -> bool:
    """
    True when key is root itself or lies below it.

    ``a/e`` is in the subtree of ``a``; ``ab/e`` is not.
    """
    return not root or key == root or key.startswith(root + sep)


def relocate(key: str, old_root: str, new_root: str) -> str:
    """Move key from below old_root to the equivalent position below new_root."""
    relative = key[len(old_root):] if old_root else sep + key
    return to_key(new_root + relative)
