"""
CLI module.
Contains the locked command runner.
"""

from blobfs.cli.main import run, run_locked

__all__ = ["run", "run_locked"]
