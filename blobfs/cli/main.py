"""
Locked command runner.

Runs a command inside the global critical section shared by every instance
pointing at the same lock queue:

    blobfs-locked --max-wait 60 -- ./migrate.sh

SIGINT and SIGTERM stop the wait for the lock. Once the lock is held the
heartbeat keeps it and the signals are left to the child process.
"""

import argparse
import asyncio
import logging
import signal
import sys

from blobfs.config import get_settings
from blobfs.errors import LockCancelledError, LockTimeoutError
from blobfs.observability.logging import bind_context, setup_logging
from blobfs.observability.metrics import setup_metrics
from blobfs.observability.tracing import setup_tracing
from blobfs.persistence import FsStore

logger = logging.getLogger(__name__)

EXIT_LOCK_NOT_ACQUIRED = 75


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="blobfs-locked",
        description="Run a command while holding the blobfs distributed lock.",
    )
    parser.add_argument(
        "--max-wait",
        type=float,
        default=None,
        help="Give up after this many seconds without the lock (default: wait forever)",
    )
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to run")
    args = parser.parse_args(argv)

    if args.command and args.command[0] == "--":
        args.command = args.command[1:]
    if not args.command:
        parser.error("no command given")
    return args


async def run_locked(store: FsStore, command: list[str], max_wait: float | None = None) -> int:
    """
    Acquire the lock, run command, release.

    Returns:
        The command's exit code, or EXIT_LOCK_NOT_ACQUIRED.
    """
    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()

    def stop_waiting() -> None:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, cancel.set)

    try:
        await store.init()
        async with store.locked(max_wait=max_wait, cancel=cancel) as handle:
            stop_waiting()
            logger.info("Running command", extra={"command": command, "lock_id": handle.lock_id})
            process = await asyncio.create_subprocess_exec(*command)
            return await process.wait()
    except (LockTimeoutError, LockCancelledError) as e:
        logger.warning(f"Lock not acquired: {e}")
        return EXIT_LOCK_NOT_ACQUIRED
    finally:
        stop_waiting()


async def run_async(argv: list[str] | None = None) -> int:
    """Run the locked command asynchronously."""
    args = parse_args(argv)
    settings = get_settings()

    setup_logging()
    bind_context(command=" ".join(args.command))
    setup_metrics(settings.prometheus_port)
    setup_tracing()

    store = FsStore.from_settings(settings)
    return await run_locked(store, args.command, max_wait=args.max_wait)


def run() -> None:
    """Run the locked command runner."""
    sys.exit(asyncio.run(run_async()))


if __name__ == "__main__":
    run()
