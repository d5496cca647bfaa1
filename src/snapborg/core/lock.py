"""Exclusive run lock.

Two runs working on the same sources would snapshot, mount and remove
each other's resources, so every run holds a non-blocking exclusive lock
on a well-known file for its whole duration.
"""

import contextlib
import logging
from pathlib import Path

from filelock import FileLock, Timeout

from .. import __util__

logger = logging.getLogger(__name__)


@contextlib.contextmanager
def exclusive_lock(path):
    """Hold an exclusive flock on ``path`` for the duration of the block.

    Fails immediately instead of waiting when another process holds the
    lock. The kernel drops the lock together with the file descriptor, so
    a killed process never leaves it behind.

    Raises:
        LockBusyError: If the lock is held by another process
        LockError: If the lock file cannot be created or opened
    """
    path = Path(path)
    lock = FileLock(str(path), timeout=0, mode=0o644)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        lock.acquire()
    except Timeout as e:
        raise __util__.LockBusyError(path) from e
    except OSError as e:
        raise __util__.LockError(f"error while opening lockfile {path}: {e}") from e

    logger.debug("Acquired lock %s", path)
    try:
        yield lock
    finally:
        lock.release()
        logger.debug("Released lock %s", path)
