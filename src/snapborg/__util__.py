# pyright: standard

"""snapborg: snapborg/__util__.py
Common utility code shared between modules.

Holds the error hierarchy, the subprocess runner every external tool goes
through and the environment sanitizing used for non-archive tools.
"""

import os
import shlex
import socket
import subprocess
import time
from collections.abc import Mapping

from .__logger__ import logger

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
HEADING_RULE = "=" * 10

# Variables only the archive tool may see
SECRET_ENV_VARS = ("BORG_PASSPHRASE", "BORG_REPO")


class AbortError(Exception):
    """Base class for errors that abort a backup run."""


class CommandError(AbortError):
    """An external command could not be executed or exited non-zero."""

    def __init__(self, command, returncode=None, reason=None) -> None:
        self.command = list(command)
        self.returncode = returncode
        self.reason = reason
        if reason is not None:
            message = f"could not execute {shlex.join(self.command)!r}: {reason}"
        else:
            message = (
                f"command {shlex.join(self.command)!r} "
                f"exited with status {returncode}"
            )
        super().__init__(message)


class LockError(AbortError):
    """The run lock file could not be opened."""


class LockBusyError(LockError):
    """The run lock is held by another process."""

    def __init__(self, path) -> None:
        self.path = str(path)
        super().__init__(
            f"error while acquiring file lock {self.path} "
            "(maybe another process running?)"
        )


class ProvisionError(AbortError):
    """Creating a snapshot for a source failed."""

    def __init__(self, source, reason="") -> None:
        self.source = str(source)
        message = f"error while creating snapshot for source {self.source}"
        super().__init__(f"{message}: {reason}" if reason else message)


class DiscoveryError(AbortError):
    """No snapshot could be found for a source."""

    def __init__(self, source, reason="no available snapshots") -> None:
        self.source = str(source)
        super().__init__(
            f"error while getting latest snapshot for source {self.source}: {reason}"
        )


class MountError(AbortError):
    """Mounting a snapshot failed."""

    def __init__(self, source, mountpoint, reason="") -> None:
        self.source = str(source)
        self.mountpoint = str(mountpoint)
        message = f"error while mounting snapshot of {self.source} at {self.mountpoint}"
        super().__init__(f"{message}: {reason}" if reason else message)


class ArchiveError(AbortError):
    """The archive tool failed on its own."""


class DestroyError(AbortError):
    """Removing a snapshot failed."""

    def __init__(self, source, snapshot, reason="") -> None:
        self.source = str(source)
        self.snapshot = snapshot
        message = f"error while removing snapshot {snapshot} for source {self.source}"
        super().__init__(f"{message}: {reason}" if reason else message)


class UnrecognizedSnapshotLabel(AbortError):
    """A snapshot name does not have the structure a tool requires."""

    def __init__(self, handle) -> None:
        self.handle = handle
        super().__init__(f"unrecognized snapshot format: {handle!r}")


class FatalError(Exception):
    """System state diverged from what the run believes; stop everything."""


class UnmountError(FatalError):
    """Unmounting failed, manual cleanup is required."""

    def __init__(self, mountpoint, reason="") -> None:
        self.mountpoint = str(mountpoint)
        message = f"unmount {self.mountpoint} failed, need manual cleanup"
        super().__init__(f"{message}: {reason}" if reason else message)


def exec_subprocess(command, method="check_call", **kwargs):
    """Run an external command through the given subprocess method.

    ``method`` names a function of the subprocess module (check_call,
    check_output, run or Popen). Failures are raised as CommandError.
    """
    command = [str(part) for part in command]
    logger.debug("Executing command: %s", shlex.join(command))
    try:
        return getattr(subprocess, method)(command, **kwargs)
    except subprocess.CalledProcessError as e:
        logger.debug("Command %s exited with %d", command[0], e.returncode)
        raise CommandError(command, returncode=e.returncode) from e
    except OSError as e:
        raise CommandError(command, reason=e.strerror or str(e)) from e


def sanitized_env(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a fresh environment with the archive secrets blanked out.

    ``os.environ`` itself is never modified.
    """
    env = dict(os.environ if environ is None else environ)
    for name in SECRET_ENV_VARS:
        env[name] = ""
    return env


def describe_error(error: BaseException) -> str:
    """Render an exception and the notes attached to it on one line."""
    notes = getattr(error, "__notes__", None) or []
    return "; ".join([str(error), *notes])


def get_hostname() -> str:
    return socket.gethostname()


def timestamp(time_obj=None) -> str:
    """Format the given (or current) time the way snapshots are labelled."""
    return time.strftime(DATE_FORMAT, time_obj or time.localtime())


def log_heading(caption) -> str:
    """Formatted heading for logging output sections."""
    return f"{HEADING_RULE} {caption} {HEADING_RULE}"
