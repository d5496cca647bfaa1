# pyright: standard

"""snapborg: snapborg/snapshot/common.py
Common functionality among snapshot provisioners.
"""

import subprocess
import sys

from snapborg import __util__
from snapborg.__logger__ import logger

# e.g. com.apple.TimeMachine.2024-01-01-120000.local
SNAPSHOT_NAME_PARTS = 5
SNAPSHOT_DATE_PART = 3


def snapshot_label(handle, strict=False) -> str:
    """Return the human meaningful part of a snapshot name.

    A structured name yields its date part, anything else is its own label.
    With ``strict`` a name that isn't structured raises
    UnrecognizedSnapshotLabel instead.
    """
    parts = handle.split(".")
    if len(parts) == SNAPSHOT_NAME_PARTS:
        return parts[SNAPSHOT_DATE_PART]
    if strict:
        raise __util__.UnrecognizedSnapshotLabel(handle)
    return handle


class Provisioner:
    """Generic structure of a snapshot provisioner.

    One provisioner serves all sources of a run. Its methods only touch
    the source they are given, so they may run concurrently for distinct
    sources.
    """

    def __init__(self, config=None, **kwargs) -> None:
        """
        Initialize the Provisioner with a configuration dictionary.

        Args:
            config (dict): Configuration dictionary containing tool paths.
            kwargs: Additional keyword arguments overriding ``config``.
        """
        config = config or {}
        self.config = {}
        self.config["snapshot_util"] = config.get("snapshot_util", "./apfs/snapUtil")
        self.config["tmutil"] = config.get("tmutil", "tmutil")

        for key, value in kwargs.items():
            self.config[key] = value

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def create(self, source) -> str:
        """Create a snapshot of ``source`` and return its handle."""
        label = __util__.timestamp()
        logger.info("Creating snapshot for source %s", source)
        cmd = self._build_create_command(label, source)
        try:
            self._exec_command(cmd, stdout=sys.stderr, stderr=sys.stderr)
        except __util__.CommandError as e:
            raise __util__.ProvisionError(source, str(e)) from e
        handle = self._created_handle(label, source)
        logger.info("Created snapshot %s for source %s", handle, source)
        return handle

    def list_snapshots(self, source) -> list[str]:
        """Return the snapshot names of ``source``, oldest first."""
        cmd = self._build_list_command(source)
        try:
            output = self._exec_command(cmd, method="check_output", text=True)
        except __util__.CommandError as e:
            raise __util__.DiscoveryError(source, str(e)) from e

        snapshots = []
        for line in output.splitlines():
            line = line.strip()
            # tmutil starts with a header like "Snapshots for disk /:"
            if not line or line.endswith(":"):
                continue
            snapshots.append(line)
        logger.debug("Found %d snapshot(s) for %s", len(snapshots), source)
        return snapshots

    def latest(self, source) -> str:
        """Return the newest existing snapshot of ``source``."""
        snapshots = self.list_snapshots(source)
        if not snapshots:
            raise __util__.DiscoveryError(source)
        return snapshots[-1]

    def destroy(self, handle, source) -> None:
        """Remove a snapshot created for ``source``."""
        logger.info("Removing snapshot %s for source %s", handle, source)
        try:
            cmd = self._build_destroy_command(handle, source)
            self._exec_command(cmd, stdout=sys.stderr, stderr=sys.stderr)
        except (__util__.CommandError, __util__.UnrecognizedSnapshotLabel) as e:
            raise __util__.DestroyError(source, handle, str(e)) from e
        logger.info("Removed snapshot %s for source %s", handle, source)

    # The following methods must be implemented by provisioners unless the
    # default behaviour is wanted.

    def _created_handle(self, label, source) -> str:
        """Find the handle of the snapshot that was just created."""
        try:
            return self.latest(source)
        except __util__.DiscoveryError as e:
            raise __util__.ProvisionError(source, str(e)) from e

    def _build_create_command(self, label, source):
        raise NotImplementedError

    def _build_list_command(self, source):
        return [self.config["tmutil"], "listlocalsnapshots", str(source)]

    def _build_destroy_command(self, handle, source):
        raise NotImplementedError

    def _exec_command(self, command, method="check_call", **kwargs):
        # Snapshot tools never get to see the archive credentials
        kwargs.setdefault("env", __util__.sanitized_env())
        kwargs.setdefault("stdin", subprocess.DEVNULL)
        return __util__.exec_subprocess(command, method=method, **kwargs)
