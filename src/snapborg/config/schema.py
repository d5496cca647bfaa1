"""Configuration schema definitions using dataclasses.

Defines the structure for TOML configuration with sensible defaults.
"""

import os
import shlex
from dataclasses import dataclass, field
from typing import Optional


@dataclass
class SourceConfig:
    """A source to back up and where its snapshot gets mounted.

    Attributes:
        path: Path of the volume to back up
        mountpoint: Where the snapshot of ``path`` is mounted for archiving.
            Equal to ``path`` to back up the live source without a snapshot.
        snapshot: Name of an existing snapshot to use instead of creating one
    """

    path: str
    mountpoint: str
    snapshot: str = ""

    @property
    def is_live(self) -> bool:
        return os.path.normpath(self.path) == os.path.normpath(self.mountpoint)


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        lock_file: File locked for the duration of a run
        archive_tool: Archiving executable (borg)
        archive_args: Extra arguments passed to ``borg create``
        archive_name: Explicit archive name, derived from the snapshot if unset
        use_existing_snapshots: Back up from the latest existing snapshots
            instead of creating new ones
        provisioner: Snapshot provisioner type ("apfs" or "timemachine")
        snapshot_util: Path of the APFS snapshot utility
        tmutil: Path of tmutil
        mount_command: Command mounting a snapshot
        unmount_command: Command unmounting a mountpoint
        parallel_snapshots: Max concurrent snapshot creations (0 = one per source)
        log_file: Path to log file (None for no file logging)
    """

    lock_file: str = "/var/run/snapborg.lock"
    archive_tool: str = "borg"
    archive_args: str = ""
    archive_name: Optional[str] = None
    use_existing_snapshots: bool = False
    provisioner: str = "apfs"
    snapshot_util: str = "./apfs/snapUtil"
    tmutil: str = "tmutil"
    mount_command: str = "mount_apfs"
    unmount_command: str = "umount"
    parallel_snapshots: int = 0
    log_file: Optional[str] = None

    def split_archive_args(self) -> list[str]:
        """Split ``archive_args`` into separate arguments."""
        return shlex.split(self.archive_args)


@dataclass
class Config:
    """Root configuration object.

    Attributes:
        global_config: Global settings
        sources: Sources to back up, in archive order
    """

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    sources: list[SourceConfig] = field(default_factory=list)

    @property
    def source_paths(self) -> list[str]:
        return [s.path for s in self.sources]

    @property
    def mountpoints(self) -> list[str]:
        return [s.mountpoint for s in self.sources]

    @property
    def snapshots(self) -> list[str]:
        return [s.snapshot for s in self.sources]
