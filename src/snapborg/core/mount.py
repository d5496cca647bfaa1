"""Mount snapshots read-only and unmount them again."""

import logging
import os
import subprocess
import sys
from pathlib import Path

from .. import __util__

logger = logging.getLogger(__name__)


def is_live(source, mountpoint) -> bool:
    """True if ``source`` is archived in place rather than from a snapshot."""
    return os.path.normpath(str(source)) == os.path.normpath(str(mountpoint))


class MountManager:
    """Binds snapshots to mountpoints.

    The only place mount and unmount tools are run from.
    """

    def __init__(
        self,
        mount_command: str = "mount_apfs",
        unmount_command: str = "umount",
        options: str = "ro,nobrowse",
    ) -> None:
        self.mount_command = mount_command
        self.unmount_command = unmount_command
        self.options = options

    def build_mount_command(self, handle, source, mountpoint) -> list[str]:
        return [
            self.mount_command,
            "-o",
            self.options,
            "-s",
            handle,
            str(source),
            str(mountpoint),
        ]

    def mount(self, handle, source, mountpoint) -> bool:
        """Mount snapshot ``handle`` of ``source`` at ``mountpoint``.

        Returns:
            False if nothing was mounted because the source is archived live

        Raises:
            MountError: If the mount failed
        """
        if is_live(source, mountpoint):
            logger.info("Source %s is its own mountpoint, not mounting", source)
            return False
        if not handle:
            raise __util__.MountError(source, mountpoint, "no snapshot to mount")

        try:
            Path(mountpoint).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise __util__.MountError(source, mountpoint, str(e)) from e

        cmd = self.build_mount_command(handle, source, mountpoint)
        logger.info("Mounting %s of %s at %s", handle, source, mountpoint)
        try:
            __util__.exec_subprocess(
                cmd,
                env=__util__.sanitized_env(),
                stdin=subprocess.DEVNULL,
                stdout=sys.stderr,
                stderr=sys.stderr,
            )
        except __util__.CommandError as e:
            raise __util__.MountError(source, mountpoint, str(e)) from e
        logger.info("Mounted %s", mountpoint)
        return True

    def unmount(self, mountpoint) -> None:
        """Unmount ``mountpoint``.

        Raises:
            UnmountError: If the unmount failed. This is fatal, the mount
                is left behind and needs manual cleanup.
        """
        logger.info("Unmounting %s", mountpoint)
        try:
            __util__.exec_subprocess(
                [self.unmount_command, str(mountpoint)],
                env=__util__.sanitized_env(),
                stdin=subprocess.DEVNULL,
                stdout=sys.stderr,
                stderr=sys.stderr,
            )
        except __util__.CommandError as e:
            raise __util__.UnmountError(mountpoint, str(e)) from e
        logger.info("Unmounted %s", mountpoint)
