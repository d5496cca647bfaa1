"""Run the archive tool against the mounted snapshots."""

import logging
import shlex
import signal
import sys
import threading

from .. import __util__

logger = logging.getLogger(__name__)


class ArchiveInvoker:
    """Builds and supervises ``borg create``.

    Attributes:
        archive_tool: Archiving executable
        dry_run: Only print the command instead of running it
        poll_interval: Seconds between checks of the cancel signal
    """

    def __init__(
        self,
        archive_tool: str = "borg",
        dry_run: bool = False,
        poll_interval: float = 0.1,
    ) -> None:
        self.archive_tool = archive_tool
        self.dry_run = dry_run
        self.poll_interval = poll_interval

    def build_command(self, name, mountpoints, extra_args=()) -> list[str]:
        """Return the argument vector archiving ``mountpoints`` as ``name``."""
        return [
            self.archive_tool,
            "create",
            *extra_args,
            f"::{name}",
            *[str(m) for m in mountpoints],
        ]

    def invoke(self, name, mountpoints, extra_args=(), cancel=None) -> bool:
        """Archive ``mountpoints`` and wait for the archive tool to finish.

        The tool inherits the full environment since it needs the
        repository and passphrase. Its output goes to stderr. When
        ``cancel`` (a threading.Event) gets set, the tool is sent SIGINT
        and its exit is not treated as a failure.

        Returns:
            True if the run was interrupted through ``cancel``

        Raises:
            ArchiveError: If the tool could not be started or failed on its own
        """
        command = self.build_command(name, mountpoints, extra_args)
        logger.info("Archive command: %s", shlex.join(command))

        if self.dry_run:
            print(shlex.join(command))
            logger.info("Dry run, %s not started", self.archive_tool)
            return False

        if cancel is not None and cancel.is_set():
            logger.warning("Cancelled before %s was started", self.archive_tool)
            return True

        try:
            process = __util__.exec_subprocess(
                command, method="Popen", stdout=sys.stderr, stderr=sys.stderr
            )
        except __util__.CommandError as e:
            raise __util__.ArchiveError(
                f"error while starting {self.archive_tool}: {e}"
            ) from e

        finished = threading.Event()
        interrupted = threading.Event()
        watcher = None
        if cancel is not None:
            watcher = threading.Thread(
                target=self._forward_cancel,
                args=(process, cancel, finished, interrupted),
                name="archive-cancel",
                daemon=True,
            )
            watcher.start()

        try:
            returncode = process.wait()
        finally:
            finished.set()
            if watcher is not None:
                watcher.join()

        if interrupted.is_set():
            logger.warning(
                "%s was interrupted (exit status %d)", self.archive_tool, returncode
            )
            return True
        if returncode != 0:
            raise __util__.ArchiveError(
                f"error while running {self.archive_tool}: "
                f"exited with status {returncode}"
            )
        logger.info("%s finished successfully", self.archive_tool)
        return False

    def _forward_cancel(self, process, cancel, finished, interrupted) -> None:
        while not finished.is_set():
            if not cancel.wait(self.poll_interval):
                continue
            if process.poll() is None:
                # Flag first, the child may exit as soon as it gets the signal
                interrupted.set()
                logger.warning("Interrupting %s ...", self.archive_tool)
                process.send_signal(signal.SIGINT)
            return
