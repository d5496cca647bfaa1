"""Backup orchestration.

A run snapshots every source, mounts the snapshots, archives all
mountpoints in one archive and removes everything it created again:

    lock -> create snapshots (parallel) -> mount (in order) -> archive
         -> unmount -> remove snapshots

Every snapshot and mount is registered for cleanup as soon as it exists,
and cleanup runs whatever happened in between. The first error of the
main path is the one reported, cleanup errors are attached to it as notes.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field

from .. import __util__
from ..config import Config, validate_pairing
from ..snapshot import choose_provisioner, snapshot_label
from .archive import ArchiveInvoker
from .lock import exclusive_lock
from .mount import MountManager, is_live
from .teardown import TeardownStack

logger = logging.getLogger(__name__)


@dataclass
class BackupResult:
    """State of a finished run.

    Attributes:
        archive_name: Name the archive was created as
        snapshots: Snapshot used per source, "" for sources archived live
        created: Snapshots created by this run, keyed by source index
        mounted: Mountpoints that were mounted
        interrupted: Whether the archive tool was cancelled
    """

    archive_name: str = ""
    snapshots: list[str] = field(default_factory=list)
    created: dict[int, str] = field(default_factory=dict)
    mounted: list[str] = field(default_factory=list)
    interrupted: bool = False


def combine_errors(primary, teardown_errors):
    """Pick the error to report for a run.

    The main path error wins; cleanup errors are attached to it as notes.
    Without a main path error the first cleanup error is reported instead.
    """
    errors = list(teardown_errors)
    if primary is None:
        if not errors:
            return None
        primary = errors.pop(0)
    for error in errors:
        primary.add_note(f"during cleanup: {error}")
    return primary


class Backup:
    """One backup run over a list of sources.

    ``sources`` and ``mountpoints`` are paired by index. ``snapshots_to_use``
    may name an existing snapshot per source ("" for none); such snapshots
    are borrowed and never removed, as are the ones found in
    ``use_existing_snapshots`` mode.
    """

    def __init__(
        self,
        sources,
        mountpoints,
        lock_file,
        provisioner,
        mounter=None,
        archiver=None,
        *,
        use_existing_snapshots=False,
        snapshots_to_use=None,
        archive_name=None,
        archive_args=(),
        parallel=0,
    ) -> None:
        validate_pairing(sources, mountpoints, snapshots_to_use)
        self.sources = [str(s) for s in sources]
        self.mountpoints = [str(m) for m in mountpoints]
        self.lock_file = lock_file
        self.provisioner = provisioner
        self.mounter = mounter or MountManager()
        self.archiver = archiver or ArchiveInvoker()
        self.use_existing_snapshots = use_existing_snapshots
        self.snapshots_to_use = list(snapshots_to_use or [""] * len(self.sources))
        self.archive_name = archive_name
        self.archive_args = list(archive_args)
        self.parallel = parallel

    @classmethod
    def from_config(cls, config: Config, dry_run=False) -> "Backup":
        """Build a run with the tools named in ``config``."""
        options = config.global_config
        provisioner = choose_provisioner(
            options.provisioner,
            {"snapshot_util": options.snapshot_util, "tmutil": options.tmutil},
        )
        return cls(
            config.source_paths,
            config.mountpoints,
            options.lock_file,
            provisioner,
            MountManager(options.mount_command, options.unmount_command),
            ArchiveInvoker(options.archive_tool, dry_run=dry_run),
            use_existing_snapshots=options.use_existing_snapshots,
            snapshots_to_use=config.snapshots,
            archive_name=options.archive_name,
            archive_args=options.split_archive_args(),
            parallel=options.parallel_snapshots,
        )

    def run(self, cancel=None) -> BackupResult:
        """Execute the backup.

        Args:
            cancel: threading.Event interrupting the archive tool when set

        Raises:
            AbortError: The first error of the run, cleanup errors as notes
            FatalError: If an unmount failed; remaining cleanup was skipped
        """
        result = BackupResult()
        logger.info(__util__.log_heading(f"Started at {time.ctime()}"))

        with exclusive_lock(self.lock_file):
            teardown = TeardownStack()
            primary = None
            teardown_errors = []
            try:
                self._create_snapshots(result, teardown)
                self._mount_snapshots(result, teardown)
                result.archive_name = self.derive_archive_name(result.snapshots)
                logger.info(__util__.log_heading(f"Archive {result.archive_name}"))
                result.interrupted = self.archiver.invoke(
                    result.archive_name, self.mountpoints, self.archive_args, cancel
                )
            except __util__.AbortError as e:
                primary = e
                logger.error("%s", e)
            finally:
                if len(teardown):
                    logger.info(__util__.log_heading("Cleaning up"))
                try:
                    teardown_errors = teardown.unwind()
                except __util__.FatalError as fatal:
                    if primary is not None:
                        fatal.add_note(f"after earlier error: {primary}")
                    raise

        error = combine_errors(primary, teardown_errors)
        if error is not None:
            raise error

        logger.info(__util__.log_heading(f"Finished at {time.ctime()}"))
        return result

    def derive_archive_name(self, snapshots) -> str:
        """Explicit name, or ``<label of first snapshot>@<hostname>``."""
        if self.archive_name:
            return self.archive_name
        first = snapshots[0] if snapshots else ""
        # A live first source has no snapshot to take the date from
        label = snapshot_label(first) if first else __util__.timestamp()
        logger.debug("Archive label %r from snapshot %r", label, first)
        return f"{label}@{__util__.get_hostname()}"

    def _create_snapshots(self, result, teardown) -> None:
        if self.use_existing_snapshots:
            logger.info("Using existing snapshots, none will be created")
            return

        pending = {
            index: source
            for index, source in enumerate(self.sources)
            if not self.snapshots_to_use[index]
        }
        if not pending:
            return

        logger.info(__util__.log_heading("Creating snapshots"))
        created = {}
        errors = {}
        with ThreadPoolExecutor(max_workers=self.parallel or len(pending)) as executor:
            futures = {
                executor.submit(self.provisioner.create, source): index
                for index, source in pending.items()
            }
            for future in as_completed(futures):
                index = futures[future]
                try:
                    created[index] = future.result()
                except __util__.AbortError as e:
                    errors[index] = e
                except Exception as e:
                    logger.exception("Unexpected error creating snapshot")
                    errors[index] = __util__.ProvisionError(self.sources[index], repr(e))

        # Everything that got created is removed again, even on failure
        for index in sorted(created):
            handle = created[index]
            source = self.sources[index]
            result.created[index] = handle
            teardown.push(
                f"remove snapshot {handle} of {source}",
                self.provisioner.destroy,
                handle,
                source,
            )

        if errors:
            first = min(errors)
            for index in sorted(errors)[1:]:
                logger.error("%s", errors[index])
            raise errors[first]

    def _mount_snapshots(self, result, teardown) -> None:
        logger.info(__util__.log_heading("Mounting snapshots"))
        for index, (source, mountpoint) in enumerate(
            zip(self.sources, self.mountpoints)
        ):
            logger.info("Source %s, mountpoint %s", source, mountpoint)
            handle = self._resolve_snapshot(index, source, mountpoint, result)
            result.snapshots.append(handle)
            if self.mounter.mount(handle, source, mountpoint):
                result.mounted.append(mountpoint)
                teardown.push(f"unmount {mountpoint}", self.mounter.unmount, mountpoint)

    def _resolve_snapshot(self, index, source, mountpoint, result) -> str:
        """Pick the snapshot to archive ``source`` from.

        A snapshot named by the caller wins. A live source uses none.
        Otherwise it is the one created by this run, or the latest
        existing one.
        """
        if self.snapshots_to_use[index]:
            return self.snapshots_to_use[index]
        if is_live(source, mountpoint):
            return ""
        if index in result.created:
            return result.created[index]
        handle = self.provisioner.latest(source)
        logger.info("Using latest snapshot %s of %s", handle, source)
        return handle
