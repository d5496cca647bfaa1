# pyright: standard

"""snapborg: snapborg/snapshot/timemachine.py
Create and remove local Time Machine snapshots with tmutil.
"""

import threading

from snapborg.__logger__ import logger

from .common import Provisioner, snapshot_label


class TimeMachineProvisioner(Provisioner):
    """Local snapshots made by ``tmutil localsnapshot``.

    tmutil snapshots every APFS volume at once and ignores the label, the
    new snapshot is found by listing the source afterwards. Removal goes by
    date and covers all volumes, so only structured names such as
    ``com.apple.TimeMachine.2024-01-01-120000.local`` can be removed.

    One ``tmutil localsnapshot`` serves all sources of a run, and every
    date is removed only once however many sources share it.
    """

    def __init__(self, config=None, **kwargs) -> None:
        super().__init__(config, **kwargs)
        self._lock = threading.Lock()
        self._snapshot_taken = False
        self._removed_dates = set()

    def create(self, source) -> str:
        with self._lock:
            if not self._snapshot_taken:
                handle = super().create(source)
                self._snapshot_taken = True
                return handle
            handle = self._created_handle(None, source)
            logger.info("Using snapshot %s of this run for source %s", handle, source)
            return handle

    def destroy(self, handle, source) -> None:
        date = snapshot_label(handle)
        with self._lock:
            if date in self._removed_dates:
                logger.info(
                    "Snapshot %s for source %s already removed with date %s",
                    handle,
                    source,
                    date,
                )
                return
            super().destroy(handle, source)
            self._removed_dates.add(date)

    def _build_create_command(self, label, source):
        return [self.config["tmutil"], "localsnapshot"]

    def _build_destroy_command(self, handle, source):
        date = snapshot_label(handle, strict=True)
        return [self.config["tmutil"], "deletelocalsnapshots", date]
