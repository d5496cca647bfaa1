"""Core backup operations for snapborg.

Locking, mounting, archiving and the orchestration of a backup run,
organized into focused modules.
"""

from .archive import ArchiveInvoker
from .backup import Backup, BackupResult, combine_errors
from .lock import exclusive_lock
from .mount import MountManager, is_live
from .teardown import TeardownStack

__all__ = [
    "ArchiveInvoker",
    "Backup",
    "BackupResult",
    "MountManager",
    "TeardownStack",
    "combine_errors",
    "exclusive_lock",
    "is_live",
]
