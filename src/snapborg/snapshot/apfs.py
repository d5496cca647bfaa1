# pyright: standard

"""snapborg: snapborg/snapshot/apfs.py
Create and remove APFS snapshots with snapUtil.
"""

from .common import Provisioner


class APFSProvisioner(Provisioner):
    """Snapshots made by Apple's snapUtil sample tool.

    snapUtil needs the "com.apple.developer.vfs.snapshot" entitlement and
    names the snapshot exactly as asked, so the label passed on creation is
    the handle.
    """

    def _created_handle(self, label, source) -> str:
        return label

    def _build_create_command(self, label, source):
        return [self.config["snapshot_util"], "-c", label, str(source)]

    def _build_destroy_command(self, handle, source):
        return [self.config["snapshot_util"], "-d", handle, str(source)]
