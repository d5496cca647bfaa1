# pyright: standard

"""snapborg: snapborg/snapshot/__init__.py."""

from .apfs import APFSProvisioner
from .common import Provisioner, snapshot_label
from .timemachine import TimeMachineProvisioner

PROVISIONER_TYPES = {
    "apfs": APFSProvisioner,
    "timemachine": TimeMachineProvisioner,
}


def choose_provisioner(name, config=None) -> Provisioner:
    """
    Create the provisioner registered under ``name``.

    Args:
        name (str): Provisioner type, a key of PROVISIONER_TYPES.
        config (dict): Tool paths passed on to the provisioner.

    Raises:
        ValueError: If no provisioner is known by that name.
    """
    try:
        provisioner_class = PROVISIONER_TYPES[name]
    except KeyError:
        raise ValueError(f"No snapshot provisioner named {name!r}") from None
    return provisioner_class(config=config)


__all__ = [
    "APFSProvisioner",
    "Provisioner",
    "TimeMachineProvisioner",
    "choose_provisioner",
    "snapshot_label",
]
