"""TOML configuration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import shlex
import tomllib
from pathlib import Path
from typing import Any

from .schema import Config, GlobalConfig, SourceConfig


class ConfigError(Exception):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "snapborg" / "config.toml",
    Path("/etc/snapborg/config.toml"),
]

PROVISIONERS = ("apfs", "timemachine")

# Expected TOML types of the [global] settings
GLOBAL_TYPES = {
    "lock_file": str,
    "archive_tool": str,
    "archive_args": (str, list),
    "archive_name": str,
    "use_existing_snapshots": bool,
    "provisioner": str,
    "snapshot_util": str,
    "tmutil": str,
    "mount_command": str,
    "unmount_command": str,
    "parallel_snapshots": int,
    "log_file": str,
}

SOURCE_TYPES = {
    "path": str,
    "mountpoint": str,
    "snapshot": str,
}

_TYPE_NAMES = {str: "a string", bool: "a boolean", int: "an integer", list: "a list"}


def _check_types(section: str, data: dict[str, Any], types: dict[str, Any]) -> None:
    """Raise ConfigError for settings that have the wrong TOML type."""
    for key, expected in types.items():
        if key not in data:
            continue
        value = data[key]
        expected = expected if isinstance(expected, tuple) else (expected,)
        # true and false must not pass as integers
        if isinstance(value, bool) and bool not in expected:
            valid = False
        else:
            valid = isinstance(value, expected)
        if not valid:
            names = " or ".join(_TYPE_NAMES[t] for t in expected)
            raise ConfigError(
                f"{section}: '{key}' must be {names}, got {type(value).__name__}"
            )


def find_config_file(explicit_path: str | None = None) -> Path | None:
    """Find configuration file.

    Args:
        explicit_path: Explicitly specified config path (highest priority)

    Returns:
        Path to config file, or None if not found
    """
    if explicit_path:
        path = Path(explicit_path)
        if path.exists():
            return path
        raise ConfigError(f"Config file not found: {explicit_path}")

    for path in CONFIG_PATHS:
        if path.exists():
            return path

    return None


def _parse_source(data: dict[str, Any]) -> SourceConfig:
    """Parse source configuration from dict."""
    if "path" not in data:
        raise ConfigError("Source missing required 'path' field")
    if "mountpoint" not in data:
        raise ConfigError(f"Source '{data['path']}' missing required 'mountpoint' field")
    _check_types(f"Source '{data['path']}'", data, SOURCE_TYPES)

    return SourceConfig(
        path=data["path"],
        mountpoint=data["mountpoint"],
        snapshot=data.get("snapshot", ""),
    )


def _parse_global(data: dict[str, Any]) -> GlobalConfig:
    """Parse global configuration from dict."""
    _check_types("[global]", data, GLOBAL_TYPES)
    defaults = GlobalConfig()
    archive_args = data.get("archive_args", defaults.archive_args)
    if isinstance(archive_args, list):
        if not all(isinstance(arg, str) for arg in archive_args):
            raise ConfigError("[global]: 'archive_args' list must only hold strings")
        # Quoted so list items containing spaces stay single arguments
        archive_args = shlex.join(archive_args)

    return GlobalConfig(
        lock_file=data.get("lock_file", defaults.lock_file),
        archive_tool=data.get("archive_tool", defaults.archive_tool),
        archive_args=archive_args,
        archive_name=data.get("archive_name"),
        use_existing_snapshots=data.get(
            "use_existing_snapshots", defaults.use_existing_snapshots
        ),
        provisioner=data.get("provisioner", defaults.provisioner),
        snapshot_util=data.get("snapshot_util", defaults.snapshot_util),
        tmutil=data.get("tmutil", defaults.tmutil),
        mount_command=data.get("mount_command", defaults.mount_command),
        unmount_command=data.get("unmount_command", defaults.unmount_command),
        parallel_snapshots=data.get("parallel_snapshots", defaults.parallel_snapshots),
        log_file=data.get("log_file"),
    )


def validate_pairing(sources, mountpoints, snapshots=None) -> None:
    """Check that sources, mountpoints and snapshots line up by index.

    Raises:
        ConfigError: If there is nothing to back up or the counts differ
    """
    if not sources:
        raise ConfigError("Need at least one source, such as `--source /`")
    if not mountpoints:
        raise ConfigError(
            "Need at least one mountpoint, such as `--mountpoint /tmp/snapshot`"
        )
    if len(sources) != len(mountpoints):
        raise ConfigError(
            f"The number of mountpoints provided ({len(mountpoints)}) is not the "
            f"same as the number of sources provided ({len(sources)})"
        )
    if snapshots and len(snapshots) != len(sources):
        raise ConfigError(
            f"The number of snapshots provided ({len(snapshots)}) is not the "
            f"same as the number of sources provided ({len(sources)})"
        )


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    if config.global_config.provisioner not in PROVISIONERS:
        raise ConfigError(
            f"Unknown provisioner '{config.global_config.provisioner}', "
            f"expected one of: {', '.join(PROVISIONERS)}"
        )
    if config.global_config.parallel_snapshots < 0:
        raise ConfigError("parallel_snapshots must not be negative")

    if not config.sources:
        warnings.append("No sources configured")

    mountpoints = config.mountpoints
    if len(mountpoints) != len(set(mountpoints)):
        warnings.append("Duplicate mountpoints detected")

    source_paths = config.source_paths
    if len(source_paths) != len(set(source_paths)):
        warnings.append("Duplicate source paths detected")

    for source in config.sources:
        if source.is_live:
            warnings.append(
                f"Source '{source.path}' is its own mountpoint and will be "
                "archived live, without a snapshot"
            )

    return warnings


def load_config(path: Path | str) -> tuple[Config, list[str]]:
    """Load and validate configuration from TOML file.

    Args:
        path: Path to configuration file

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If config is invalid or cannot be parsed
    """
    path = Path(path)

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    global_data = data.get("global", {})
    source_data = data.get("sources", [])
    if not isinstance(global_data, dict):
        raise ConfigError("'global' must be a table")
    if not isinstance(source_data, list) or not all(
        isinstance(s, dict) for s in source_data
    ):
        raise ConfigError("'sources' must be an array of tables ([[sources]])")

    global_config = _parse_global(global_data)
    sources = [_parse_source(s) for s in source_data]

    config = Config(global_config=global_config, sources=sources)

    # Validate and collect warnings
    warnings = _validate_config(config)

    return config, warnings


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# snapborg configuration
# The borg repository and passphrase are read from BORG_REPO and
# BORG_PASSPHRASE, never from this file.

[global]
lock_file = "/var/run/snapborg.lock"
archive_args = "--stats --compression lz4"
# archive_name = "manual-backup"   # Default: <snapshot date>@<hostname>
use_existing_snapshots = false
provisioner = "apfs"               # or "timemachine"
# snapshot_util = "./apfs/snapUtil"
# log_file = "/var/log/snapborg.log"

# Max concurrent snapshot creations (0 = one per source)
parallel_snapshots = 0

# Sources are archived in this order, each from its own mountpoint.
# Keep mountpoints the same across backups so borg's files cache stays valid.
[[sources]]
path = "/"
mountpoint = "/tmp/snapshot"

[[sources]]
path = "/System/Volumes/Data"
mountpoint = "/tmp/snapshot-data"

# Archive a source live by making it its own mountpoint
# [[sources]]
# path = "/Volumes/External"
# mountpoint = "/Volumes/External"

# Use an existing snapshot instead of creating one
# [[sources]]
# path = "/Volumes/Work"
# mountpoint = "/tmp/snapshot-work"
# snapshot = "com.apple.TimeMachine.2024-01-01-120000.local"
"""
