"""Shared CLI utilities and argument parsers."""

import argparse
import logging

from ..config import (
    Config,
    ConfigError,
    SourceConfig,
    find_config_file,
    load_config,
    validate_pairing,
)

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_FATAL = 3


def add_verbosity_args(parser: argparse.ArgumentParser) -> None:
    """Add verbosity-related arguments to a parser."""
    group = parser.add_argument_group("Output options")
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )


def add_source_args(parser: argparse.ArgumentParser) -> None:
    """Add the repeatable source/mountpoint/snapshot arguments.

    Given on the command line they replace the sources of the config file.
    """
    group = parser.add_argument_group(
        "Sources",
        "--source, --mountpoint and --snapshot can be repeated, the n-th "
        "mountpoint (and snapshot) belongs to the n-th source",
    )
    group.add_argument(
        "--source",
        metavar="PATH",
        action="append",
        help="Source to back up",
    )
    group.add_argument(
        "--mountpoint",
        metavar="PATH",
        action="append",
        help="Mountpoint for the snapshot of the source, should be kept the "
        "same across backups. Equal to the source to back up the source live",
    )
    group.add_argument(
        "--snapshot",
        metavar="NAME",
        action="append",
        help="Existing snapshot to back up the source from ('' to create one)",
    )


def get_log_level(args: argparse.Namespace) -> str:
    """Determine log level from parsed arguments.

    Args:
        args: Parsed command line arguments

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR)
    """
    if getattr(args, "debug", False):
        return "DEBUG"
    elif getattr(args, "quiet", False):
        return "WARNING"
    elif getattr(args, "verbose", False):
        return "DEBUG"
    else:
        return "INFO"


def build_config(args: argparse.Namespace, need_mountpoints: bool = True) -> Config:
    """Load the config file, if any, and apply command line overrides.

    Commands that never mount, such as list, pass ``need_mountpoints=False``
    to accept sources given without mountpoints.

    Raises:
        ConfigError: If the config file is invalid or sources and
            mountpoints don't pair up
    """
    config_path = find_config_file(getattr(args, "config", None))
    if config_path is not None:
        logger.info("Loading configuration from: %s", config_path)
        config, warnings = load_config(config_path)
        for warning in warnings:
            logger.warning("Config: %s", warning)
    else:
        config = Config()

    sources = getattr(args, "source", None)
    mountpoints = getattr(args, "mountpoint", None)
    snapshots = getattr(args, "snapshot", None)
    if sources or mountpoints or snapshots:
        if not need_mountpoints and not mountpoints:
            mountpoints = [""] * len(sources or [])
        validate_pairing(sources, mountpoints, snapshots)
        snapshots = snapshots or [""] * len(sources)
        config.sources = [
            SourceConfig(path=source, mountpoint=mountpoint, snapshot=snapshot)
            for source, mountpoint, snapshot in zip(sources, mountpoints, snapshots)
        ]

    options = config.global_config
    if getattr(args, "lock_file", None):
        options.lock_file = args.lock_file
    if getattr(args, "archive_args", None) is not None:
        options.archive_args = args.archive_args
    if getattr(args, "name", None):
        options.archive_name = args.name
    if getattr(args, "use_existing_snapshots", False):
        options.use_existing_snapshots = True
    if getattr(args, "parallel_snapshots", None) is not None:
        if args.parallel_snapshots < 0:
            raise ConfigError("--parallel-snapshots must not be negative")
        options.parallel_snapshots = args.parallel_snapshots

    validate_pairing(config.source_paths, config.mountpoints)
    return config
