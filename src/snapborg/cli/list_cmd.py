"""List command: Show the existing snapshots of each source."""

import argparse
import logging

from .. import __util__
from ..__logger__ import create_logger
from ..config import ConfigError
from ..snapshot import choose_provisioner, snapshot_label
from .common import EXIT_FAILURE, EXIT_SUCCESS, build_config, get_log_level

logger = logging.getLogger(__name__)


def execute_list(args: argparse.Namespace) -> int:
    """Execute the list command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    log_level = get_log_level(args)
    create_logger(log_level)

    try:
        config = build_config(args, need_mountpoints=False)
        provisioner = choose_provisioner(
            config.global_config.provisioner,
            {
                "snapshot_util": config.global_config.snapshot_util,
                "tmutil": config.global_config.tmutil,
            },
        )
    except (ConfigError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        return EXIT_FAILURE

    status = EXIT_SUCCESS
    for source in config.source_paths:
        try:
            snapshots = provisioner.list_snapshots(source)
        except __util__.AbortError as e:
            logger.error("%s", e)
            status = EXIT_FAILURE
            continue

        print(f"{source}:")
        if not snapshots:
            print("  (no snapshots)")
        for handle in snapshots:
            label = snapshot_label(handle)
            print(f"  {handle}" if label == handle else f"  {handle}  [{label}]")

    return status
