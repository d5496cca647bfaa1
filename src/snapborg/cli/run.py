"""Run command: Snapshot, mount and archive all configured sources."""

import argparse
import contextlib
import logging
import os
import signal
import threading

from .. import __util__
from ..__logger__ import create_logger
from ..config import ConfigError
from ..core import Backup
from .common import EXIT_FAILURE, EXIT_FATAL, EXIT_SUCCESS, build_config, get_log_level

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS = ("BORG_REPO", "BORG_PASSPHRASE")


def check_environment() -> list[str]:
    """Return the problems preventing a backup run, if any."""
    problems = []
    if os.geteuid() != 0:
        problems.append("requires root privileges")
    for name in REQUIRED_ENV_VARS:
        if not os.environ.get(name):
            problems.append(f"{name} not specified")
    return problems


@contextlib.contextmanager
def cancellation_signals(cancel, signals=(signal.SIGINT, signal.SIGTERM)):
    """Turn ``signals`` into setting the ``cancel`` event while active.

    Only the archive tool reacts to the event; snapshot creation, mounting
    and cleanup always run to completion.
    """

    def handler(signum, frame):
        if not cancel.is_set():
            logger.warning(
                "Received %s, cancelling backup", signal.Signals(signum).name
            )
        cancel.set()

    previous = {sig: signal.signal(sig, handler) for sig in signals}
    try:
        yield cancel
    finally:
        for sig, old_handler in previous.items():
            signal.signal(sig, old_handler)


def execute_run(args: argparse.Namespace) -> int:
    """Execute the run command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    log_level = get_log_level(args)
    create_logger(log_level)

    try:
        config = build_config(args)
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        return EXIT_FAILURE

    if config.global_config.log_file:
        create_logger(log_level, log_file=config.global_config.log_file)

    problems = check_environment()
    if problems:
        for problem in problems:
            logger.error("%s", problem)
        return EXIT_FAILURE

    try:
        backup = Backup.from_config(config, dry_run=getattr(args, "dry_run", False))
    except (ConfigError, ValueError) as e:
        logger.error("Configuration error: %s", e)
        return EXIT_FAILURE

    cancel = threading.Event()
    with cancellation_signals(cancel):
        try:
            result = backup.run(cancel)
        except __util__.FatalError as e:
            logger.critical("%s", __util__.describe_error(e))
            return EXIT_FATAL
        except __util__.AbortError as e:
            logger.error("error while backup: %s", __util__.describe_error(e))
            return EXIT_FAILURE

    if result.interrupted:
        logger.warning("Backup cancelled, archive %s is incomplete", result.archive_name)
    else:
        logger.info("Backup %s completed", result.archive_name)
    return EXIT_SUCCESS
