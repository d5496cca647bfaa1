"""Config command: Configuration management."""

import argparse
import logging

from ..__logger__ import create_logger
from ..config import ConfigError, find_config_file, load_config
from ..config.loader import CONFIG_PATHS, generate_example_config
from .common import EXIT_FAILURE, EXIT_SUCCESS, EXIT_USAGE, get_log_level

logger = logging.getLogger(__name__)


def execute_config(args: argparse.Namespace) -> int:
    """Execute the config command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    log_level = get_log_level(args)
    create_logger(log_level)

    action = getattr(args, "config_action", None)

    if action == "validate":
        return _validate_config(args)
    elif action == "init":
        return _init_config(args)
    else:
        print("Usage: snapborg config <validate|init>")
        return EXIT_USAGE


def _validate_config(args: argparse.Namespace) -> int:
    """Validate configuration file."""
    try:
        config_path = find_config_file(getattr(args, "config", None))
        if config_path is None:
            print("No configuration file found.")
            print("Searched locations:")
            for path in CONFIG_PATHS:
                print(f"  {path}")
            return EXIT_FAILURE

        print(f"Validating: {config_path}")
        config, warnings = load_config(config_path)
    except ConfigError as e:
        print(f"Configuration error: {e}")
        return EXIT_FAILURE

    if warnings:
        print("")
        print("Warnings:")
        for warning in warnings:
            print(f"  - {warning}")

    print("")
    print(f"Provisioner: {config.global_config.provisioner}")
    print(f"Lock file: {config.global_config.lock_file}")
    print(f"Sources: {len(config.sources)}")
    for source in config.sources:
        target = "live" if source.is_live else source.mountpoint
        print(f"  {source.path} -> {target}")
    print("")
    print("Configuration is valid.")
    return EXIT_SUCCESS


def _init_config(args: argparse.Namespace) -> int:
    """Print or write an example configuration."""
    content = generate_example_config()
    output = getattr(args, "output", None)

    if not output:
        print(content, end="")
        return EXIT_SUCCESS

    try:
        with open(output, "x", encoding="utf-8") as f:
            f.write(content)
    except FileExistsError:
        logger.error("Refusing to overwrite existing file: %s", output)
        return EXIT_FAILURE
    except OSError as e:
        logger.error("Cannot write %s: %s", output, e)
        return EXIT_FAILURE

    logger.info("Example configuration written to %s", output)
    return EXIT_SUCCESS
