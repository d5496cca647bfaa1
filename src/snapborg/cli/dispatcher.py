"""CLI dispatcher.

Builds the subcommand parser and routes parsed arguments to the command
handlers.
"""

import argparse
import sys
from typing import Callable

from .common import EXIT_SUCCESS, EXIT_USAGE, add_source_args, add_verbosity_args

ENVIRONMENT_HELP = """\
This program must be run as root.

Environment variables:
  BORG_REPO        repository to back up to
  BORG_PASSPHRASE  passphrase for the borg repository
"""


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="snapborg",
        description="Back up snapshots of one or more volumes with borg",
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="store_true",
        help="Show version and exit",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Snapshot, mount and archive all sources",
        description="Snapshot every source, mount the snapshots, archive the "
        "mountpoints with borg and remove the snapshots again",
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    add_source_args(run_parser)
    run_parser.add_argument(
        "--archive-args",
        metavar="ARGS",
        help="Arguments passed to `borg create` (overrides config), "
        "e.g. --archive-args='--stats --compression lz4'",
    )
    run_parser.add_argument(
        "--lock-file",
        metavar="FILE",
        help="Lock file preventing concurrent runs (overrides config)",
    )
    run_parser.add_argument(
        "--name",
        metavar="NAME",
        help="Archive name (default: <snapshot date>@<hostname>)",
    )
    run_parser.add_argument(
        "--use-existing-snapshots",
        action="store_true",
        help="Back up from the latest existing snapshot of each source "
        "instead of creating one",
    )
    run_parser.add_argument(
        "--parallel-snapshots",
        type=int,
        metavar="N",
        help="Max concurrent snapshot creations, 0 for one per source "
        "(overrides config)",
    )
    run_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Create, mount and remove snapshots, but only print the borg "
        "command instead of running it",
    )

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="Show existing snapshots",
        description="List the snapshots of every configured source",
    )
    add_source_args(list_parser)

    # config command with subcommands
    config_parser = subparsers.add_parser(
        "config",
        help="Configuration management",
        description="Validate or initialize configuration",
    )
    config_subs = config_parser.add_subparsers(dest="config_action")

    config_subs.add_parser(
        "validate",
        help="Validate configuration file",
    )

    init_parser = config_subs.add_parser(
        "init",
        help="Generate example configuration",
    )
    init_parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Output file (default: stdout)",
    )

    return parser


def run_subcommand(args: argparse.Namespace) -> int:
    """Run the specified subcommand.

    Args:
        args: Parsed arguments

    Returns:
        Exit code
    """
    from .. import __version__

    if args.version:
        print(f"snapborg {__version__}")
        return EXIT_SUCCESS

    if not args.command:
        print("No command specified. Use --help for usage information.")
        return EXIT_USAGE

    handlers: dict[str, Callable[[argparse.Namespace], int]] = {
        "run": cmd_run,
        "list": cmd_list,
        "config": cmd_config,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return EXIT_USAGE


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    from .run import execute_run

    return execute_run(args)


def cmd_list(args: argparse.Namespace) -> int:
    """Execute list command."""
    from .list_cmd import execute_list

    return execute_list(args)


def cmd_config(args: argparse.Namespace) -> int:
    """Execute config command."""
    from .config_cmd import execute_config

    return execute_config(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the snapborg CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_subcommand_parser()
    args = parser.parse_args(argv)

    return run_subcommand(args)
