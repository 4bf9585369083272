"""CLI dispatcher with legacy mode detection.

This module handles routing between the subcommand-based CLI and the
historical ``xtlbackup [-d] [FILE ...]`` invocation.
"""

import argparse
import sys
from typing import Callable

from .. import __version__
from .common import add_config_files_arg, add_verbosity_args

# Known subcommands
SUBCOMMANDS = frozenset({"run", "check", "plan"})


def is_legacy_mode(argv: list[str]) -> bool:
    """Detect if arguments indicate legacy CLI mode.

    Legacy mode is when the arguments are only declaration files and the
    old dry-run flag, as in ``xtlbackup -d /etc/xtlbackup.toml``.

    Args:
        argv: Command line arguments (without program name)

    Returns:
        True if legacy mode should be used
    """
    if not argv:
        # Bare invocation: run the default declaration file
        return True

    first = argv[0]

    # Explicit subcommand - not legacy
    if first in SUBCOMMANDS:
        return False

    # Old dry-run flag
    if first == "-d":
        return True

    # Absolute or relative path - legacy mode
    if first.startswith("/") or first.startswith("./") or first.startswith("../"):
        return True

    # Declaration file in the current directory
    if first.endswith(".toml"):
        return True

    # Everything else is left to the parser
    return False


def create_subcommand_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="xtlbackup",
        description="Snapshot btrfs subvolumes, replicate them and prune old ones",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    add_verbosity_args(parser)

    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        description="Available commands (use 'command --help' for details)",
    )

    # run command
    run_parser = subparsers.add_parser(
        "run",
        help="Execute all configured jobs",
        description="Snapshot, back up, back up remotely, then prune",
    )
    run_parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show what would be done without making changes",
    )
    add_config_files_arg(run_parser)

    # check command
    check_parser = subparsers.add_parser(
        "check",
        help="Validate job declarations",
        description="Load and validate declarations, locate tools, list the jobs",
    )
    check_parser.add_argument(
        "--example",
        action="store_true",
        help="Print an example declaration file and exit",
    )
    add_config_files_arg(check_parser)

    # plan command
    plan_parser = subparsers.add_parser(
        "plan",
        help="Show pending transfers",
        description="List source and backup zones and print each replication plan",
    )
    add_config_files_arg(plan_parser)

    return parser


def create_legacy_parser() -> argparse.ArgumentParser:
    """Parser of the historical invocation."""
    parser = argparse.ArgumentParser(prog="xtlbackup")
    parser.add_argument(
        "-d",
        dest="dry_run",
        action="store_true",
        help="Dry-run mode, no modifications will be made",
    )
    add_verbosity_args(parser)
    add_config_files_arg(parser)
    return parser


def run_legacy_mode(argv: list[str]) -> int:
    """Run all jobs of the given files, the way the first releases did."""
    args = create_legacy_parser().parse_args(argv)
    args.command = "run"
    return cmd_run(args)


def run_subcommand(args: argparse.Namespace) -> int:
    """Route parsed arguments to the matching command handler."""
    if args.command is None:
        args.command = "run"
        args.dry_run = False
        args.files = []

    # Route to appropriate command handler
    handlers: dict[str, Callable] = {
        "run": cmd_run,
        "check": cmd_check,
        "plan": cmd_plan,
    }

    handler = handlers.get(args.command)
    if handler:
        return handler(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1


def cmd_run(args: argparse.Namespace) -> int:
    """Execute run command."""
    from .run import execute_run

    return execute_run(args)


def cmd_check(args: argparse.Namespace) -> int:
    """Execute check command."""
    from .check import execute_check

    return execute_check(args)


def cmd_plan(args: argparse.Namespace) -> int:
    """Execute plan command."""
    from .plan import execute_plan

    return execute_plan(args)


def main(argv: list[str] | None = None) -> int:
    """Main entry point for xtlbackup CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    if argv is None:
        argv = sys.argv[1:]

    # Check for legacy mode
    if is_legacy_mode(argv):
        return run_legacy_mode(argv)

    # Parse with subcommand interface
    parser = create_subcommand_parser()
    args = parser.parse_args(argv)

    return run_subcommand(args)
