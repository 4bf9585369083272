"""Check command: validate declarations and show the jobs they imply."""

import argparse
import logging

from .. import __util__
from ..config import generate_example_config
from ..core.jobs import EXIT_FAILURE, build_jobs
from .common import load_configuration

logger = logging.getLogger(__name__)


def execute_check(args: argparse.Namespace) -> int:
    """Execute the check command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    if getattr(args, "example", False):
        print(generate_example_config(), end="")
        return 0

    try:
        config, tools = load_configuration(args)
    except __util__.AbortError as e:
        logger.error("Error: %s", e)
        return EXIT_FAILURE

    jobs = build_jobs(config)

    print("xtlbackup configuration")
    print("=" * 60)
    print(f"Files: {', '.join(config.files)}")
    print(f"btrfs: {tools.btrfs}")
    if tools.ssh:
        print(f"ssh: {tools.ssh}")
    print(f"Lock file: {config.global_config.lock_file}")
    print("")

    print(f"Snapshot jobs ({len(jobs.snapshots)}):")
    for job in jobs.snapshots:
        print(f"  {job.volume} -> {job.zone_template}")
    print(f"Backup jobs ({len(jobs.backups)}):")
    for job in jobs.backups:
        print(f"  {job.zone_template} -> {job.destination}")
    print(f"Remote backup jobs ({len(jobs.remote_backups)}):")
    for job in jobs.remote_backups:
        remote = job.remote
        print(
            f"  {job.zone_template} -> {remote.username}@{remote.host}:{remote.path}"
            f" (key {remote.identity_file})"
        )
    print(f"Prune jobs ({len(jobs.prunes)}):")
    for job in jobs.prunes:
        print(f"  {job.zone_template} keep {job.keep_max}")

    return 0
