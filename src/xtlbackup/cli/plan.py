"""Plan command: show what the backup jobs would transfer."""

import argparse
import logging

from .. import __util__, endpoint
from ..core.invoker import ToolInvoker
from ..core.jobs import EXIT_FAILURE, build_jobs
from ..core.planning import plan_transfers
from .common import load_configuration

logger = logging.getLogger(__name__)


def _print_plan(source, destination) -> None:
    plan = plan_transfers(
        source.list_snapshots(),
        set(destination.list_snapshots()),
        destination.destination_prefix,
    )
    print(f"{source!r} -> {destination!r}")
    if not plan.missing:
        print("  up to date")
        return
    base = plan.common_base
    for snapshot in plan.missing:
        mode = f"incremental from {base}" if base else "full"
        print(f"  {snapshot} ({mode})")
        base = snapshot


def execute_plan(args: argparse.Namespace) -> int:
    """Execute the plan command; only lists zones, never modifies them.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    try:
        config, tools = load_configuration(args)
    except __util__.AbortError as e:
        logger.error("Error: %s", e)
        return EXIT_FAILURE

    jobs = build_jobs(config)
    invoker = ToolInvoker(dry_run=True)

    try:
        for job in jobs.backups:
            _print_plan(
                endpoint.source_endpoint(job.zone_template, invoker, tools),
                endpoint.local_endpoint(job.destination, invoker, tools),
            )
        for job in jobs.remote_backups:
            destination = endpoint.remote_endpoint(
                job.remote, invoker, tools, control_master=False
            )
            _print_plan(
                endpoint.source_endpoint(job.zone_template, invoker, tools),
                destination,
            )
    except __util__.AbortError as e:
        logger.error("Error: %s", e)
        return EXIT_FAILURE

    return 0
