"""Run command: execute all configured jobs."""

import argparse
import logging
import time

from filelock import FileLock, Timeout

from .. import __util__
from ..core.cancel import CancelToken, install_signal_handlers, restore_signal_handlers
from ..core.invoker import ToolInvoker
from ..core.jobs import EXIT_FAILURE, JobExecutor, build_jobs
from ..core.recovery import CompensationStack
from .common import load_configuration

logger = logging.getLogger(__name__)


def execute_run(args: argparse.Namespace) -> int:
    """Execute the run command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    try:
        config, tools = load_configuration(args)
    except __util__.AbortError as e:
        logger.error("Error: %s", e)
        return EXIT_FAILURE

    jobs = build_jobs(config)
    if not jobs:
        logger.warning("No jobs to run")
        return 0

    dry_run = getattr(args, "dry_run", False)
    if dry_run:
        logger.warning("Dry-run mode on, no modifications will be made.")

    token = CancelToken()
    invoker = ToolInvoker(cancel=token, dry_run=dry_run)
    executor = JobExecutor(
        jobs,
        tools,
        invoker,
        recovery=CompensationStack(),
        control_master=config.global_config.ssh_control_master,
    )

    lock_file = config.global_config.lock_file
    lock = FileLock(lock_file, timeout=0)
    try:
        lock.acquire()
    except Timeout:
        logger.error("Another run holds %s, giving up", lock_file)
        return EXIT_FAILURE
    except OSError as e:
        logger.error("Cannot lock %s: %s", lock_file, e)
        return EXIT_FAILURE

    previous_handlers = install_signal_handlers(token)
    try:
        logger.info(__util__.log_heading(f"Started at {time.ctime()}"))
        logger.info(
            "%d snapshot, %d backup, %d remote backup, %d prune job(s)",
            len(jobs.snapshots),
            len(jobs.backups),
            len(jobs.remote_backups),
            len(jobs.prunes),
        )
        result = executor.run()
    finally:
        restore_signal_handlers(previous_handlers)
        lock.release()

    logger.info(__util__.log_heading(f"Finished at {time.ctime()}"))
    logger.info(
        "Created %d snapshot(s), transferred %d, deleted %d",
        len(result.created),
        len(result.transferred),
        len(result.deleted),
    )
    return result.exit_code
