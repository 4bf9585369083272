"""Core backup operations: send_snapshot, execute_plan, sync_snapshots."""

import logging
import time

from .. import __util__
from .planning import ReplicationPlan, plan_transfers

logger = logging.getLogger(__name__)


def send_snapshot(snapshot, source, destination, invoker, recovery, parent=None) -> None:
    """Send one snapshot into the destination zone with btrfs send/receive.

    The destination entry is scheduled for deletion before the stream starts
    and unscheduled once both processes exited successfully, so a failed or
    interrupted receive never leaves a partial snapshot behind.

    Args:
        snapshot: Source snapshot path
        source: Endpoint of the source zone
        destination: Endpoint of the destination zone
        invoker: ToolInvoker connecting the two processes
        recovery: CompensationStack guarding the receive
        parent: Snapshot already at the destination to send a delta against

    Raises:
        TransferError: If either side of the pipe failed
        JobInterrupted: If an interrupt arrived during the transfer
    """
    logger.info("Sending %s ...", snapshot)
    log_msg = (
        f"  Using parent: {parent}"
        if parent
        else "  No parent snapshot available, sending in full mode."
    )
    logger.info(log_msg)

    producer = source.send_command(snapshot, parent=parent)
    consumer = destination.receive_command()
    target = destination.snapshot_path(snapshot)

    recovery.arm(
        f"delete partial {target} at {destination!r}",
        lambda: destination.remove_partial(snapshot),
    )

    transfer_start = time.monotonic()
    invoker.pipe(producer, consumer)
    recovery.disarm()

    logger.info(
        "Transfer of %s completed in %.1fs", snapshot, time.monotonic() - transfer_start
    )


def execute_plan(plan: ReplicationPlan, source, destination, invoker, recovery) -> list[str]:
    """Transfer the plan's missing snapshots in order, chaining deltas.

    Each snapshot is sent relative to the previous one once that one has
    committed; the first is relative to the common base, or full without
    one. The first failure stops the loop: earlier snapshots stay, later
    ones are never attempted.

    Returns:
        The snapshots transferred
    """
    base = plan.common_base
    transferred = []

    for snapshot in plan.missing:
        send_snapshot(snapshot, source, destination, invoker, recovery, parent=base)
        transferred.append(snapshot)
        base = snapshot
        logger.debug("%d snapshots left to transfer", len(plan.missing) - len(transferred))

    return transferred


def sync_snapshots(source, destination, invoker, recovery) -> list[str]:
    """Synchronize snapshots from a source zone to a destination zone.

    Args:
        source: Endpoint of the snapshot zone
        destination: Endpoint of the backup zone
        invoker: ToolInvoker running the commands
        recovery: CompensationStack guarding each receive

    Returns:
        The snapshots transferred
    """
    logger.info(__util__.log_heading(f"To {destination!r} ..."))

    source_snapshots = source.list_snapshots()
    destination_snapshots = set(destination.list_snapshots())

    logger.debug("Source snapshots found: %d", len(source_snapshots))
    logger.debug("Destination snapshots found: %d", len(destination_snapshots))

    plan = plan_transfers(
        source_snapshots, destination_snapshots, destination.destination_prefix
    )

    if not plan.missing:
        logger.info("No snapshots need to be transferred.")
        return []

    logger.info("Going to transfer %d snapshot(s):", len(plan.missing))
    for snap in plan.missing:
        logger.info("  %s", snap)

    transferred = execute_plan(plan, source, destination, invoker, recovery)

    logger.info(__util__.log_heading(f"Transfers to {destination!r} complete!"))
    return transferred
