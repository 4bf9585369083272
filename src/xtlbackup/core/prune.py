"""Retention: keep only the newest snapshots of a zone."""

import logging

from ..config import ConfigError

logger = logging.getLogger(__name__)


def prune_zone(endpoint, keep_max: int) -> list[str]:
    """Delete all but the ``keep_max`` newest snapshots of a zone.

    Names sort like creation times, so the newest come first in descending
    order. Deletion pops from the oldest end one snapshot at a time; a
    failed delete raises and leaves every newer snapshot in place.

    Args:
        endpoint: Endpoint of the snapshot zone
        keep_max: Number of snapshots to keep, 0 deletes them all

    Returns:
        The deleted snapshots, oldest first

    Raises:
        ConfigError: If keep_max is negative
        TransferError: If a delete failed
    """
    if keep_max < 0:
        raise ConfigError(f"keep_max must not be negative, got {keep_max}")

    targets = sorted(endpoint.list_snapshots(), reverse=True)
    logger.info(
        "Zone %r: %d snapshot(s), keeping at most %d", endpoint, len(targets), keep_max
    )

    deleted = []
    while len(targets) > keep_max:
        target = targets.pop()
        endpoint.delete_snapshot(target)
        deleted.append(target)

    return deleted
