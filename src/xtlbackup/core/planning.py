"""Transfer planning: which snapshots a destination is missing."""

import posixpath
from dataclasses import dataclass, field
from typing import Collection, Iterable, Optional


@dataclass
class ReplicationPlan:
    """Snapshots to send, oldest first, and the snapshot to start deltas from.

    Attributes:
        common_base: Newest snapshot of the synced prefix, None for a full send
        missing: Source snapshots absent from the destination, in source order
    """

    common_base: Optional[str] = None
    missing: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.missing)


def destination_name(snapshot: str, destination_prefix: str) -> str:
    """Name a source snapshot would have in the destination zone."""
    return destination_prefix + posixpath.basename(snapshot)


def plan_transfers(
    source_names: Iterable[str],
    target_names: Collection[str],
    destination_prefix: str = "",
) -> ReplicationPlan:
    """Compare a source zone with a destination zone.

    Only the contiguous run of snapshots already present at the start of the
    source series can provide the common base. Once a snapshot is missing,
    later matches are not used as a base: a delta chain must not skip over
    a snapshot the destination lacks.

    Args:
        source_names: Source snapshots, ascending (oldest first)
        target_names: Names present in the destination zone
        destination_prefix: Prepended to a source basename to form its
            destination name, e.g. ``"/backups/home/"``

    Returns:
        The plan; empty ``missing`` means nothing to transfer
    """
    plan = ReplicationPlan()

    for name in source_names:
        if destination_name(name, destination_prefix) in target_names:
            if not plan.missing:
                plan.common_base = name
        else:
            plan.missing.append(name)

    return plan
