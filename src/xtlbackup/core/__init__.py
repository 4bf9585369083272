"""Core backup operations for xtlbackup.

Planning, transfer, rollback and retention; the job pipeline lives in
:mod:`xtlbackup.core.jobs`.
"""

from .operations import execute_plan, send_snapshot, sync_snapshots
from .planning import ReplicationPlan, plan_transfers
from .prune import prune_zone
from .recovery import CompensationStack

__all__ = [
    "send_snapshot",
    "execute_plan",
    "sync_snapshots",
    "plan_transfers",
    "ReplicationPlan",
    "prune_zone",
    "CompensationStack",
]
