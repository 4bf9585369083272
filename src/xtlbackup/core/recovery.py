"""Compensation of half-finished destructive steps.

A transfer step arms a rollback ("delete the partially received snapshot")
right before it starts and disarms it right after it commits. Whatever ends
a run early, a fatal error or an interrupt, runs whatever is still armed.
"""

import logging
import threading
from typing import Callable, NamedTuple, Optional

from ..__util__ import AbortError

logger = logging.getLogger(__name__)


class Compensation(NamedTuple):
    description: str
    action: Callable[[], None]


class CompensationStack:
    """Pending rollback actions, newest on top.

    Single-step jobs use it as one slot through :meth:`arm`, :meth:`disarm`
    and :meth:`run_if_armed`; :meth:`push`, :meth:`pop` and
    :meth:`run_all_armed` serve jobs that stack several steps.

    The abort path takes entries out under the lock and runs them outside
    it, so an entry is never run twice nor run after it was disarmed.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: list[Compensation] = []

    def push(self, description: str, action: Callable[[], None]) -> None:
        with self._lock:
            self._entries.append(Compensation(description, action))

    def pop(self) -> Optional[Compensation]:
        """Drop the newest entry once its step has committed."""
        with self._lock:
            return self._entries.pop() if self._entries else None

    def arm(self, description: str, action: Callable[[], None]) -> None:
        """Make ``action`` the only pending compensation."""
        with self._lock:
            self._entries = [Compensation(description, action)]
        logger.debug("Armed compensation: %s", description)

    def disarm(self) -> None:
        with self._lock:
            self._entries = []

    @property
    def armed(self) -> bool:
        with self._lock:
            return bool(self._entries)

    def run_all_armed(self) -> bool:
        """Run every pending compensation, newest first, then clear them.

        Returns:
            False if a compensation itself failed
        """
        with self._lock:
            entries, self._entries = self._entries, []

        success = True
        for entry in reversed(entries):
            logger.warning("Rolling back: %s", entry.description)
            try:
                entry.action()
            except (AbortError, OSError) as e:
                logger.error("Rollback failed (%s): %s", entry.description, e)
                success = False
        return success

    def run_if_armed(self) -> bool:
        """Run the pending compensation, if any; repeated calls are no-ops."""
        return self.run_all_armed()
