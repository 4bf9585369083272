"""Cooperative cancellation of a run.

Signal handlers only set the token; the invoker observes it at its
checkpoints and turns it into :class:`~xtlbackup.__util__.JobInterrupted`.
"""

import signal
import threading

from ..__util__ import JobInterrupted


HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)


class CancelToken:
    """Flag raised once by an external interrupt request."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.signum = None

    def cancel(self, signum=None) -> None:
        if self.signum is None:
            self.signum = signum
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Checkpoint: raise if an interrupt was requested."""
        if self._event.is_set():
            if self.signum is not None:
                name = signal.Signals(self.signum).name
                raise JobInterrupted(f"interrupted by {name}")
            raise JobInterrupted("interrupted")


def install_signal_handlers(token: CancelToken) -> dict:
    """Route termination signals into ``token``; returns the previous handlers."""

    def handler(signum, frame):
        token.cancel(signum)

    previous = {}
    for signum in HANDLED_SIGNALS:
        previous[signum] = signal.signal(signum, handler)
    return previous


def restore_signal_handlers(previous: dict) -> None:
    for signum, handler in previous.items():
        signal.signal(signum, handler)
