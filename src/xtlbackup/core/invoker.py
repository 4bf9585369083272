"""Boundary to the external snapshot tools.

Every btrfs and ssh process goes through :class:`ToolInvoker`, which
reports failures as exceptions and observes the cancellation token while
waiting, so an interrupt stops the running processes promptly.
"""

import logging
import subprocess
from typing import Optional, Sequence

from ..__util__ import (
    DENIED_EXIT_STATUS,
    AuthorizationError,
    TransferError,
    format_command,
)
from .cancel import CancelToken

logger = logging.getLogger(__name__)


class ToolInvoker:
    """Run external commands, alone or as a connected producer/consumer pair.

    Args:
        cancel: Token observed before, while and after each command
        dry_run: Log mutating commands instead of running them
        poll_interval: Seconds between two looks at the token while waiting
    """

    def __init__(
        self,
        cancel: Optional[CancelToken] = None,
        dry_run: bool = False,
        poll_interval: float = 0.2,
    ) -> None:
        self.cancel = cancel or CancelToken()
        self.dry_run = dry_run
        self.poll_interval = poll_interval

    def run(self, cmd: Sequence[str], interruptible: bool = True) -> None:
        """Run a mutating command and wait for it.

        ``interruptible=False`` is reserved for compensation steps, which must
        still run after an interrupt was requested.
        """
        if interruptible:
            self.cancel.check()
        if self.dry_run:
            logger.info("Would run: %s", format_command(cmd))
            return

        logger.debug("Running: %s", format_command(cmd))
        proc = self._spawn(cmd)
        self._wait([proc], interruptible)
        self._check_status(cmd, [proc.returncode])
        if interruptible:
            self.cancel.check()

    def capture(self, cmd: Sequence[str], interruptible: bool = True) -> str:
        """Run a read-only command and return its standard output.

        Read-only commands run in dry-run mode too, so plans stay accurate.
        """
        if interruptible:
            self.cancel.check()
        logger.debug("Capturing: %s", format_command(cmd))
        proc = self._spawn(cmd, stdout=subprocess.PIPE)

        while True:
            if interruptible and self.cancel.cancelled:
                self._terminate([proc])
                self.cancel.check()
            try:
                stdout, _ = proc.communicate(timeout=self.poll_interval)
                break
            except subprocess.TimeoutExpired:
                continue

        self._check_status(cmd, [proc.returncode])
        return stdout.decode("utf-8", errors="replace")

    def pipe(self, producer: Sequence[str], consumer: Sequence[str]) -> None:
        """Stream producer's stdout into consumer's stdin.

        Both processes run concurrently; the kernel pipe between them bounds
        the data in flight. Fails if either side exits non-zero.
        """
        self.cancel.check()
        description = f"{format_command(producer)} | {format_command(consumer)}"
        if self.dry_run:
            logger.info("Would run: %s", description)
            return

        logger.debug("Running: %s", description)
        loglevel = logging.getLogger().getEffectiveLevel()
        consumer_stdout = subprocess.DEVNULL if loglevel >= logging.WARNING else None

        producer_proc = self._spawn(producer, stdout=subprocess.PIPE)
        try:
            consumer_proc = self._spawn(
                consumer, stdin=producer_proc.stdout, stdout=consumer_stdout
            )
        except TransferError:
            self._terminate([producer_proc])
            raise
        finally:
            # The consumer holds its own descriptor; closing ours lets the
            # producer see EPIPE if the consumer dies.
            producer_proc.stdout.close()

        self._wait([producer_proc, consumer_proc], interruptible=True)
        self._check_status(
            consumer,
            [producer_proc.returncode, consumer_proc.returncode],
            description=description,
        )
        self.cancel.check()

    @staticmethod
    def _spawn(cmd, **kwargs) -> subprocess.Popen:
        try:
            return subprocess.Popen([str(arg) for arg in cmd], **kwargs)
        except OSError as e:
            raise TransferError(
                f"cannot start {format_command(cmd)}: {e}", command=cmd
            ) from e

    def _wait(self, procs, interruptible: bool) -> None:
        pending = list(procs)
        while pending:
            if interruptible and self.cancel.cancelled:
                self._terminate(procs)
                self.cancel.check()
            try:
                pending[0].wait(timeout=self.poll_interval)
            except subprocess.TimeoutExpired:
                continue
            pending.pop(0)

    @staticmethod
    def _terminate(procs) -> None:
        for proc in procs:
            if proc.poll() is None:
                logger.debug("Terminating pid %d", proc.pid)
                proc.terminate()
        for proc in procs:
            try:
                proc.wait(timeout=10)
            except subprocess.TimeoutExpired:
                proc.kill()
                proc.wait()

    @staticmethod
    def _check_status(cmd, returncodes, description=None) -> None:
        if all(rc == 0 for rc in returncodes):
            return
        description = description or format_command(cmd)
        message = f"{description} failed with return codes {returncodes}"
        if returncodes[-1] == DENIED_EXIT_STATUS:
            raise AuthorizationError(message, command=cmd, returncodes=returncodes)
        raise TransferError(message, command=cmd, returncodes=returncodes)
