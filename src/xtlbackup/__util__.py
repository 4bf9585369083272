# pyright: standard

"""xtlbackup: xtlbackup/__util__.py
Error hierarchy and small helpers shared by all modules.
"""

import shlex

# Exit status of the remote receive guard when it refuses a command
# (EX_NOPERM from sysexits.h).
DENIED_EXIT_STATUS = 77


class AbortError(Exception):
    """Base class of every condition that aborts a run."""


class ToolUnavailableError(AbortError):
    """A required external tool could not be located."""


class TransferError(AbortError):
    """An external snapshot operation exited with a failure."""

    def __init__(self, message, command=None, returncodes=None) -> None:
        super().__init__(message)
        self.command = command
        self.returncodes = list(returncodes or [])


class AuthorizationError(TransferError):
    """The remote receive guard refused the requested operation."""


class JobInterrupted(AbortError):
    """A termination signal was received while jobs were running."""


def format_command(cmd) -> str:
    """Render an argument list the way a shell would need it."""
    return shlex.join(str(arg) for arg in cmd)


def log_heading(caption) -> str:
    """Get a log heading."""
    return f"--[ {caption} ]".ljust(60, "-")
