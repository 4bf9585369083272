"""Receive guard: forced command of the SSH key used for remote backups.

Install it in the remote ``authorized_keys``::

    command="SNAPSHOTS_PATH='^/backups/[^/]+$' /usr/bin/xtlbackup-receive",no-port-forwarding,no-agent-forwarding,no-X11-forwarding,no-pty ssh-ed25519 AAAA...

``SNAPSHOTS_PATH`` is a Python regular expression searched in the
canonical form of the requested path, which must exist. Accepted:

* ``ls <path>``
* ``btrfs receive <path>``
"""

import logging
import os
import re
import shlex
import sys
from pathlib import Path

from ..__logger__ import create_logger
from ..__util__ import DENIED_EXIT_STATUS

logger = logging.getLogger(__name__)


class CommandRejected(Exception):
    """The requested command is not allowed through the guard."""


def validate_path(path: str, pattern: str) -> str:
    """Return the canonical path if the pattern allows it."""
    try:
        canonical = Path(path).resolve(strict=True)
    except (OSError, RuntimeError):
        raise CommandRejected(f"illegal path '{path}'.")
    if not canonical.is_dir() or not re.search(pattern, str(canonical)):
        raise CommandRejected(f"illegal path '{path}'.")
    return str(canonical)


def authorize(words: list[str], pattern: str | None) -> list[str]:
    """Check a command line against the allowed forms.

    Returns:
        The command to execute, with the path canonicalized

    Raises:
        CommandRejected: If the command is not allowed
    """
    if not pattern:
        raise CommandRejected("SNAPSHOTS_PATH not set.")
    try:
        re.compile(pattern)
    except re.error as e:
        raise CommandRejected(f"invalid SNAPSHOTS_PATH: {e}.")
    if not words:
        raise CommandRejected("no command given.")

    if words[0] == "btrfs":
        operation = words[1] if len(words) > 1 else ""
        if operation != "receive":
            raise CommandRejected(f"unauthorized btrfs operation '{operation}'.")
        if len(words) != 3:
            raise CommandRejected("invalid number of arguments.")
        return ["btrfs", "receive", validate_path(words[2], pattern)]

    if words[0] == "ls":
        if len(words) != 2:
            raise CommandRejected("invalid number of arguments.")
        return ["ls", validate_path(words[1], pattern)]

    raise CommandRejected(f"unauthorized command '{words[0]}'.")


def main(argv: list[str] | None = None) -> int:
    """Entry point of ``xtlbackup-receive``; only returns on rejection."""
    create_logger("WARNING")

    if argv is None:
        argv = sys.argv[1:]

    original = os.environ.get("SSH_ORIGINAL_COMMAND")
    try:
        words = shlex.split(original) if original else list(argv)
        command = authorize(words, os.environ.get("SNAPSHOTS_PATH"))
    except ValueError as e:
        logger.error("Error: cannot parse command: %s", e)
        return DENIED_EXIT_STATUS
    except CommandRejected as e:
        logger.error("Error: %s", e)
        return DENIED_EXIT_STATUS

    try:
        os.execvp(command[0], command)
    except OSError as e:
        logger.error("Error: cannot execute %s: %s", command[0], e)
        return 1
    return 0  # not reached


def run() -> None:
    sys.exit(main())
