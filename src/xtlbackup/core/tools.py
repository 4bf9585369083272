"""Discovery of the external tools xtlbackup drives."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from ..__util__ import ToolUnavailableError
from ..config.schema import DEFAULT_TOOL_PATHS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolTable:
    """Absolute locations of the external tools, fixed for a whole run."""

    btrfs: str
    ssh: Optional[str] = None


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


def find_tool(name: str, locations: Iterable[str] = DEFAULT_TOOL_PATHS) -> Optional[str]:
    """Scan locations for an executable; a later location overrides an earlier one."""
    found = None
    for location in locations:
        candidate = Path(location) / name
        if _is_executable(candidate):
            found = str(candidate)
    return found


def detect_tools(
    need_ssh: bool = False, locations: Iterable[str] = DEFAULT_TOOL_PATHS
) -> ToolTable:
    """Locate btrfs (and ssh when remote jobs exist).

    Raises:
        ToolUnavailableError: If a required tool is missing
    """
    locations = tuple(locations)
    names = ["btrfs"] + (["ssh"] if need_ssh else [])

    found = {}
    for name in names:
        path = find_tool(name, locations)
        if path is None:
            raise ToolUnavailableError(
                f"can't find executable {name} in {', '.join(locations)}"
            )
        logger.debug("Found %s at %s", name, path)
        found[name] = path

    return ToolTable(btrfs=found["btrfs"], ssh=found.get("ssh"))
