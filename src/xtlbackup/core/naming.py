"""Snapshot path templates.

A template such as ``/snapshots/home/%Y-%m-%d_%H%M`` names every snapshot of
a zone. Environment variables are expanded first, then the time fields.
Zero-padded, big-endian time fields make name order equal creation order;
nothing here checks that.
"""

import os
import posixpath
import time
from typing import NamedTuple, Optional


class ZoneSpec(NamedTuple):
    """Directory holding a zone and the name prefix its snapshots share."""

    directory: str
    prefix: str


def expand_template(template: str) -> str:
    """Interpolate ``$VAR`` and ``${VAR}`` from the environment."""
    return os.path.expandvars(template)


def resolve_template(template: str, when: Optional[time.struct_time] = None) -> str:
    """Resolve a template into a concrete snapshot path at ``when`` (local time)."""
    if when is None:
        when = time.localtime()
    return time.strftime(expand_template(template), when)


def zone_prefix(template: str) -> str:
    """Return the expanded template text before its first time field."""
    expanded = expand_template(template)
    return expanded.split("%", 1)[0]


def zone_spec(template: str) -> ZoneSpec:
    prefix = zone_prefix(template)
    directory, name_prefix = posixpath.split(prefix)
    return ZoneSpec(directory or ".", name_prefix)


def zone_directory(template: str) -> str:
    """Resolve a destination zone template; a trailing slash is dropped."""
    path = resolve_template(template)
    return path.rstrip("/") or "/"
