"""xtlbackup command line interface."""

from .dispatcher import main

__all__ = ["main"]
