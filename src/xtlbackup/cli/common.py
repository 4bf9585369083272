"""Shared CLI utilities and argument parsers."""

import argparse
import logging

from ..__logger__ import create_logger
from ..config import Config, ConfigError, find_config_files, load_config
from ..core.tools import ToolTable, detect_tools

logger = logging.getLogger(__name__)


def add_verbosity_args(parser: argparse.ArgumentParser) -> None:
    """Add verbosity-related arguments to a parser."""
    group = parser.add_argument_group("Output options")
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Suppress non-essential output",
    )
    group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )


def add_config_files_arg(parser: argparse.ArgumentParser) -> None:
    """Add the positional list of job declaration files."""
    parser.add_argument(
        "files",
        nargs="*",
        metavar="FILE",
        help="Job declaration files (default: ~/.config/xtlbackup/config.toml "
        "or /etc/xtlbackup.toml)",
    )


def get_log_level(args: argparse.Namespace) -> str:
    """Determine log level from parsed arguments.

    Args:
        args: Parsed command line arguments

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR)
    """
    if getattr(args, "debug", False):
        return "DEBUG"
    elif getattr(args, "quiet", False):
        return "WARNING"
    elif getattr(args, "verbose", False):
        return "DEBUG"
    else:
        return "INFO"


def load_configuration(args: argparse.Namespace) -> tuple[Config, ToolTable]:
    """Set up logging, load every declaration file and locate the tools.

    Raises:
        ConfigError: If no file was found or one of them is invalid
        ToolUnavailableError: If a required tool is missing
    """
    log_level = get_log_level(args)
    create_logger(log_level)

    config_paths = find_config_files(getattr(args, "files", None))
    if not config_paths:
        raise ConfigError(
            "No configuration file found, pass one or create /etc/xtlbackup.toml"
        )

    for path in config_paths:
        logger.debug("Loading configuration from: %s", path)
    config, warnings = load_config(config_paths)

    if config.global_config.log_file:
        try:
            create_logger(log_level, config.global_config.log_file)
        except OSError as e:
            raise ConfigError(f"Cannot open log file: {e}") from e

    for warning in warnings:
        logger.warning("Config: %s", warning)

    tools = detect_tools(
        need_ssh=config.has_remote_jobs(), locations=config.global_config.tool_paths
    )
    return config, tools
