"""TOML job declaration loading and validation.

Handles config file discovery, parsing, and validation with helpful error messages.
"""

import posixpath
import tomllib
from pathlib import Path
from typing import Any, Iterable

from ..__util__ import AbortError
from .schema import DEFAULT_TOOL_PATHS, Config, GlobalConfig, JobConfig, RemoteConfig


class ConfigError(AbortError):
    """Configuration loading or validation error."""

    pass


# Config file search paths in priority order
CONFIG_PATHS = [
    Path.home() / ".config" / "xtlbackup" / "config.toml",
    Path("/etc/xtlbackup.toml"),
]

GLOBAL_KEYS = {
    "lock_file": str,
    "log_file": str,
    "tool_paths": list,
    "ssh_control_master": bool,
}

JOB_KEYS = {
    "subvolume": str,
    "snapshots": str,
    "backups": str,
    "remote_backups": str,
    "remote_host": str,
    "remote_identity": str,
    "remote_user": str,
    "remote_port": int,
    "keep_max": int,
    "enabled": bool,
}

# All three are needed to reach a remote zone.
REMOTE_TRIPLE = ("remote_backups", "remote_host", "remote_identity")


def find_config_files(explicit_paths: Iterable[str] | None = None) -> list[Path]:
    """Find configuration files.

    Args:
        explicit_paths: Explicitly specified config paths (highest priority)

    Returns:
        Paths to config files; empty if none was found
    """
    explicit_paths = list(explicit_paths or [])
    if explicit_paths:
        paths = []
        for explicit in explicit_paths:
            path = Path(explicit)
            if not path.exists():
                raise ConfigError(f"Config file not found: {explicit}")
            paths.append(path)
        return paths

    for path in CONFIG_PATHS:
        if path.exists():
            return [path]

    return []


def _type_name(expected) -> str:
    return {str: "string", int: "integer", bool: "boolean", list: "array"}[expected]


def _check_table(data: Any, valid_keys: dict[str, type], where: str) -> None:
    """Reject unknown keys and values of the wrong type."""
    if not isinstance(data, dict):
        raise ConfigError(f"{where}: expecting a table, got {type(data).__name__}")

    for key, value in data.items():
        if key not in valid_keys:
            raise ConfigError(f'{where}: unknown key "{key}"')
        expected = valid_keys[key]
        # bool is an int subclass; an integer field never accepts true/false
        if isinstance(value, bool) and expected is not bool:
            valid = False
        else:
            valid = isinstance(value, expected)
        if not valid:
            raise ConfigError(
                f'{where}: key "{key}" must be of type {_type_name(expected)}, '
                f"got {type(value).__name__}"
            )


def _check_template(template: str, key: str, where: str) -> None:
    if not template:
        raise ConfigError(f'{where}: key "{key}" must not be empty')
    if "%" in posixpath.dirname(template):
        raise ConfigError(
            f'{where}: key "{key}" may only use time fields in its last path component'
        )


def _parse_global(data: dict[str, Any], base: GlobalConfig, where: str) -> GlobalConfig:
    """Parse global configuration from dict, on top of earlier files' settings."""
    _check_table(data, GLOBAL_KEYS, where)

    tool_paths = data.get("tool_paths", base.tool_paths)
    if not all(isinstance(p, str) for p in tool_paths):
        raise ConfigError(f'{where}: key "tool_paths" must be an array of strings')

    return GlobalConfig(
        lock_file=data.get("lock_file", base.lock_file),
        log_file=data.get("log_file", base.log_file),
        tool_paths=tuple(tool_paths) or DEFAULT_TOOL_PATHS,
        ssh_control_master=data.get("ssh_control_master", base.ssh_control_master),
    )


def _parse_remote(data: dict[str, Any], where: str) -> RemoteConfig | None:
    """Parse the remote credential triple, which is all or nothing."""
    present = [key for key in REMOTE_TRIPLE if key in data]
    if not present:
        for key in ("remote_user", "remote_port"):
            if key in data:
                raise ConfigError(f'{where}: "{key}" given without a remote backup')
        return None

    if len(present) != len(REMOTE_TRIPLE):
        missing = ", ".join(k for k in REMOTE_TRIPLE if k not in data)
        raise ConfigError(f"{where}: incomplete remote backup, missing {missing}")

    _check_template(data["remote_backups"], "remote_backups", where)
    port = data.get("remote_port", 22)
    if not 0 < port < 65536:
        raise ConfigError(f'{where}: "remote_port" out of range: {port}')

    return RemoteConfig(
        path=data["remote_backups"],
        host=data["remote_host"],
        identity_file=data["remote_identity"],
        username=data.get("remote_user", "root"),
        port=port,
    )


def _parse_job(data: Any, where: str, source_file: str) -> JobConfig:
    """Parse one job object from dict."""
    _check_table(data, JOB_KEYS, where)

    if "snapshots" not in data:
        raise ConfigError(f'{where}: missing mandatory "snapshots" key')
    _check_template(data["snapshots"], "snapshots", where)

    if "backups" in data:
        _check_template(data["backups"], "backups", where)

    keep_max = data.get("keep_max")
    if keep_max is not None and keep_max < 0:
        raise ConfigError(f'{where}: "keep_max" must not be negative, got {keep_max}')

    return JobConfig(
        snapshots=data["snapshots"],
        subvolume=data.get("subvolume"),
        backups=data.get("backups"),
        remote=_parse_remote(data, where),
        keep_max=keep_max,
        enabled=data.get("enabled", True),
        source_file=source_file,
    )


def _parse_file(path: Path, config: Config) -> None:
    """Parse one file into config, appending its jobs."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"{path}: Invalid TOML syntax: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read config file: {e}")

    if "global" in data:
        config.global_config = _parse_global(
            data.pop("global"), config.global_config, f"{path} [global]"
        )

    if "jobs" in data:
        jobs = data.pop("jobs")
        if data:
            unknown = ", ".join(sorted(data))
            raise ConfigError(f"{path}: unknown top-level key(s) next to jobs: {unknown}")
        if not isinstance(jobs, list):
            raise ConfigError(f'{path}: "jobs" must be an array of tables')
        for i, job in enumerate(jobs):
            config.jobs.append(_parse_job(job, f"{path} jobs[{i}]", str(path)))
    elif data:
        # A file may also declare a single job at its top level.
        config.jobs.append(_parse_job(data, str(path), str(path)))

    config.files.append(str(path))


def _validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of warnings."""
    warnings = []

    if not config.jobs:
        warnings.append("No jobs configured")

    for job in config.jobs:
        if not (job.subvolume or job.backups or job.remote or job.keep_max is not None):
            warnings.append(f"Job '{job.snapshots}' has nothing to do")
        if job.keep_max is not None and not (job.backups or job.remote):
            warnings.append(
                f"Job '{job.snapshots}' prunes snapshots that are never backed up"
            )

    # Check for duplicate snapshot zones
    templates = [j.snapshots for j in config.jobs]
    if len(templates) != len(set(templates)):
        warnings.append("Duplicate snapshot templates detected")

    return warnings


def load_config(paths) -> tuple[Config, list[str]]:
    """Load and validate configuration from one or more TOML files.

    Every file is parsed and validated before returning, so a single bad
    file prevents any job from running.

    Args:
        paths: Path to a configuration file, or a list of them

    Returns:
        Tuple of (Config object, list of warnings)

    Raises:
        ConfigError: If any file is invalid or cannot be parsed
    """
    if isinstance(paths, (str, Path)):
        paths = [paths]

    config = Config()
    for path in paths:
        _parse_file(Path(path), config)

    # Validate and collect warnings
    warnings = _validate_config(config)

    return config, warnings


def generate_example_config() -> str:
    """Generate example configuration file content."""
    return """# xtlbackup configuration

[global]
lock_file = "/run/lock/xtlbackup.lock"
# log_file = "/var/log/xtlbackup.log"

# Home directory: hourly snapshots, local and remote copies, keep 48
[[jobs]]
subvolume = "/home"
snapshots = "/snapshots/home/%Y-%m-%d_%H%M"
backups = "/mnt/backup/home"
remote_backups = "/backups/home"
remote_host = "nas.example.org"
remote_identity = "/root/.ssh/xtlbackup"
keep_max = 48

# Snapshots taken elsewhere, only pruned here
# [[jobs]]
# snapshots = "/snapshots/var/%Y-%m-%d"
# keep_max = 7
"""
