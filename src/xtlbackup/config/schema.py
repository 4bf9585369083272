"""Configuration schema definitions using dataclasses.

Defines the structure for TOML job declarations with sensible defaults.
"""

from dataclasses import dataclass, field
from typing import Optional

DEFAULT_TOOL_PATHS = (
    "/bin",
    "/sbin",
    "/usr/bin",
    "/usr/sbin",
    "/usr/local/bin",
    "/usr/local/sbin",
)


@dataclass(frozen=True)
class RemoteConfig:
    """Remote backup destination reached over SSH.

    Attributes:
        path: Path template of the remote backup zone
        host: Remote host name
        identity_file: SSH private key used to authenticate
        username: Remote account name
        port: SSH port
    """

    path: str
    host: str
    identity_file: str
    username: str = "root"
    port: int = 22


@dataclass(frozen=True)
class JobConfig:
    """One declared job object.

    Attributes:
        snapshots: Path template of the snapshot zone (strftime + $VARS)
        subvolume: Volume to snapshot; no snapshot job without it
        backups: Path template of the local backup zone
        remote: Remote backup destination
        keep_max: Number of snapshots kept by pruning; no prune job without it
        enabled: Whether the job takes part in runs
        source_file: File this job was declared in
    """

    snapshots: str
    subvolume: Optional[str] = None
    backups: Optional[str] = None
    remote: Optional[RemoteConfig] = None
    keep_max: Optional[int] = None
    enabled: bool = True
    source_file: Optional[str] = None


@dataclass
class GlobalConfig:
    """Global configuration settings.

    Attributes:
        lock_file: File locked for the duration of a run
        log_file: Path to log file (None for no file logging)
        tool_paths: Directories scanned for external tools
        ssh_control_master: Share one SSH connection per remote host
    """

    lock_file: str = "/run/lock/xtlbackup.lock"
    log_file: Optional[str] = None
    tool_paths: tuple[str, ...] = DEFAULT_TOOL_PATHS
    ssh_control_master: bool = True


@dataclass
class Config:
    """Root configuration object.

    Attributes:
        global_config: Global settings
        jobs: Declared jobs, in file order
        files: Files the configuration was loaded from
    """

    global_config: GlobalConfig = field(default_factory=GlobalConfig)
    jobs: list[JobConfig] = field(default_factory=list)
    files: list[str] = field(default_factory=list)

    def get_enabled_jobs(self) -> list[JobConfig]:
        """Get list of enabled jobs."""
        return [j for j in self.jobs if j.enabled]

    def has_remote_jobs(self) -> bool:
        return any(j.remote is not None for j in self.get_enabled_jobs())
