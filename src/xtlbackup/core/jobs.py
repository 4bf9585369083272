"""Job lists and the fixed-order pipeline running them."""

import logging
import time
from dataclasses import dataclass, field
from typing import Optional

from .. import __util__, endpoint
from ..config import Config, ConfigError, RemoteConfig
from . import naming
from .operations import sync_snapshots
from .prune import prune_zone
from .recovery import CompensationStack

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


@dataclass(frozen=True)
class SnapshotJob:
    volume: str
    zone_template: str


@dataclass(frozen=True)
class BackupJob:
    zone_template: str
    destination: str


@dataclass(frozen=True)
class RemoteBackupJob:
    zone_template: str
    remote: RemoteConfig

    @property
    def destination(self) -> str:
        return self.remote.path


@dataclass(frozen=True)
class PruneJob:
    zone_template: str
    keep_max: int


@dataclass(frozen=True)
class JobSet:
    """The four job lists of a run, in declaration order."""

    snapshots: tuple[SnapshotJob, ...] = ()
    backups: tuple[BackupJob, ...] = ()
    remote_backups: tuple[RemoteBackupJob, ...] = ()
    prunes: tuple[PruneJob, ...] = ()

    def __len__(self) -> int:
        return (
            len(self.snapshots)
            + len(self.backups)
            + len(self.remote_backups)
            + len(self.prunes)
        )


def build_jobs(config: Config) -> JobSet:
    """Split every enabled job declaration into the jobs it implies."""
    snapshots, backups, remote_backups, prunes = [], [], [], []

    for job in config.get_enabled_jobs():
        if job.subvolume:
            snapshots.append(SnapshotJob(job.subvolume, job.snapshots))
        if job.backups:
            backups.append(BackupJob(job.snapshots, job.backups))
        if job.remote is not None:
            remote_backups.append(RemoteBackupJob(job.snapshots, job.remote))
        if job.keep_max is not None:
            prunes.append(PruneJob(job.snapshots, job.keep_max))

    return JobSet(tuple(snapshots), tuple(backups), tuple(remote_backups), tuple(prunes))


@dataclass
class RunResult:
    """Outcome of a run, turned into the process exit status by the CLI."""

    exit_code: int = EXIT_OK
    error: Optional[Exception] = None
    created: list[str] = field(default_factory=list)
    transferred: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.exit_code == EXIT_OK


class JobExecutor:
    """Run snapshot, backup, remote backup and prune jobs, in that order.

    A phase starts only after the previous one finished completely: backups
    must see the snapshots just taken, and pruning must not discard a
    snapshot before it was replicated. The first failing job ends the run.

    Args:
        jobs: The job lists
        tools: ToolTable with the external tool locations
        invoker: ToolInvoker running every command
        recovery: CompensationStack run when the run aborts
        control_master: Share one SSH connection per remote zone
        endpoints: Factory of zone endpoints (the endpoint package by default)
    """

    def __init__(
        self,
        jobs: JobSet,
        tools,
        invoker,
        recovery: Optional[CompensationStack] = None,
        control_master: bool = True,
        endpoints=endpoint,
    ) -> None:
        self.jobs = jobs
        self.tools = tools
        self.invoker = invoker
        self.recovery = recovery or CompensationStack()
        self.control_master = control_master
        self.endpoints = endpoints

    def run(self, when: Optional[time.struct_time] = None) -> RunResult:
        """Execute every phase; never raises for an aborted run.

        Args:
            when: Time used to name the new snapshots (now by default)
        """
        when = when or time.localtime()
        result = RunResult()

        phases = [
            ("Snapshots", self.jobs.snapshots, self._run_snapshot_job),
            ("Local backups", self.jobs.backups, self._run_backup_job),
            ("Remote backups", self.jobs.remote_backups, self._run_remote_backup_job),
            ("Pruning", self.jobs.prunes, self._run_prune_job),
        ]

        try:
            for caption, jobs, handler in phases:
                if not jobs:
                    continue
                logger.info(__util__.log_heading(caption))
                for job in jobs:
                    handler(job, result, when)
            self.invoker.cancel.check()
        except (__util__.AbortError, OSError) as e:
            result.error = e
            if isinstance(e, __util__.JobInterrupted):
                result.exit_code = EXIT_INTERRUPTED
                logger.error("Run aborted: %s", e)
            else:
                result.exit_code = EXIT_FAILURE
                logger.error("Run failed: %s", e)
            if not self.recovery.run_if_armed():
                logger.error("A partial snapshot may remain, remove it by hand")

        return result

    def _run_snapshot_job(self, job: SnapshotJob, result: RunResult, when) -> None:
        destination = naming.resolve_template(job.zone_template, when)
        source = self.endpoints.source_endpoint(job.zone_template, self.invoker, self.tools)

        if source.exists(destination):
            logger.info("Snapshot %s already exists, skipping", destination)
            return

        source.create_snapshot(job.volume, destination)
        result.created.append(destination)

    def _check_zones(self, source, destination) -> None:
        if source.path == destination.path:
            raise ConfigError(f"backup zone {destination!r} is the snapshot zone itself")

    def _run_backup_job(self, job: BackupJob, result: RunResult, when) -> None:
        source = self.endpoints.source_endpoint(job.zone_template, self.invoker, self.tools)
        destination = self.endpoints.local_endpoint(
            job.destination, self.invoker, self.tools
        )
        self._check_zones(source, destination)
        destination.prepare()
        result.transferred += sync_snapshots(
            source, destination, self.invoker, self.recovery
        )

    def _run_remote_backup_job(
        self, job: RemoteBackupJob, result: RunResult, when
    ) -> None:
        source = self.endpoints.source_endpoint(job.zone_template, self.invoker, self.tools)
        destination = self.endpoints.remote_endpoint(
            job.remote, self.invoker, self.tools, control_master=self.control_master
        )
        destination.prepare()
        try:
            result.transferred += sync_snapshots(
                source, destination, self.invoker, self.recovery
            )
        except (__util__.AbortError, OSError):
            # Roll back while the master connection is still up.
            if not self.recovery.run_if_armed():
                logger.error("A partial snapshot may remain at %r", destination)
            raise
        finally:
            destination.close()

    def _run_prune_job(self, job: PruneJob, result: RunResult, when) -> None:
        source = self.endpoints.source_endpoint(job.zone_template, self.invoker, self.tools)
        result.deleted += prune_zone(source, job.keep_max)
