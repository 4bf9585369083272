# pyright: standard

"""xtlbackup: xtlbackup/endpoint/local.py
Create commands with local endpoints.
"""

from pathlib import Path

from xtlbackup.__logger__ import logger
from xtlbackup.__util__ import AbortError

from .common import Endpoint


class LocalEndpoint(Endpoint):
    """A zone on this host: the snapshot zone or a local backup zone.

    Args:
        create: Create the zone directory on prepare (backup zones)
    """

    def __init__(self, path, invoker, tools, prefix="", create=False, **kwargs) -> None:
        super().__init__(path, invoker, tools, prefix=prefix, create=create, **kwargs)

    def _prepare(self) -> None:
        """Create the backup zone directory, if needed."""
        d = Path(self.path)
        if not self.config["create"] or d.is_dir():
            return
        if self.invoker.dry_run:
            logger.info("Would create directory: %s", d)
            return
        logger.info("Creating directory: %s", d)
        try:
            d.mkdir(parents=True, exist_ok=True, mode=0o700)
        except OSError as e:
            logger.error("Error creating new location %s: %s", d, e)
            raise AbortError(f"cannot create {d}: {e}") from e

    def create_snapshot(self, volume, destination) -> None:
        """Take a read-only snapshot of ``volume`` at ``destination``."""
        logger.info("%s -> %s", volume, destination)
        self.invoker.run(self._build_snapshot_cmd(volume, destination))

    def send_command(self, snapshot, parent=None) -> list[str]:
        """Command serializing ``snapshot``, as a delta against ``parent`` if given."""
        cmd = [self.tools.btrfs, "send"]
        if parent:
            cmd += ["-p", str(parent)]
        cmd += [str(snapshot)]
        return cmd

    def _build_snapshot_cmd(self, source, destination) -> list[str]:
        cmd = [self.tools.btrfs, "subvolume", "snapshot", "-r"]
        cmd += [str(source), str(destination)]
        logger.debug("Snapshot command: %s", cmd)
        return cmd

    def _listdir(self, location) -> list[str]:
        location = Path(location)
        if not location.is_dir():
            return []
        return [item.name for item in location.iterdir()]

    def _exists(self, path) -> bool:
        return Path(path).exists()
