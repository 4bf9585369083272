# pyright: standard

"""xtlbackup: xtlbackup/endpoint/common.py
Common functionality among endpoints.
"""

import posixpath

from xtlbackup.__logger__ import logger


class Endpoint:
    """Generic structure of a snapshot zone reached through commands.

    Args:
        path: Directory of the zone
        invoker: ToolInvoker running every command
        tools: ToolTable with the local tool locations
        prefix: Only entries whose name starts with it belong to the zone
    """

    def __init__(self, path, invoker, tools, prefix="", **kwargs) -> None:
        self.config = {}
        self.config["path"] = str(path).rstrip("/") or "/"
        self.config["prefix"] = prefix
        self.invoker = invoker
        self.tools = tools

        for key, value in kwargs.items():
            self.config[key] = value

    @property
    def path(self) -> str:
        return self.config["path"]

    @property
    def destination_prefix(self) -> str:
        """Prefix turning a snapshot basename into a name of this zone."""
        return posixpath.join(self.path, "")

    def prepare(self):
        """Public access to _prepare, which is called after creating an endpoint."""
        logger.debug("Preparing endpoint %r ...", self)
        return self._prepare()

    def close(self) -> None:
        """Release resources held for this endpoint."""

    def snapshot_path(self, snapshot) -> str:
        """Path ``snapshot`` has (or would have) in this zone."""
        return self.destination_prefix + posixpath.basename(snapshot)

    def list_snapshots(self) -> list[str]:
        """Return the sorted paths of all snapshots of this zone."""
        prefix = self.config["prefix"]
        names = []
        for name in self._listdir(self.path):
            if not name.startswith(prefix):
                continue
            # Hidden entries belong to the zone only if the prefix says so.
            if name.startswith(".") and not prefix.startswith("."):
                continue
            names.append(self.snapshot_path(name))
        names.sort()
        logger.debug("Found %d snapshot(s) in %r", len(names), self)
        return names

    def exists(self, path) -> bool:
        """Whether an entry named like ``path`` exists in this zone."""
        return self._exists(self.snapshot_path(path))

    def receive_command(self) -> list[str]:
        """Command materializing a stream on stdin as a snapshot of this zone."""
        return self._build_receive_command(self.path)

    def delete_snapshot(self, snapshot) -> None:
        """Delete a snapshot (subvolume) of this zone."""
        path = self.snapshot_path(snapshot)
        logger.info("Deleting snapshot %s", path)
        self.invoker.run(self._build_delete_command(path))

    def remove_partial(self, snapshot) -> None:
        """Delete whatever an interrupted receive of ``snapshot`` left behind.

        Runs during an abort, so it ignores the cancellation token.
        """
        path = self.snapshot_path(snapshot)
        if not self.exists(path):
            logger.info("No partial snapshot %s left to remove", path)
            return
        self.invoker.run(self._build_delete_command(path), interruptible=False)
        logger.info("Removed partial snapshot %s", path)

    # The following methods may be implemented by endpoints unless the
    # default behaviour is wanted.

    def __repr__(self) -> str:
        return f"{self.config['path']}"

    def _prepare(self) -> None:
        """Called after endpoint creation for additional checks."""
        pass

    def _build_receive_command(self, destination) -> list[str]:
        return [self.tools.btrfs, "receive", str(destination)]

    def _build_delete_command(self, path) -> list[str]:
        return [self.tools.btrfs, "subvolume", "delete", str(path)]

    def _listdir(self, location) -> list[str]:
        raise NotImplementedError

    def _exists(self, path) -> bool:
        return posixpath.basename(path) in self._listdir(posixpath.dirname(path))
