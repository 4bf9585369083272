# pyright: standard

"""xtlbackup: xtlbackup/endpoint/ssh.py
Create commands with remote endpoints reached over ssh.

A remote account restricted by ``xtlbackup-receive`` only accepts
``ls <path>`` and ``btrfs receive <path>``; everything else is answered
with an authorization error.
"""

import shlex
from typing import List

from xtlbackup.__logger__ import logger
from xtlbackup.__util__ import TransferError
from xtlbackup.sshutil.master import SSHMasterManager

from .common import Endpoint


class SSHEndpoint(Endpoint):
    """A remote backup zone."""

    def __init__(
        self,
        path,
        invoker,
        tools,
        hostname,
        username="root",
        port=22,
        identity_file=None,
        control_master=True,
        **kwargs,
    ) -> None:
        super().__init__(
            path,
            invoker,
            tools,
            hostname=hostname,
            username=username,
            port=port,
            identity_file=identity_file,
            **kwargs,
        )
        self.ssh_manager = SSHMasterManager(
            hostname,
            username=username,
            port=port,
            identity_file=identity_file,
            ssh_binary=tools.ssh or "ssh",
            control_master=control_master,
        )

    def __repr__(self) -> str:
        return f"{self.config['username']}@{self.config['hostname']}:{self.config['path']}"

    def _prepare(self) -> None:
        if self.invoker.dry_run:
            logger.info("Would start SSH master for %s", self.config["hostname"])
            return
        if self.ssh_manager.start_master():
            logger.debug("SSH master connection to %s is up", self.config["hostname"])

    def close(self) -> None:
        self.ssh_manager.stop_master()

    def _build_remote_command(self, command: List[str]) -> List[str]:
        """Wrap a remote command line into an ssh invocation.

        The remote side sees one string, as sshd hands it to the shell or to
        the forced command in SSH_ORIGINAL_COMMAND.
        """
        return self.ssh_manager.get_ssh_base_cmd() + ["--", shlex.join(command)]

    def _build_receive_command(self, destination) -> List[str]:
        return self._build_remote_command(["btrfs", "receive", str(destination)])

    def _build_delete_command(self, path) -> List[str]:
        return self._build_remote_command(["btrfs", "subvolume", "delete", str(path)])

    def _list_remote(self, location, interruptible=True) -> List[str]:
        output = self.invoker.capture(
            self._build_remote_command(["ls", str(location)]),
            interruptible=interruptible,
        )
        names = []
        for line in output.splitlines():
            name = line.strip()
            if not name:
                continue
            if "/" in name or "\0" in name:
                raise TransferError(
                    f"unexpected output listing {self!r}: {line!r}",
                    command=["ls", str(location)],
                )
            names.append(name)
        return names

    def _listdir(self, location) -> List[str]:
        return self._list_remote(location)

    def _exists(self, path) -> bool:
        # Used while rolling back, after an interrupt may have been requested.
        names = self._list_remote(self.path, interruptible=False)
        return path.rsplit("/", 1)[-1] in names
