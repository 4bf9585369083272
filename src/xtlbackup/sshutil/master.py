"""xtlbackup: xtlbackup/sshutil/master.py
Build ssh command lines and share one master connection per remote host.
"""

import os
import subprocess
import threading
from pathlib import Path
from typing import List, Optional

from xtlbackup.__logger__ import logger

# Never prompt: a backup run is unattended.
UNATTENDED_OPTIONS = (
    "BatchMode=yes",
    "ServerAliveInterval=5",
    "ServerAliveCountMax=6",
    "ConnectTimeout=30",
    "StrictHostKeyChecking=accept-new",
)


class SSHMasterManager:
    """Command lines for one remote account, optionally multiplexed.

    With ``control_master`` every command reuses the connection opened by
    :meth:`start_master` through a control socket private to this process.
    """

    def __init__(
        self,
        hostname: str,
        username: str = "root",
        port: Optional[int] = None,
        identity_file: Optional[str] = None,
        ssh_binary: str = "ssh",
        control_master: bool = True,
        control_dir: Optional[str] = None,
        persist: str = "60",
    ):
        self.hostname = hostname
        self.username = username
        self.port = port
        self.identity_file = identity_file
        self.ssh_binary = ssh_binary
        self.control_master = control_master
        self.persist = persist

        if control_dir:
            self.control_dir = Path(control_dir)
        else:
            self.control_dir = Path.home() / ".ssh" / "controlmasters"

        # Socket paths are limited to ~100 bytes; keep the name short.
        self.control_path = (
            self.control_dir / f"xtl-{self.username}@{self.hostname}-{os.getpid()}"
        )
        self._lock = threading.Lock()
        self._master_started = False

    @property
    def target(self) -> str:
        return f"{self.username}@{self.hostname}"

    def get_ssh_base_cmd(self) -> List[str]:
        """Return ssh with every option, up to and including the target."""
        options = list(UNATTENDED_OPTIONS)
        if self.control_master:
            options += [
                f"ControlPath={self.control_path}",
                "ControlMaster=auto",
                f"ControlPersist={self.persist}",
            ]

        cmd = [self.ssh_binary]
        for option in options:
            cmd += ["-o", option]
        if self.port:
            cmd += ["-p", str(self.port)]
        if self.identity_file:
            cmd += ["-i", str(self.identity_file)]
        cmd.append(self.target)
        return cmd

    def _control_command(self, operation: str) -> List[str]:
        return [
            self.ssh_binary,
            "-O",
            operation,
            "-o",
            f"ControlPath={self.control_path}",
            self.target,
        ]

    def start_master(self) -> bool:
        """Open the shared connection; False if it is disabled or failed."""
        if not self.control_master:
            return False

        with self._lock:
            if self.is_master_alive():
                return True

            cmd = self.get_ssh_base_cmd()
            cmd.insert(1, "-MNf")
            logger.debug("Starting SSH master for %s", self.target)
            try:
                self.control_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
                subprocess.run(cmd, check=True)
            except (OSError, subprocess.CalledProcessError) as e:
                # Every command still works, each over its own connection.
                logger.warning("Failed to start SSH master for %s: %s", self.hostname, e)
                return False
            self._master_started = True
            return True

    def stop_master(self) -> bool:
        if not self._master_started:
            return True

        with self._lock:
            try:
                subprocess.run(self._control_command("exit"), check=True, capture_output=True)
            except (OSError, subprocess.CalledProcessError) as e:
                logger.error("Failed to stop SSH master for %s: %s", self.hostname, e)
                return False
            else:
                self._master_started = False
                return True
            finally:
                self._remove_socket()

    def is_master_alive(self) -> bool:
        if not self.control_path.exists():
            return False
        try:
            subprocess.run(self._control_command("check"), check=True, capture_output=True)
        except (OSError, subprocess.CalledProcessError):
            return False
        return True

    def _remove_socket(self) -> None:
        try:
            self.control_path.unlink(missing_ok=True)
        except OSError as e:
            logger.error("Failed to remove control socket %s: %s", self.control_path, e)
