"""Pytest configuration and shared fixtures."""

import shutil
from pathlib import Path

import pytest

from xtlbackup.__util__ import TransferError
from xtlbackup.core.cancel import CancelToken
from xtlbackup.core.tools import ToolTable

BTRFS = "/sbin/btrfs"


class FakeBtrfsInvoker:
    """ToolInvoker stand-in acting out btrfs commands on plain directories.

    ``btrfs subvolume snapshot`` creates the destination directory, ``btrfs
    receive`` creates ``<zone>/<basename of the sent snapshot>`` and ``btrfs
    subvolume delete`` removes it. Failures are injected per pipe number or
    per deleted path.
    """

    def __init__(self, cancel=None, dry_run=False):
        self.cancel = cancel or CancelToken()
        self.dry_run = dry_run
        self.commands = []
        self.pipes = []
        self.captures = []
        self.capture_output = ""
        self.fail_pipes = set()
        self.fail_deletes = set()
        self.cancel_on_pipe = None

    def run(self, cmd, interruptible=True):
        if interruptible:
            self.cancel.check()
        cmd = [str(arg) for arg in cmd]
        self.commands.append(cmd)
        if self.dry_run:
            return
        if cmd[1:3] == ["subvolume", "snapshot"]:
            Path(cmd[-1]).mkdir()
        elif cmd[1:3] == ["subvolume", "delete"]:
            if cmd[-1] in self.fail_deletes:
                raise TransferError(f"delete {cmd[-1]} failed", command=cmd)
            shutil.rmtree(cmd[-1])

    def capture(self, cmd, interruptible=True):
        if interruptible:
            self.cancel.check()
        self.captures.append([str(arg) for arg in cmd])
        return self.capture_output

    def pipe(self, producer, consumer):
        self.cancel.check()
        producer = [str(arg) for arg in producer]
        consumer = [str(arg) for arg in consumer]
        self.pipes.append((producer, consumer))
        number = len(self.pipes)
        if self.dry_run:
            return
        if consumer[1] == "receive":
            # The receive starts creating the subvolume right away.
            received = Path(consumer[-1]) / Path(producer[-1]).name
            received.mkdir()
        if number == self.cancel_on_pipe:
            self.cancel.cancel()
            self.cancel.check()
        if number in self.fail_pipes:
            raise TransferError(f"pipe {number} failed", returncodes=[0, 1])

    @property
    def deleted(self):
        return [c[-1] for c in self.commands if c[1:3] == ["subvolume", "delete"]]


@pytest.fixture
def tools():
    return ToolTable(btrfs=BTRFS, ssh="/usr/bin/ssh")


@pytest.fixture
def invoker():
    return FakeBtrfsInvoker()


@pytest.fixture
def make_zone():
    """Return a helper creating a zone directory with one entry per snapshot."""

    def _make_zone(root: Path, names=()) -> Path:
        root.mkdir(parents=True, exist_ok=True)
        for name in names:
            (root / name).mkdir()
        return root

    return _make_zone


@pytest.fixture
def tmp_config_dir(tmp_path):
    """Create a temporary config directory."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def sample_config_toml():
    """Return a sample valid TOML configuration string."""
    return """
[global]
lock_file = "/tmp/xtlbackup-test.lock"
tool_paths = ["/usr/sbin", "/usr/bin"]
ssh_control_master = false

[[jobs]]
subvolume = "/home"
snapshots = "/snapshots/home/%Y-%m-%d_%H%M"
backups = "/mnt/backup/home"
remote_backups = "/backups/home"
remote_host = "nas.example.org"
remote_identity = "/root/.ssh/xtlbackup"
remote_port = 2222
keep_max = 48

[[jobs]]
snapshots = "/snapshots/var/%Y-%m-%d"
keep_max = 7
"""


@pytest.fixture
def minimal_config_toml():
    """Return a minimal valid TOML configuration string."""
    return """
subvolume = "/home"
snapshots = "/snapshots/home-%Y%m%d"
"""


@pytest.fixture
def config_file(tmp_config_dir, sample_config_toml):
    """Create a temporary config file with sample content."""
    config_path = tmp_config_dir / "config.toml"
    config_path.write_text(sample_config_toml)
    return config_path


@pytest.fixture
def minimal_config_file(tmp_config_dir, minimal_config_toml):
    """Create a temporary config file with minimal content."""
    config_path = tmp_config_dir / "minimal.toml"
    config_path.write_text(minimal_config_toml)
    return config_path
