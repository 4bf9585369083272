"""Tests for SSHMasterManager command building."""

import subprocess

from xtlbackup.sshutil.master import SSHMasterManager


def options(cmd):
    return [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "-o"]


class TestSSHBaseCommand:
    """Tests for the ssh base command."""

    def test_unattended_options(self, tmp_path):
        manager = SSHMasterManager("nas", control_master=False, control_dir=str(tmp_path))
        cmd = manager.get_ssh_base_cmd()

        assert cmd[0] == "ssh"
        assert cmd[-1] == "root@nas"
        assert "BatchMode=yes" in options(cmd)
        assert "StrictHostKeyChecking=accept-new" in options(cmd)
        assert not any(o.startswith("Control") for o in options(cmd))

    def test_control_options(self, tmp_path):
        manager = SSHMasterManager("nas", username="backup", control_dir=str(tmp_path))
        opts = options(manager.get_ssh_base_cmd())

        assert f"ControlPath={manager.control_path}" in opts
        assert "ControlMaster=auto" in opts
        assert manager.control_path.parent == tmp_path

    def test_port_and_identity(self, tmp_path):
        manager = SSHMasterManager(
            "nas",
            port=2222,
            identity_file="/root/.ssh/key",
            ssh_binary="/usr/bin/ssh",
            control_dir=str(tmp_path),
        )
        cmd = manager.get_ssh_base_cmd()

        assert cmd[0] == "/usr/bin/ssh"
        assert cmd[cmd.index("-p") + 1] == "2222"
        assert cmd[cmd.index("-i") + 1] == "/root/.ssh/key"


class TestMasterLifecycle:
    """Tests for starting and stopping the master connection."""

    def test_disabled(self, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(subprocess, "run", lambda *a, **kw: calls.append(a))
        manager = SSHMasterManager("nas", control_master=False, control_dir=str(tmp_path))

        assert manager.start_master() is False
        assert manager.stop_master() is True
        assert calls == []

    def test_start_failure_is_not_fatal(self, tmp_path):
        manager = SSHMasterManager(
            "nas",
            ssh_binary=str(tmp_path / "no-such-ssh"),
            control_dir=str(tmp_path / "cm"),
        )
        assert manager.start_master() is False
        assert (tmp_path / "cm").is_dir()

    def test_unusable_control_dir_is_not_fatal(self, tmp_path, monkeypatch):
        """Test a control directory blocked by a file only disables the master."""
        calls = []
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: calls.append(cmd))
        blocker = tmp_path / "controlmasters"
        blocker.write_text("")
        manager = SSHMasterManager("nas", control_dir=str(blocker / "sub"))

        assert manager.start_master() is False
        assert calls == []
        assert manager.stop_master() is True

    def test_start_and_stop(self, tmp_path, monkeypatch):
        calls = []
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: calls.append(cmd))
        manager = SSHMasterManager("nas", control_dir=str(tmp_path))

        assert manager.start_master() is True
        assert "-MNf" in calls[0]
        assert manager.stop_master() is True
        assert calls[1][1:3] == ["-O", "exit"]

    def test_no_socket_is_not_alive(self, tmp_path):
        manager = SSHMasterManager("nas", control_dir=str(tmp_path))
        assert manager.is_master_alive() is False
