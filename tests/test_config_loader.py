"""Tests for config loader module."""

import pytest

from xtlbackup.config import loader
from xtlbackup.config.loader import (
    ConfigError,
    find_config_files,
    generate_example_config,
    load_config,
)
from xtlbackup.config.schema import DEFAULT_TOOL_PATHS


def write(directory, name, text):
    path = directory / name
    path.write_text(text)
    return path


class TestFindConfigFiles:
    """Tests for find_config_files function."""

    def test_explicit_paths(self, config_file, minimal_config_file):
        """Test explicitly specified files are returned in order."""
        result = find_config_files([str(config_file), str(minimal_config_file)])
        assert result == [config_file, minimal_config_file]

    def test_explicit_path_not_exists(self, tmp_path):
        """Test error when explicit path doesn't exist."""
        with pytest.raises(ConfigError, match="not found"):
            find_config_files([str(tmp_path / "nonexistent.toml")])

    def test_default_location(self, tmp_path, monkeypatch, sample_config_toml):
        """Test the first existing default location is used."""
        user_config = write(tmp_path, "config.toml", sample_config_toml)
        monkeypatch.setattr(
            loader, "CONFIG_PATHS", [tmp_path / "missing.toml", user_config]
        )

        assert find_config_files(None) == [user_config]

    def test_no_config_found(self, tmp_path, monkeypatch):
        monkeypatch.setattr(loader, "CONFIG_PATHS", [tmp_path / "missing.toml"])
        assert find_config_files([]) == []


class TestLoadConfig:
    """Tests for load_config function."""

    def test_load_valid_config(self, config_file):
        """Test loading a valid configuration file."""
        config, warnings = load_config(config_file)

        assert len(config.jobs) == 2
        assert config.files == [str(config_file)]

        home = config.jobs[0]
        assert home.subvolume == "/home"
        assert home.snapshots == "/snapshots/home/%Y-%m-%d_%H%M"
        assert home.backups == "/mnt/backup/home"
        assert home.keep_max == 48
        assert home.enabled is True
        assert home.source_file == str(config_file)

        assert home.remote.path == "/backups/home"
        assert home.remote.host == "nas.example.org"
        assert home.remote.identity_file == "/root/.ssh/xtlbackup"
        assert home.remote.username == "root"
        assert home.remote.port == 2222

        var = config.jobs[1]
        assert var.subvolume is None
        assert var.remote is None
        assert var.keep_max == 7

    def test_load_with_global_settings(self, config_file):
        """Test that global settings are loaded correctly."""
        config, _ = load_config(config_file)

        assert config.global_config.lock_file == "/tmp/xtlbackup-test.lock"
        assert config.global_config.tool_paths == ("/usr/sbin", "/usr/bin")
        assert config.global_config.ssh_control_master is False
        assert config.global_config.log_file is None

    def test_load_minimal_config(self, minimal_config_file):
        """Test a single job declared at the top level of a file."""
        config, warnings = load_config(minimal_config_file)

        assert len(config.jobs) == 1
        assert config.jobs[0].subvolume == "/home"
        assert config.jobs[0].keep_max is None
        assert config.global_config.tool_paths == DEFAULT_TOOL_PATHS
        assert warnings == []

    def test_multiple_files(self, config_file, minimal_config_file, tmp_config_dir):
        """Test jobs accumulate and later globals override earlier ones."""
        override = write(tmp_config_dir, "override.toml", '[global]\nlock_file = "/tmp/other.lock"\n')

        config, _ = load_config([config_file, minimal_config_file, override])

        assert [j.snapshots for j in config.jobs] == [
            "/snapshots/home/%Y-%m-%d_%H%M",
            "/snapshots/var/%Y-%m-%d",
            "/snapshots/home-%Y%m%d",
        ]
        assert config.global_config.lock_file == "/tmp/other.lock"
        # Keys the later file left out keep their earlier value
        assert config.global_config.ssh_control_master is False
        assert len(config.files) == 3

    def test_enabled_jobs(self, tmp_config_dir):
        path = write(
            tmp_config_dir,
            "jobs.toml",
            """
[[jobs]]
snapshots = "/s/a-%Y"
subvolume = "/a"

[[jobs]]
snapshots = "/s/b-%Y"
subvolume = "/b"
enabled = false
""",
        )
        config, _ = load_config(path)
        assert [j.snapshots for j in config.get_enabled_jobs()] == ["/s/a-%Y"]

    def test_load_nonexistent_file(self, tmp_path):
        """Test error when loading nonexistent file."""
        with pytest.raises(ConfigError, match="Cannot read config file"):
            load_config(tmp_path / "nonexistent.toml")

    def test_load_invalid_toml(self, tmp_config_dir):
        """Test error when loading invalid TOML."""
        bad_config = write(tmp_config_dir, "bad.toml", "this is not valid [ toml")

        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(bad_config)

    def test_bad_file_rejects_everything(self, config_file, tmp_config_dir):
        bad_config = write(tmp_config_dir, "bad.toml", 'snapshot = "/s/%Y"\n')

        with pytest.raises(ConfigError):
            load_config([config_file, bad_config])


class TestJobValidation:
    """Tests for job object validation."""

    @pytest.mark.parametrize(
        "body,match",
        [
            ('subvolume = "/home"', "snapshots"),
            ('snapshots = "/s/%Y"\nsnapshot = "/s"', "unknown key"),
            ("snapshots = 42", "must be of type string"),
            ('snapshots = "/s/%Y"\nkeep_max = "7"', "must be of type integer"),
            ('snapshots = "/s/%Y"\nkeep_max = true', "must be of type integer"),
            ('snapshots = "/s/%Y"\nenabled = 1', "must be of type boolean"),
            ('snapshots = "/s/%Y"\nkeep_max = -1', "must not be negative"),
            ('snapshots = ""', "must not be empty"),
            ('snapshots = "/s/%Y/home-%d"', "last path component"),
            ('snapshots = "/s/%Y"\nbackups = "/b/%Y/x"', "last path component"),
        ],
    )
    def test_invalid_job(self, tmp_config_dir, body, match):
        path = write(tmp_config_dir, "job.toml", body + "\n")
        with pytest.raises(ConfigError, match=match):
            load_config(path)

    def test_incomplete_remote(self, tmp_config_dir):
        """Test the remote zone, host and identity come together."""
        path = write(
            tmp_config_dir,
            "job.toml",
            """
snapshots = "/s/%Y"
remote_backups = "/backups"
remote_host = "nas"
""",
        )
        with pytest.raises(ConfigError, match="remote_identity"):
            load_config(path)

    def test_remote_options_without_remote(self, tmp_config_dir):
        path = write(tmp_config_dir, "job.toml", 'snapshots = "/s/%Y"\nremote_port = 22\n')
        with pytest.raises(ConfigError, match="remote_port"):
            load_config(path)

    def test_remote_port_range(self, tmp_config_dir):
        path = write(
            tmp_config_dir,
            "job.toml",
            """
snapshots = "/s/%Y"
remote_backups = "/backups"
remote_host = "nas"
remote_identity = "/key"
remote_port = 70000
""",
        )
        with pytest.raises(ConfigError, match="out of range"):
            load_config(path)

    def test_unknown_global_key(self, tmp_config_dir):
        path = write(tmp_config_dir, "g.toml", "[global]\nparallel = 2\n")
        with pytest.raises(ConfigError, match="unknown key"):
            load_config(path)

    def test_tool_paths_strings(self, tmp_config_dir):
        path = write(tmp_config_dir, "g.toml", "[global]\ntool_paths = [1, 2]\n")
        with pytest.raises(ConfigError, match="array of strings"):
            load_config(path)

    def test_jobs_and_top_level_job(self, tmp_config_dir):
        path = write(
            tmp_config_dir,
            "mixed.toml",
            'snapshots = "/s/%Y"\n\n[[jobs]]\nsnapshots = "/t/%Y"\n',
        )
        with pytest.raises(ConfigError, match="next to jobs"):
            load_config(path)


class TestWarnings:
    """Tests for configuration warnings."""

    def test_no_jobs(self, tmp_config_dir):
        path = write(tmp_config_dir, "empty.toml", "[global]\n")
        _, warnings = load_config(path)
        assert "No jobs configured" in warnings

    def test_nothing_to_do(self, tmp_config_dir):
        path = write(tmp_config_dir, "idle.toml", 'snapshots = "/s/%Y"\n')
        _, warnings = load_config(path)
        assert any("nothing to do" in w for w in warnings)

    def test_prune_without_backup(self, config_file):
        _, warnings = load_config(config_file)
        assert warnings == ["Job '/snapshots/var/%Y-%m-%d' prunes snapshots that are never backed up"]

    def test_duplicate_templates(self, minimal_config_file):
        _, warnings = load_config([minimal_config_file, minimal_config_file])
        assert any("Duplicate" in w for w in warnings)


def test_example_config_is_valid(tmp_path):
    path = write(tmp_path, "example.toml", generate_example_config())
    config, warnings = load_config(path)
    assert len(config.jobs) == 1
    assert warnings == []
