"""Tests for the run command and the dispatcher."""

import argparse
import signal
import threading
from unittest.mock import MagicMock, patch

import pytest

from snapborg import __util__, __version__
from snapborg.cli.common import EXIT_USAGE
from snapborg.cli.dispatcher import create_subcommand_parser, main
from snapborg.cli.run import cancellation_signals, check_environment, execute_run
from snapborg.core import BackupResult


@pytest.fixture
def borg_env(monkeypatch):
    monkeypatch.setenv("BORG_REPO", "/backups/repo")
    monkeypatch.setenv("BORG_PASSPHRASE", "hunter2")
    with patch("os.geteuid", return_value=0):
        yield


@pytest.fixture
def run_args(lock_file):
    parser = create_subcommand_parser()
    return parser.parse_args(
        [
            "-q",
            "run",
            "--source", "/",
            "--mountpoint", "/tmp/snapshot",
            "--lock-file", str(lock_file),
        ]
    )  # fmt: skip


@pytest.fixture(autouse=True)
def no_config_file():
    with patch("snapborg.cli.common.find_config_file", return_value=None):
        yield


class TestCheckEnvironment:
    """Tests for check_environment function."""

    def test_ready(self, borg_env):
        assert check_environment() == []

    def test_not_root(self, borg_env):
        with patch("os.geteuid", return_value=501):
            assert check_environment() == ["requires root privileges"]

    def test_missing_variables(self, borg_env, monkeypatch):
        monkeypatch.delenv("BORG_REPO")
        monkeypatch.setenv("BORG_PASSPHRASE", "")

        assert check_environment() == [
            "BORG_REPO not specified",
            "BORG_PASSPHRASE not specified",
        ]


class TestCancellationSignals:
    """Tests for cancellation_signals context manager."""

    def test_signal_sets_event(self):
        """Test a signal sets the event instead of interrupting."""
        cancel = threading.Event()
        previous = signal.getsignal(signal.SIGTERM)

        with cancellation_signals(cancel, signals=(signal.SIGTERM,)):
            handler = signal.getsignal(signal.SIGTERM)
            handler(signal.SIGTERM, None)
            assert cancel.is_set()
            # A second signal is harmless
            handler(signal.SIGTERM, None)

        assert signal.getsignal(signal.SIGTERM) == previous


@patch("snapborg.cli.run.Backup")
class TestExecuteRun:
    """Tests for execute_run function."""

    def test_success(self, mock_backup, borg_env, run_args):
        """Test a successful run exits with 0."""
        mock_backup.from_config.return_value.run.return_value = BackupResult(
            archive_name="2024-01-01-120000@myhost"
        )

        assert execute_run(run_args) == 0

        config = mock_backup.from_config.call_args.args[0]
        assert config.source_paths == ["/"]
        cancel = mock_backup.from_config.return_value.run.call_args.args[0]
        assert isinstance(cancel, threading.Event)

    def test_interrupted_is_success(self, mock_backup, borg_env, run_args):
        """Test a cancelled run still exits with 0."""
        mock_backup.from_config.return_value.run.return_value = BackupResult(
            archive_name="name", interrupted=True
        )

        assert execute_run(run_args) == 0

    def test_run_error(self, mock_backup, borg_env, run_args):
        """Test a failed run exits with 1."""
        mock_backup.from_config.return_value.run.side_effect = __util__.ArchiveError(
            "error while running borg"
        )

        assert execute_run(run_args) == 1

    def test_fatal_error(self, mock_backup, borg_env, run_args):
        """Test a failed unmount exits with 3."""
        mock_backup.from_config.return_value.run.side_effect = __util__.UnmountError(
            "/tmp/snapshot"
        )

        assert execute_run(run_args) == 3

    def test_mismatch_never_starts(self, mock_backup, borg_env, lock_file):
        """Test unequal sources and mountpoints fail before any work."""
        args = create_subcommand_parser().parse_args(
            ["-q", "run", "--source", "/", "--source", "/data", "--mountpoint", "/mnt"]
        )

        assert execute_run(args) == 1
        mock_backup.from_config.assert_not_called()

    def test_environment_checked(self, mock_backup, run_args, monkeypatch):
        """Test a run without borg repository fails before any work."""
        monkeypatch.delenv("BORG_REPO", raising=False)

        with patch("os.geteuid", return_value=0):
            assert execute_run(run_args) == 1
        mock_backup.from_config.assert_not_called()


class TestDispatcher:
    """Tests for the command dispatcher."""

    def test_version(self, capsys):
        assert main(["--version"]) == 0
        assert capsys.readouterr().out == f"snapborg {__version__}\n"

    def test_no_command(self, capsys):
        """Test a missing command is a usage error."""
        assert main([]) == EXIT_USAGE
        assert "No command specified" in capsys.readouterr().out

    def test_run_arguments(self):
        """Test run options are parsed."""
        args = create_subcommand_parser().parse_args(
            [
                "run",
                "--source", "/",
                "--mountpoint", "/tmp/snapshot",
                "--snapshot", "snap",
                "--archive-args=--stats --compression lz4",
                "--name", "weekly",
                "--use-existing-snapshots",
                "--parallel-snapshots", "2",
                "--dry-run",
            ]
        )  # fmt: skip

        assert args.command == "run"
        assert args.snapshot == ["snap"]
        assert args.archive_args == "--stats --compression lz4"
        assert args.name == "weekly"
        assert args.use_existing_snapshots is True
        assert args.parallel_snapshots == 2
        assert args.dry_run is True

    def test_usage_error(self):
        """Test invalid arguments exit with the usage status."""
        with pytest.raises(SystemExit) as excinfo:
            main(["run", "--parallel-snapshots", "many"])

        assert excinfo.value.code == 2

    def test_run_dispatched(self):
        with patch("snapborg.cli.run.execute_run", return_value=0) as mock_run:
            assert main(["run", "--source", "/", "--mountpoint", "/mnt"]) == 0

        assert isinstance(mock_run.call_args.args[0], argparse.Namespace)


class TestListCommand:
    """Tests for the list command."""

    def test_list(self, capsys):
        provisioner = MagicMock()
        provisioner.list_snapshots.return_value = [
            "com.apple.TimeMachine.2024-01-01-120000.local",
            "manual",
        ]

        with patch("snapborg.cli.list_cmd.choose_provisioner", return_value=provisioner):
            status = main(["-q", "list", "--source", "/", "--mountpoint", "/mnt"])

        assert status == 0
        out = capsys.readouterr().out
        assert "/:" in out
        assert "[2024-01-01-120000]" in out
        assert "  manual\n" in out

    def test_list_without_mountpoint(self, capsys):
        """Test listing only needs the sources."""
        provisioner = MagicMock()
        provisioner.list_snapshots.return_value = []

        with patch("snapborg.cli.list_cmd.choose_provisioner", return_value=provisioner):
            status = main(["-q", "list", "--source", "/", "--source", "/data"])

        assert status == 0
        assert [c.args[0] for c in provisioner.list_snapshots.call_args_list] == [
            "/",
            "/data",
        ]
        assert "(no snapshots)" in capsys.readouterr().out

    def test_run_still_needs_mountpoint(self, lock_file):
        """Test run keeps rejecting sources without mountpoints."""
        with patch("snapborg.cli.run.Backup") as mock_backup:
            status = main(["-q", "run", "--source", "/"])

        assert status == 1
        mock_backup.from_config.assert_not_called()
