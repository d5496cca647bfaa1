"""Pytest configuration and shared fixtures."""

import threading

import pytest

from snapborg import __util__
from snapborg.core.mount import is_live


class Journal:
    """Ordered record of the external actions a run performed."""

    def __init__(self):
        self._lock = threading.Lock()
        self.entries = []

    def add(self, *entry):
        with self._lock:
            self.entries.append(entry)

    def of(self, action):
        return [e[1:] for e in self.entries if e[0] == action]

    def actions(self):
        return [e[0] for e in self.entries]


class FakeProvisioner:
    """Provisioner recording calls instead of running snapshot tools."""

    def __init__(self, journal, handles=None, existing=None):
        self.journal = journal
        self.handles = handles or {}
        self.existing = existing or {}
        self.fail_create = set()
        self.fail_destroy = set()

    def create(self, source):
        self.journal.add("create", source)
        if source in self.fail_create:
            raise __util__.ProvisionError(source, "snapUtil exited with status 1")
        return self.handles.get(source, f"com.example.snap.2024-01-01-120000.{id(source)}")

    def list_snapshots(self, source):
        return list(self.existing.get(source, []))

    def latest(self, source):
        self.journal.add("latest", source)
        snapshots = self.list_snapshots(source)
        if not snapshots:
            raise __util__.DiscoveryError(source)
        return snapshots[-1]

    def destroy(self, handle, source):
        self.journal.add("destroy", handle, source)
        if source in self.fail_destroy:
            raise __util__.DestroyError(source, handle, "snapUtil exited with status 1")


class FakeMounter:
    """Mount manager recording calls instead of mounting."""

    def __init__(self, journal):
        self.journal = journal
        self.fail_mount = set()
        self.fail_unmount = set()

    def mount(self, handle, source, mountpoint):
        if is_live(source, mountpoint):
            return False
        self.journal.add("mount", handle, source, mountpoint)
        if mountpoint in self.fail_mount:
            raise __util__.MountError(source, mountpoint, "mount_apfs exited with status 1")
        return True

    def unmount(self, mountpoint):
        self.journal.add("unmount", mountpoint)
        if mountpoint in self.fail_unmount:
            raise __util__.UnmountError(mountpoint, "umount exited with status 16")


class FakeArchiver:
    """Archive invoker recording calls instead of running borg."""

    def __init__(self, journal):
        self.journal = journal
        self.error = None
        self.interrupted = False

    def invoke(self, name, mountpoints, extra_args=(), cancel=None):
        self.journal.add("archive", name, list(mountpoints), list(extra_args), cancel)
        if self.error is not None:
            raise self.error
        return self.interrupted


@pytest.fixture
def journal():
    return Journal()


@pytest.fixture
def provisioner(journal):
    return FakeProvisioner(
        journal,
        handles={
            "/a": "com.example.snap.2024-01-01-120000.local",
            "/b": "com.example.snap.2024-01-01-120001.local",
        },
    )


@pytest.fixture
def mounter(journal):
    return FakeMounter(journal)


@pytest.fixture
def archiver(journal):
    return FakeArchiver(journal)


@pytest.fixture
def lock_file(tmp_path):
    return tmp_path / "run" / "snapborg.lock"


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
lock_file = "/tmp/snapborg-test.lock"
archive_args = "--stats --compression lz4"
provisioner = "timemachine"
parallel_snapshots = 2

[[sources]]
path = "/"
mountpoint = "/tmp/snapshot"

[[sources]]
path = "/System/Volumes/Data"
mountpoint = "/tmp/snapshot-data"
snapshot = "com.apple.TimeMachine.2024-01-01-120000.local"
"""


@pytest.fixture
def minimal_config_toml():
    """Return a minimal valid TOML configuration string."""
    return """
[[sources]]
path = "/"
mountpoint = "/tmp/snapshot"
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
