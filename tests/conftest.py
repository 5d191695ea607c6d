"""Shared test fixtures."""

import pytest

from ccc.config import RemoteConfig, save_remote_config
from ccc.profiles import ProfileStore
from ccc.remotes.local import LocalStore
from ccc.sync import ProfileEntry, Snapshot
from ccc.vault import PasswordVault

SYNC_PASSWORD = "correct horse battery"


@pytest.fixture
def ccc_home(tmp_path, monkeypatch):
    """Point CCC_HOME at a temp dir for the duration of a test."""
    home = tmp_path / "ccc-home"
    home.mkdir()
    monkeypatch.setenv("CCC_HOME", str(home))
    return home


@pytest.fixture
def profile_store(ccc_home):
    return ProfileStore.for_type("claude")


@pytest.fixture
def remote_root(tmp_path):
    root = tmp_path / "remote"
    root.mkdir()
    return root


@pytest.fixture
def local_remote(remote_root):
    return LocalStore(remote_root)


@pytest.fixture
def configured(ccc_home, remote_root):
    """A local-directory remote with the sync password cached."""
    config = RemoteConfig(type="local", root=str(remote_root), path="/ccc-sync")
    save_remote_config(config)
    PasswordVault().save(SYNC_PASSWORD)
    return config


@pytest.fixture
def make_snapshot():
    """Build a Snapshot from {name: data}, all entries stamped at ``ts``."""

    def _make(profiles, ts=1_700_000_000_000):
        return Snapshot(
            profiles={name: ProfileEntry(data, ts) for name, data in profiles.items()},
            updated_at=ts,
        )

    return _make
