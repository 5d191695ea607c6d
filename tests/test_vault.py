"""Tests for the local password cache."""

from unittest.mock import patch

from ccc.vault import PasswordVault, machine_fingerprint


class TestMachineFingerprint:
    def test_is_deterministic(self):
        assert machine_fingerprint() == machine_fingerprint()
        assert len(machine_fingerprint()) == 32

    @patch("ccc.vault.socket.gethostname")
    def test_depends_on_host(self, mock_hostname):
        mock_hostname.return_value = "laptop"
        first = machine_fingerprint()
        mock_hostname.return_value = "desktop"
        assert machine_fingerprint() != first


class TestPasswordVault:
    def test_default_path_under_ccc_home(self, ccc_home):
        assert PasswordVault().path == ccc_home / ".sync_key"

    def test_save_and_load(self, tmp_path):
        vault = PasswordVault(tmp_path / ".sync_key")
        vault.save("s3cret-pass")
        assert vault.has()
        assert vault.load() == "s3cret-pass"

    def test_file_is_not_plaintext(self, tmp_path):
        vault = PasswordVault(tmp_path / ".sync_key")
        vault.save("s3cret-pass")
        raw = vault.path.read_bytes()
        assert b"s3cret-pass" not in raw
        assert len(raw) == 16 + 16 + len("s3cret-pass")
        assert vault.path.stat().st_mode & 0o777 == 0o600

    def test_load_missing_returns_none(self, tmp_path):
        vault = PasswordVault(tmp_path / ".sync_key")
        assert not vault.has()
        assert vault.load() is None

    def test_load_on_other_machine_returns_none(self, tmp_path):
        vault = PasswordVault(tmp_path / ".sync_key")
        vault.save("s3cret-pass")
        with patch("ccc.vault.machine_fingerprint", return_value=b"\x00" * 32):
            assert vault.load() is None

    def test_load_corrupted_returns_none(self, tmp_path):
        vault = PasswordVault(tmp_path / ".sync_key")
        vault.path.write_bytes(b"short")
        assert vault.load() is None
        vault.path.write_bytes(b"\x00" * 48)
        assert vault.load() is None

    def test_clear(self, tmp_path):
        vault = PasswordVault(tmp_path / ".sync_key")
        vault.save("s3cret-pass")
        vault.clear()
        assert not vault.has()
        assert vault.load() is None
        vault.clear()
