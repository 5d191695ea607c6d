"""Tests for payload encryption."""

import hashlib
from unittest.mock import patch

import pytest

from ccc.crypto import (
    HEADER_LENGTH,
    IV_LENGTH,
    MAGIC,
    PBKDF2_ITERATIONS,
    SALT_LENGTH,
    TAG_LENGTH,
    decrypt,
    decrypt_text,
    derive_key,
    encrypt,
)
from ccc.errors import DECRYPTION_FAILED, BlobFormatError, DecryptionError

TAG_OFFSET = len(MAGIC) + SALT_LENGTH + IV_LENGTH


class TestRoundTrip:
    @pytest.mark.parametrize(
        "payload",
        [b"", b"x", b'{"version": 1, "profiles": {}}', bytes(range(256)) * 4],
    )
    def test_bytes(self, payload):
        assert decrypt(encrypt(payload, "hunter22"), "hunter22") == payload

    def test_text_is_utf8(self):
        blob = encrypt("配置 ✓", "hunter22")
        assert decrypt_text(blob, "hunter22") == "配置 ✓"

    def test_layout(self):
        blob = encrypt(b"hello", "hunter22")
        assert blob.startswith(MAGIC)
        assert len(blob) == HEADER_LENGTH + len(b"hello")
        assert HEADER_LENGTH == 70

    def test_fresh_salt_and_iv_per_call(self):
        a = encrypt(b"same", "hunter22")
        b = encrypt(b"same", "hunter22")
        salt = slice(len(MAGIC), len(MAGIC) + SALT_LENGTH)
        iv = slice(len(MAGIC) + SALT_LENGTH, TAG_OFFSET)
        assert a[salt] != b[salt]
        assert a[iv] != b[iv]

    def test_key_derivation_is_pbkdf2_sha256(self):
        salt = b"\x01" * SALT_LENGTH
        expected = hashlib.pbkdf2_hmac("sha256", b"hunter22", salt, PBKDF2_ITERATIONS, 32)
        assert derive_key("hunter22", salt) == expected


class TestTamperDetection:
    def _flip(self, blob: bytes, index: int) -> bytes:
        data = bytearray(blob)
        data[index] ^= 0x01
        return bytes(data)

    @pytest.mark.parametrize("offset", [0, TAG_LENGTH - 1])
    def test_flipped_tag(self, offset):
        blob = encrypt(b"secret profile", "hunter22")
        with pytest.raises(DecryptionError):
            decrypt(self._flip(blob, TAG_OFFSET + offset), "hunter22")

    @pytest.mark.parametrize("offset", [0, 5, -1])
    def test_flipped_ciphertext(self, offset):
        blob = encrypt(b"secret profile", "hunter22")
        index = offset if offset < 0 else HEADER_LENGTH + offset
        with pytest.raises(DecryptionError):
            decrypt(self._flip(blob, index), "hunter22")

    def test_flipped_salt(self):
        blob = encrypt(b"secret profile", "hunter22")
        with pytest.raises(DecryptionError):
            decrypt(self._flip(blob, len(MAGIC)), "hunter22")

    @pytest.mark.parametrize("wrong", ["hunter23", "Hunter22", "", "hunter22 "])
    def test_wrong_password(self, wrong):
        blob = encrypt(b"secret profile", "hunter22")
        with pytest.raises(DecryptionError) as exc:
            decrypt(blob, wrong)
        assert str(exc.value) == DECRYPTION_FAILED


class TestFormatRejection:
    def test_bad_magic_rejected_before_key_derivation(self):
        blob = b"XXX_V1" + encrypt(b"payload", "hunter22")[len(MAGIC):]
        with patch("ccc.crypto.derive_key") as mock_derive:
            with pytest.raises(BlobFormatError):
                decrypt(blob, "hunter22")
        mock_derive.assert_not_called()

    def test_truncated_blob(self):
        blob = encrypt(b"", "hunter22")
        with patch("ccc.crypto.derive_key") as mock_derive:
            with pytest.raises(BlobFormatError):
                decrypt(blob[: HEADER_LENGTH - 1], "hunter22")
        mock_derive.assert_not_called()

    def test_format_error_looks_like_auth_failure(self):
        with pytest.raises(DecryptionError) as exc:
            decrypt(b"not a blob", "hunter22")
        assert str(exc.value) == DECRYPTION_FAILED

    def test_header_only_blob_decrypts_to_empty(self):
        blob = encrypt(b"", "hunter22")
        assert len(blob) == HEADER_LENGTH
        assert decrypt(blob, "hunter22") == b""
