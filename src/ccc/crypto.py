"""Authenticated encryption of sync payloads.

Blob layout (all lengths in bytes)::

    MAGIC "CCC_V1" (6) | salt (32) | iv (16) | auth tag (16) | ciphertext

The key is derived from the passphrase with PBKDF2-HMAC-SHA256 and the
payload is sealed with AES-256-GCM. None of these parameters are negotiated;
changing any of them needs a new magic string.
"""

from __future__ import annotations

import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from ccc.errors import BlobFormatError, DecryptionError

logger = logging.getLogger(__name__)

MAGIC = b"CCC_V1"
SALT_LENGTH = 32
IV_LENGTH = 16
TAG_LENGTH = 16
KEY_LENGTH = 32
PBKDF2_ITERATIONS = 100_000
HEADER_LENGTH = len(MAGIC) + SALT_LENGTH + IV_LENGTH + TAG_LENGTH


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive a 32-byte AES key from a passphrase and salt."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(password.encode("utf-8"))


def seal(key: bytes, plaintext: bytes) -> bytes:
    """Encrypt with a fresh IV. Returns ``iv | tag | ciphertext``."""
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext, None)
    # AESGCM appends the tag; the wire format wants it up front.
    ciphertext, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return iv + tag + ciphertext


def unseal(key: bytes, data: bytes) -> bytes:
    """Reverse of :func:`seal`. Raises ``InvalidTag`` on auth failure."""
    iv = data[:IV_LENGTH]
    tag = data[IV_LENGTH : IV_LENGTH + TAG_LENGTH]
    ciphertext = data[IV_LENGTH + TAG_LENGTH :]
    return AESGCM(key).decrypt(iv, ciphertext + tag, None)


def encrypt(plaintext: bytes | str, password: str) -> bytes:
    """Encrypt a payload under a passphrase into a self-describing blob."""
    if isinstance(plaintext, str):
        plaintext = plaintext.encode("utf-8")
    salt = os.urandom(SALT_LENGTH)
    key = derive_key(password, salt)
    return MAGIC + salt + seal(key, plaintext)


def decrypt(blob: bytes, password: str) -> bytes:
    """Decrypt a blob produced by :func:`encrypt`.

    The header is checked before any key derivation so malformed input is
    rejected cheaply. Every failure carries the same message.
    """
    blob = bytes(blob)
    if len(blob) < HEADER_LENGTH or blob[: len(MAGIC)] != MAGIC:
        raise BlobFormatError()

    offset = len(MAGIC)
    salt = blob[offset : offset + SALT_LENGTH]
    key = derive_key(password, salt)

    try:
        return unseal(key, blob[offset + SALT_LENGTH :])
    except (InvalidTag, ValueError) as e:
        logger.debug("AEAD open failed: %s", type(e).__name__)
        raise DecryptionError() from None


def decrypt_text(blob: bytes, password: str) -> str:
    """Decrypt a blob and decode it as UTF-8."""
    plaintext = decrypt(blob, password)
    try:
        return plaintext.decode("utf-8")
    except UnicodeDecodeError:
        raise DecryptionError() from None
