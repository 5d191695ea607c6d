"""Machine-bound cache of the sync passphrase.

The cache key is a hash of host attributes, so the file is useless on
another machine but offers no protection against code running as the same
user on this one. It only keeps the passphrase out of plain sight on disk.
"""

from __future__ import annotations

import getpass
import hashlib
import logging
import os
import platform
import socket
import sys
from pathlib import Path

from cryptography.exceptions import InvalidTag

from ccc.config import vault_file
from ccc.crypto import IV_LENGTH, TAG_LENGTH, seal, unseal

logger = logging.getLogger(__name__)

FINGERPRINT_SUFFIX = "ccc-sync"


def machine_fingerprint() -> bytes:
    """SHA-256 of ``hostname:user:platform:arch:ccc-sync``."""
    parts = [
        socket.gethostname(),
        getpass.getuser(),
        sys.platform,
        platform.machine(),
        FINGERPRINT_SUFFIX,
    ]
    return hashlib.sha256(":".join(parts).encode("utf-8")).digest()


class PasswordVault:
    """Stores the sync passphrase as ``iv | tag | ciphertext``."""

    def __init__(self, path: Path | None = None):
        self.path = path or vault_file()

    def save(self, password: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_bytes(seal(machine_fingerprint(), password.encode("utf-8")))
        os.chmod(self.path, 0o600)

    def load(self) -> str | None:
        """Return the cached passphrase, or None if absent or unreadable."""
        if not self.path.exists():
            return None
        data = self.path.read_bytes()
        if len(data) < IV_LENGTH + TAG_LENGTH:
            logger.debug("Vault file %s is truncated", self.path)
            return None
        try:
            return unseal(machine_fingerprint(), data).decode("utf-8")
        except (InvalidTag, ValueError) as e:
            logger.debug("Could not open vault %s: %s", self.path, type(e).__name__)
            return None

    def has(self) -> bool:
        return self.path.exists()

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
