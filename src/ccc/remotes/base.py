"""Abstract base class for remote stores."""

from __future__ import annotations

import posixpath
from abc import ABC, abstractmethod

REMOTE_FILE_NAME = "ccc-profiles.encrypted"


def remote_file_path(base_path: str | None) -> str:
    """Location of the encrypted blob under a configured base path."""
    return posixpath.join(base_path or "/", REMOTE_FILE_NAME)


class RemoteStore(ABC):
    """A remote file store holding the encrypted profile blob.

    Paths are POSIX-style and absolute relative to the store root.
    """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this store is reachable with the configured credentials."""

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check whether a file or directory exists at path."""

    @abstractmethod
    def get_file_contents(self, path: str) -> bytes:
        """Read a file. Raises RemoteNotFound if it does not exist."""

    @abstractmethod
    def put_file_contents(self, path: str, data: bytes) -> None:
        """Write a file, replacing any previous contents."""

    @abstractmethod
    def create_directory(self, path: str, recursive: bool = True) -> None:
        """Create a directory. No-op if it already exists."""

    def close(self) -> None:
        """Release any open connections."""

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human-readable name for status messages."""
