"""Directory-backed remote store (local disk or a mounted network share)."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from ccc.errors import RemoteNotFound, TransportError
from ccc.remotes.base import RemoteStore


class LocalStore(RemoteStore):
    """Adapter that keeps remote files under a directory on this machine."""

    def __init__(self, root: str | Path):
        self.root = Path(root).expanduser()

    def _resolve(self, path: str) -> Path:
        resolved = (self.root / path.lstrip("/")).resolve()
        if resolved != self.root.resolve() and self.root.resolve() not in resolved.parents:
            raise TransportError(f"Path escapes store root: {path}")
        return resolved

    def is_available(self) -> bool:
        return self.root.is_dir() and os.access(self.root, os.W_OK)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def get_file_contents(self, path: str) -> bytes:
        p = self._resolve(path)
        try:
            return p.read_bytes()
        except FileNotFoundError:
            raise RemoteNotFound(f"{path} not found under {self.root}") from None
        except OSError as e:
            raise TransportError(f"Could not read {p}: {e}") from e

    def put_file_contents(self, path: str, data: bytes) -> None:
        p = self._resolve(path)
        # Write beside the target and rename so readers never see half a blob.
        try:
            fd, tmp = tempfile.mkstemp(dir=p.parent, prefix=f".{p.name}.")
        except OSError as e:
            raise TransportError(f"Could not write {p}: {e}") from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.replace(tmp, p)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise TransportError(f"Could not write {p}: {e}") from e

    def create_directory(self, path: str, recursive: bool = True) -> None:
        p = self._resolve(path)
        try:
            p.mkdir(parents=recursive, exist_ok=True)
        except OSError as e:
            raise TransportError(f"Could not create {p}: {e}") from e

    @property
    def display_name(self) -> str:
        return f"local {self.root}"
