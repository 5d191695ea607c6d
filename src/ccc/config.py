"""Configuration management for ccc."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_REMOTE_PATH = "/ccc-sync"
DEFAULT_TIMEOUT = 30.0
REMOTE_TYPES = ("webdav", "local")


def get_config_dir() -> Path:
    """Root of all ccc state. ``CCC_HOME`` overrides ``~/.ccc``."""
    override = os.environ.get("CCC_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".ccc"


def remote_config_file() -> Path:
    return get_config_dir() / "webdav.json"


def vault_file() -> Path:
    return get_config_dir() / ".sync_key"


@dataclass
class RemoteConfig:
    """Connection settings for the remote store holding the encrypted blob."""

    type: str = "webdav"
    url: str = ""
    username: str = ""
    password: str = ""
    path: str = DEFAULT_REMOTE_PATH
    timeout: float = DEFAULT_TIMEOUT
    # Local-specific
    root: str | None = None

    @property
    def display_location(self) -> str:
        if self.type == "local":
            return str(Path(self.root or ".").expanduser())
        return self.url


def load_remote_config(path: Path | None = None) -> RemoteConfig | None:
    """Load remote config from disk. Returns None if missing or unreadable."""
    path = path or remote_config_file()
    if not path.exists():
        return None

    try:
        data = json.loads(path.read_text())
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable remote config %s: %s", path, e)
        return None
    if not isinstance(data, dict):
        return None

    try:
        timeout = float(data.get("timeout", DEFAULT_TIMEOUT))
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid timeout in %s: %r", path, data.get("timeout"))
        timeout = DEFAULT_TIMEOUT

    return RemoteConfig(
        type=data.get("type", "webdav"),
        url=data.get("url", ""),
        username=data.get("username", ""),
        password=data.get("password", ""),
        path=data.get("path") or DEFAULT_REMOTE_PATH,
        timeout=timeout,
        root=data.get("root"),
    )


def save_remote_config(config: RemoteConfig, path: Path | None = None) -> None:
    """Save remote config to disk, readable by the owner only."""
    path = path or remote_config_file()
    path.parent.mkdir(parents=True, exist_ok=True)

    data: dict[str, Any] = {
        "url": config.url,
        "username": config.username,
        "password": config.password,
        "path": config.path,
    }
    if config.type != "webdav":
        data["type"] = config.type
    if config.timeout != DEFAULT_TIMEOUT:
        data["timeout"] = config.timeout
    if config.root:
        data["root"] = config.root

    path.write_text(json.dumps(data, indent=2) + "\n")
    os.chmod(path, 0o600)
