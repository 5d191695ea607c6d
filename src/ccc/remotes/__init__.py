"""Remote stores for the encrypted profile blob."""

from ccc.config import RemoteConfig
from ccc.errors import ConfigurationMissing
from ccc.remotes.base import REMOTE_FILE_NAME, RemoteStore, remote_file_path
from ccc.remotes.local import LocalStore
from ccc.remotes.webdav import WebDAVStore

__all__ = [
    "REMOTE_FILE_NAME",
    "LocalStore",
    "RemoteStore",
    "WebDAVStore",
    "create_remote",
    "remote_file_path",
]


def create_remote(config: RemoteConfig) -> RemoteStore:
    """Factory: create the right store from a remote config."""
    if config.type == "webdav":
        return WebDAVStore(
            url=config.url,
            username=config.username,
            password=config.password,
            timeout=config.timeout,
        )
    elif config.type == "local":
        if not config.root:
            raise ConfigurationMissing(
                "Local remote needs a root directory. Run: ccc sync setup --local-dir DIR"
            )
        return LocalStore(config.root)
    else:
        raise ConfigurationMissing(f"Unknown remote type: {config.type}. Run: ccc sync setup")
