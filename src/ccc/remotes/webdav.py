"""WebDAV remote store over httpx."""

from __future__ import annotations

import logging
from urllib.parse import quote

import httpx

from ccc.config import DEFAULT_TIMEOUT
from ccc.errors import RemoteNotFound, TransportError
from ccc.remotes.base import RemoteStore

logger = logging.getLogger(__name__)

PROPFIND_BODY = (
    '<?xml version="1.0" encoding="utf-8"?>'
    '<d:propfind xmlns:d="DAV:"><d:prop><d:resourcetype/></d:prop></d:propfind>'
)

# MKCOL answers 405 when the collection already exists; some servers
# redirect instead.
MKCOL_EXISTS = (301, 405)


class WebDAVStore(RemoteStore):
    """Adapter that reads and writes files with plain WebDAV verbs."""

    def __init__(
        self,
        url: str,
        username: str = "",
        password: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url
        auth = (username, password) if username or password else None
        self._client = httpx.Client(
            base_url=url,
            auth=auth,
            timeout=timeout,
            transport=transport,
            headers={"User-Agent": "ccc-sync"},
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, quote(path), **kwargs)
        except httpx.TimeoutException as e:
            raise TransportError(f"{method} {path} timed out: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}") from e
        logger.debug("%s %s -> %d", method, path, response.status_code)
        return response

    @staticmethod
    def _fail(method: str, path: str, response: httpx.Response) -> TransportError:
        return TransportError(
            f"{method} {path} failed: HTTP {response.status_code} {response.reason_phrase}"
        )

    def _propfind(self, path: str, depth: str) -> httpx.Response:
        return self._request(
            "PROPFIND",
            path,
            content=PROPFIND_BODY,
            headers={"Depth": depth, "Content-Type": "application/xml; charset=utf-8"},
        )

    def is_available(self) -> bool:
        try:
            response = self._propfind("/", "1")
        except TransportError as e:
            logger.debug("WebDAV server unreachable: %s", e)
            return False
        return response.is_success

    def exists(self, path: str) -> bool:
        response = self._propfind(path, "0")
        if response.status_code == 404:
            return False
        if not response.is_success:
            raise self._fail("PROPFIND", path, response)
        return True

    def get_file_contents(self, path: str) -> bytes:
        response = self._request("GET", path)
        if response.status_code == 404:
            raise RemoteNotFound(f"{path} not found on {self.display_name}")
        if not response.is_success:
            raise self._fail("GET", path, response)
        return response.content

    def put_file_contents(self, path: str, data: bytes) -> None:
        response = self._request(
            "PUT",
            path,
            content=data,
            headers={"Content-Type": "application/octet-stream"},
        )
        if not response.is_success:
            raise self._fail("PUT", path, response)

    def create_directory(self, path: str, recursive: bool = True) -> None:
        parts = [p for p in path.split("/") if p]
        if not parts:
            return
        if recursive:
            targets = ["/" + "/".join(parts[: i + 1]) for i in range(len(parts))]
        else:
            targets = ["/" + "/".join(parts)]

        for target in targets:
            response = self._request("MKCOL", target + "/")
            if response.is_success or response.status_code in MKCOL_EXISTS:
                continue
            raise self._fail("MKCOL", target, response)

    @property
    def display_name(self) -> str:
        return f"webdav {self.url}"
