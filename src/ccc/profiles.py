"""Local profile storage: one JSON file per profile."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from ccc.config import get_config_dir

logger = logging.getLogger(__name__)

PROFILE_DIRS = {
    "claude": "profiles",
    "codex": "codex-profiles",
}

Profile = dict[str, Any]


def validate_name(name: str) -> str:
    """Reject names that would escape the profile directory."""
    if (
        not name
        or name in (".", "..")
        or "/" in name
        or "\\" in name
        or "\x00" in name
    ):
        raise ValueError(f"Invalid profile name: {name!r}")
    return name


class ProfileStore:
    """A directory of ``<name>.json`` profiles."""

    def __init__(self, root: Path):
        self.root = Path(root)

    @classmethod
    def for_type(cls, kind: str = "claude") -> ProfileStore:
        try:
            subdir = PROFILE_DIRS[kind]
        except KeyError:
            raise ValueError(f"Unknown profile type: {kind}") from None
        return cls(get_config_dir() / subdir)

    def path(self, name: str) -> Path:
        return self.root / f"{validate_name(name)}.json"

    def names(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(
            (p.stem for p in self.root.glob("*.json") if p.is_file()),
            key=str.casefold,
        )

    def exists(self, name: str) -> bool:
        return self.path(name).is_file()

    def read(self, name: str) -> Profile | None:
        """Read a profile. Returns None if missing or not a JSON object."""
        p = self.path(name)
        if not p.is_file():
            return None
        try:
            data = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Skipping unreadable profile %s: %s", p, e)
            return None
        return data if isinstance(data, dict) else None

    def read_all(self) -> dict[str, Profile]:
        return self.scan()[0]

    def scan(self) -> tuple[dict[str, Profile], list[str]]:
        """Read every profile; also return the names whose file did not parse."""
        profiles, unreadable = {}, []
        for name in self.names():
            data = self.read(name)
            if data is None:
                unreadable.append(name)
            else:
                profiles[name] = data
        return profiles, unreadable

    def save(self, name: str, data: Profile) -> None:
        p = self.path(name)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")

    def delete(self, name: str) -> bool:
        p = self.path(name)
        if p.exists():
            p.unlink()
            return True
        return False
