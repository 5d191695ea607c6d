"""Core sync engine: snapshot model, diffing, and maximal merge."""

from __future__ import annotations

import json
import logging
import math
import time
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ccc.crypto import decrypt_text, encrypt
from ccc.errors import RemoteChangedError, SnapshotFormatError, TransportError
from ccc.profiles import Profile, ProfileStore, validate_name
from ccc.remotes.base import RemoteStore, remote_file_path

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
LOCAL_SUFFIX = "_local"
CLOUD_SUFFIX = "_cloud"


def now_ms() -> int:
    return int(time.time() * 1000)


def canonical_dumps(obj: Any) -> str:
    """Serialize with sorted keys and no whitespace, for equality checks."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def same_content(a: Any, b: Any) -> bool:
    return canonical_dumps(a) == canonical_dumps(b)


def _timestamp(value: Any, where: str) -> int:
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise SnapshotFormatError(f"Invalid updatedAt in {where}: {value!r}")
    return int(value)


@dataclass
class ProfileEntry:
    data: Profile
    updated_at: int

    def to_dict(self) -> dict[str, Any]:
        return {"data": self.data, "updatedAt": self.updated_at}


@dataclass
class Snapshot:
    """The full set of profiles stored in the remote blob."""

    profiles: dict[str, ProfileEntry] = field(default_factory=dict)
    updated_at: int = 0
    version: int = SNAPSHOT_VERSION

    def to_json(self) -> str:
        return json.dumps(
            {
                "version": self.version,
                "updatedAt": self.updated_at,
                "profiles": {name: e.to_dict() for name, e in self.profiles.items()},
            },
            ensure_ascii=False,
        )

    @classmethod
    def from_json(cls, text: str) -> Snapshot:
        try:
            raw = json.loads(text)
        except ValueError as e:
            raise SnapshotFormatError(f"Remote snapshot is not valid JSON: {e}") from None
        if not isinstance(raw, dict) or not isinstance(raw.get("profiles"), dict):
            raise SnapshotFormatError("Remote snapshot has no profiles mapping")

        version = raw.get("version", SNAPSHOT_VERSION)
        if not isinstance(version, int) or version > SNAPSHOT_VERSION:
            raise SnapshotFormatError(f"Unsupported snapshot version: {version!r}")

        profiles = {}
        for name, entry in raw["profiles"].items():
            if not isinstance(entry, dict) or not isinstance(entry.get("data"), dict):
                raise SnapshotFormatError(f"Malformed snapshot entry: {name!r}")
            profiles[name] = ProfileEntry(
                data=entry["data"],
                updated_at=_timestamp(entry.get("updatedAt"), f"entry {name!r}"),
            )
        return cls(
            profiles=profiles,
            updated_at=_timestamp(raw.get("updatedAt"), "snapshot"),
            version=version,
        )


@dataclass(frozen=True)
class Conflict:
    """A profile present on both sides with different content.

    ``local_data`` is None when the local file exists but could not be read.
    """

    name: str
    local_data: Profile | None
    remote_data: Profile
    remote_updated_at: int


@dataclass
class SyncDiff:
    local_only: set[str] = field(default_factory=set)
    remote_only: set[str] = field(default_factory=set)
    both: set[str] = field(default_factory=set)
    conflicts: dict[str, Conflict] = field(default_factory=dict)
    # updatedAt of the snapshot this diff was computed against
    remote_updated_at: int | None = None

    @property
    def unchanged(self) -> set[str]:
        return self.both - set(self.conflicts)

    @property
    def in_sync(self) -> bool:
        return not (self.local_only or self.remote_only or self.conflicts)


class PullResolution(str, Enum):
    USE_REMOTE = "use_remote"
    KEEP_LOCAL = "keep_local"
    KEEP_BOTH = "keep_both"


class PushResolution(str, Enum):
    USE_LOCAL = "use_local"
    KEEP_REMOTE = "keep_remote"
    KEEP_BOTH = "keep_both"


def compare_profiles(
    local: Mapping[str, Profile],
    remote: Snapshot | None,
    unreadable: Collection[str] = (),
) -> SyncDiff:
    """Partition local and remote profile names and find content conflicts.

    Names in ``unreadable`` exist locally but did not parse; they count as
    local, and as a conflict wherever the remote has the same name.
    """
    local_names = set(local) | set(unreadable)
    remote_names = set(remote.profiles) if remote else set()

    diff = SyncDiff(
        local_only=local_names - remote_names,
        remote_only=remote_names - local_names,
        both=local_names & remote_names,
        remote_updated_at=remote.updated_at if remote else None,
    )

    for name in diff.both:
        entry = remote.profiles[name]
        local_data = local.get(name)
        if local_data is None or not same_content(local_data, entry.data):
            diff.conflicts[name] = Conflict(
                name=name,
                local_data=local_data,
                remote_data=entry.data,
                remote_updated_at=entry.updated_at,
            )

    return diff


def force_push_resolutions(diff: SyncDiff) -> dict[str, PushResolution]:
    return {name: PushResolution.USE_LOCAL for name in diff.conflicts}


def force_pull_resolutions(diff: SyncDiff) -> dict[str, PullResolution]:
    return {name: PullResolution.USE_REMOTE for name in diff.conflicts}


def free_name(
    base: str,
    suffix: str,
    data: Profile,
    taken: Mapping[str, Profile | None],
) -> str:
    """Pick ``<base><suffix>`` or the first ``<base><suffix>_N`` not holding other content.

    A name already holding identical content is reused, so repeating a
    keep-both resolution does not pile up copies.
    """
    candidate = f"{base}{suffix}"
    n = 2
    while candidate in taken and not same_content(taken[candidate], data):
        candidate = f"{base}{suffix}_{n}"
        n += 1
    return candidate


def merge_push(
    local: Mapping[str, Profile],
    remote: Snapshot | None,
    diff: SyncDiff,
    resolutions: Mapping[str, PushResolution | str] | None = None,
    now: int | None = None,
) -> Snapshot:
    """Build the snapshot to upload.

    Remote-only entries are carried through, local entries are added, and
    conflicts follow their resolution (default keep_both: the remote entry
    keeps its name and the local copy goes up as ``<name>_local``).
    """
    resolutions = resolutions or {}
    now = now_ms() if now is None else now
    remote_profiles = remote.profiles if remote else {}
    profiles: dict[str, ProfileEntry] = {}

    for name, entry in remote_profiles.items():
        if name not in local:
            profiles[name] = entry

    keep_both = []
    for name, data in local.items():
        if name in diff.conflicts:
            resolution = PushResolution(resolutions.get(name, PushResolution.KEEP_BOTH))
            if resolution is PushResolution.USE_LOCAL:
                profiles[name] = ProfileEntry(data, now)
            else:
                profiles[name] = remote_profiles[name]
                if resolution is PushResolution.KEEP_BOTH:
                    keep_both.append(name)
        elif name in remote_profiles:
            # Unchanged: keep the remote write time.
            profiles[name] = ProfileEntry(data, remote_profiles[name].updated_at)
        else:
            profiles[name] = ProfileEntry(data, now)

    for name in sorted(keep_both):
        taken = {n: e.data for n, e in profiles.items()}
        alias = free_name(name, LOCAL_SUFFIX, local[name], taken)
        if alias in profiles:
            logger.debug("Reusing %s for local copy of %s", alias, name)
        else:
            profiles[alias] = ProfileEntry(local[name], now)

    return Snapshot(profiles=profiles, updated_at=now)


@dataclass
class PullPlan:
    """Local writes computed by a pull, plus what to report."""

    writes: dict[str, Profile] = field(default_factory=dict)
    imported: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    renamed: list[tuple[str, str]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.imported) + len(self.renamed)


def merge_pull(
    local: Mapping[str, Profile],
    remote: Snapshot | None,
    diff: SyncDiff,
    resolutions: Mapping[str, PullResolution | str] | None = None,
) -> PullPlan:
    """Compute the local writes for a pull.

    Remote-only profiles are imported as-is. Local-only profiles are left
    alone. Conflicts follow their resolution (default keep_both: the remote
    copy lands as ``<name>_cloud``).
    """
    plan = PullPlan()
    if remote is None:
        return plan
    resolutions = resolutions or {}

    incoming = []
    for name in sorted(remote.profiles):
        try:
            validate_name(name)
        except ValueError:
            logger.warning("Skipping remote profile with unsafe name %r", name)
            plan.skipped.append(name)
            continue
        incoming.append(name)

    # Unreadable local files map to None so no alias lands on them.
    taken: dict[str, Profile | None] = {n: local.get(n) for n in diff.local_only | diff.both}
    taken.update(local)
    for name in incoming:
        if name in diff.remote_only:
            taken[name] = remote.profiles[name].data

    for name in incoming:
        data = remote.profiles[name].data
        if name in diff.conflicts:
            resolution = PullResolution(resolutions.get(name, PullResolution.KEEP_BOTH))
            if resolution is PullResolution.USE_REMOTE:
                plan.writes[name] = data
                plan.imported.append(name)
            elif resolution is PullResolution.KEEP_LOCAL:
                plan.skipped.append(name)
            else:
                alias = free_name(name, CLOUD_SUFFIX, data, taken)
                taken[alias] = data
                plan.writes[alias] = data
                plan.renamed.append((name, alias))
        elif name in diff.remote_only:
            plan.writes[name] = data
            plan.imported.append(name)

    return plan


def apply_pull(plan: PullPlan, store: ProfileStore) -> list[str]:
    """Write a pull plan to the local store, one profile at a time."""
    written = []
    for name, data in plan.writes.items():
        store.save(name, data)
        logger.debug("Wrote profile %s", name)
        written.append(name)
    return written


def download_snapshot(
    store: RemoteStore,
    base_path: str | None,
    password: str,
) -> Snapshot | None:
    """Fetch and decrypt the remote snapshot. Returns None if there is none yet."""
    path = remote_file_path(base_path)
    if not store.exists(path):
        logger.debug("No remote blob at %s", path)
        return None
    blob = store.get_file_contents(path)
    logger.debug("Fetched %d bytes from %s", len(blob), path)
    return Snapshot.from_json(decrypt_text(blob, password))


def upload_snapshot(
    store: RemoteStore,
    base_path: str | None,
    snapshot: Snapshot,
    password: str,
) -> None:
    """Encrypt and upload a snapshot. Nothing is sent if encryption fails."""
    blob = encrypt(snapshot.to_json(), password)
    try:
        store.create_directory(base_path or "/", recursive=True)
    except TransportError as e:
        logger.debug("create_directory(%s) failed, continuing: %s", base_path, e)
    store.put_file_contents(remote_file_path(base_path), blob)
    logger.debug("Uploaded %d profiles (%d bytes)", len(snapshot.profiles), len(blob))


def push_profiles(
    store: RemoteStore,
    base_path: str | None,
    password: str,
    local: Mapping[str, Profile],
    diff: SyncDiff,
    resolutions: Mapping[str, PushResolution | str] | None = None,
    now: int | None = None,
) -> Snapshot:
    """Merge local profiles into the remote snapshot and upload it.

    The remote is fetched again first; if its updatedAt no longer matches
    the one ``diff`` was computed against, RemoteChangedError is raised and
    nothing is uploaded.
    """
    current = download_snapshot(store, base_path, password)
    current_updated_at = current.updated_at if current else None
    if current_updated_at != diff.remote_updated_at:
        raise RemoteChangedError(diff.remote_updated_at, current_updated_at)

    snapshot = merge_push(local, current, diff, resolutions, now)
    upload_snapshot(store, base_path, snapshot, password)
    return snapshot
