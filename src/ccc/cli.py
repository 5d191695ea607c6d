"""CLI interface for ccc."""

from __future__ import annotations

import functools
import logging
import sys
from datetime import datetime

import click

from ccc import __version__
from ccc.config import (
    DEFAULT_REMOTE_PATH,
    RemoteConfig,
    load_remote_config,
    remote_config_file,
    save_remote_config,
)
from ccc.errors import CancelledByUser, ConfigurationMissing, SyncError
from ccc.profiles import PROFILE_DIRS, ProfileStore
from ccc.remotes import create_remote, remote_file_path
from ccc.sync import (
    PullResolution,
    PushResolution,
    SyncDiff,
    apply_pull,
    compare_profiles,
    download_snapshot,
    force_pull_resolutions,
    force_push_resolutions,
    merge_pull,
    push_profiles,
)
from ccc.vault import PasswordVault

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


def styled(text: str, **kwargs) -> str:
    return click.style(text, **kwargs)


def info(msg: str) -> None:
    click.echo(f"  {msg}")


def success(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='green')}")


def warn(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='yellow')}")


def error(msg: str) -> None:
    click.echo(f"  {styled(msg, fg='red')}")


def heading(msg: str) -> None:
    click.echo(f"\n  {styled(msg, bold=True)}")


def format_ms(ms: int | None) -> str:
    if not ms:
        return "unknown"
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def names(items) -> str:
    return ", ".join(sorted(items, key=str.casefold))


def handle_sync_errors(f):
    """Map sync failures to exit codes: cancel exits 0, failures exit 1."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except CancelledByUser:
            warn("Cancelled.")
        except SyncError as e:
            error(f"✗ {e}")
            logger.debug("Sync failed", exc_info=True)
            sys.exit(1)

    return wrapper


def _validate_password(value: str) -> str:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise click.BadParameter(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        )
    return value


def get_sync_password(vault: PasswordVault) -> str:
    """Use the cached passphrase if there is one, otherwise prompt."""
    cached = vault.load()
    if cached:
        return cached
    return click.prompt(
        "  Sync password", hide_input=True, value_proc=_validate_password
    )


def require_remote_config() -> RemoteConfig:
    config = load_remote_config()
    if config is None:
        raise ConfigurationMissing()
    return config


def read_local(store: ProfileStore) -> tuple[dict, list[str]]:
    local, unreadable = store.scan()
    if unreadable:
        warn(f"⚠ Could not read profile file(s): {names(unreadable)}")
    return local, unreadable


def confirm_or_cancel(question: str) -> None:
    if not click.confirm(f"  {question}", default=True):
        raise CancelledByUser()


@click.group()
@click.version_option(version=__version__, prog_name="ccc")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Manage and sync Claude / Codex profiles."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)


@cli.command("list")
def list_cmd() -> None:
    """Show local profiles."""
    for kind in PROFILE_DIRS:
        store = ProfileStore.for_type(kind)
        heading(f"{kind.capitalize()} profiles ({store.root})")
        profile_names = store.names()
        if not profile_names:
            info("  (none)")
        for i, name in enumerate(profile_names, 1):
            info(f"  {i}. {name}")
    click.echo()


@cli.group()
def sync() -> None:
    """Encrypted remote sync of Claude profiles."""


@sync.command()
@click.option(
    "--local-dir",
    default=None,
    type=click.Path(file_okay=False),
    help="Sync through a local or mounted directory instead of WebDAV.",
)
def setup(local_dir: str | None) -> None:
    """Configure the remote store and the sync password."""
    click.echo()
    existing = load_remote_config() or RemoteConfig()

    if local_dir:
        config = RemoteConfig(type="local", root=local_dir, path=existing.path)
    else:
        heading("WebDAV sync setup")
        url = click.prompt("  WebDAV server URL", default=existing.url or None)
        if not url.startswith(("http://", "https://")):
            error("URL must start with http:// or https://")
            sys.exit(1)
        username = click.prompt("  Username", default=existing.username or "")
        password = click.prompt(
            "  Password", hide_input=True, default="", show_default=False
        )
        config = RemoteConfig(
            type="webdav",
            url=url,
            username=username,
            password=password,
            timeout=existing.timeout,
        )

    path = click.prompt("  Remote path", default=existing.path or DEFAULT_REMOTE_PATH)
    if not path.startswith("/"):
        error("Remote path must start with /")
        sys.exit(1)
    config.path = path

    info("Testing connection...")
    remote = create_remote(config)
    try:
        available = remote.is_available()
    finally:
        remote.close()

    if available:
        success(f"✓ Connected to {remote.display_name}")
    else:
        error(f"✗ Could not reach {remote.display_name}")
        if not click.confirm("  Save the configuration anyway?", default=False):
            sys.exit(1)

    save_remote_config(config)
    success(f"✓ Config saved to {remote_config_file()}")

    vault = PasswordVault()
    question = "Reset the sync password?" if vault.has() else "Set a sync password?"
    if click.confirm(f"  {question}", default=not vault.has()):
        sync_password = click.prompt(
            "  Sync password (encrypts the remote data)",
            hide_input=True,
            confirmation_prompt=True,
            value_proc=_validate_password,
        )
        vault.save(sync_password)
        success("✓ Sync password cached for this machine")

    click.echo()
    info("Setup complete. Try:")
    info("  ccc sync push    - upload local profiles")
    info("  ccc sync pull    - download remote profiles")
    info("  ccc sync status  - compare local and remote")
    click.echo()


def _show_preview(diff: SyncDiff, direction: str) -> None:
    heading("Sync preview")
    if direction == "push":
        if diff.local_only:
            info(styled(f"↑ New: {names(diff.local_only)}", fg="green"))
        if diff.remote_only:
            info(styled(f"○ Remote only (kept): {names(diff.remote_only)}", dim=True))
    else:
        if diff.remote_only:
            info(styled(f"↓ New: {names(diff.remote_only)}", fg="green"))
        if diff.local_only:
            info(styled(f"○ Local only (kept): {names(diff.local_only)}", dim=True))
    if diff.unchanged:
        info(styled(f"= Unchanged: {names(diff.unchanged)}", dim=True))


def _resolve_conflicts(diff: SyncDiff, choices: dict[str, str], default: str) -> dict[str, str]:
    resolutions = {}
    warn(f"⚠ {len(diff.conflicts)} conflict(s):")
    for name in sorted(diff.conflicts, key=str.casefold):
        conflict = diff.conflicts[name]
        click.echo()
        warn(f'"{name}" - remote modified {format_ms(conflict.remote_updated_at)}')
        for value, label in choices.items():
            info(f"  {value}: {label}")
        resolutions[name] = click.prompt(
            f'  How to handle "{name}"?',
            type=click.Choice(list(choices)),
            default=default,
        )
    return resolutions


@sync.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite remote conflicts with local versions.")
@click.option("--yes", "-y", is_flag=True, help="Skip the final confirmation.")
@handle_sync_errors
def push(force: bool, yes: bool) -> None:
    """Upload local profiles, keeping remote-only ones."""
    config = require_remote_config()
    local, _ = read_local(ProfileStore.for_type("claude"))
    if not local:
        warn("No profiles to sync.")
        return

    sync_password = get_sync_password(PasswordVault())
    remote = create_remote(config)
    try:
        info("Checking remote...")
        snapshot = download_snapshot(remote, config.path, sync_password)
        diff = compare_profiles(local, snapshot)
        _show_preview(diff, "push")

        resolutions = {}
        if diff.conflicts and force:
            warn(f"⚠ {len(diff.conflicts)} conflict(s) will be overwritten with local versions")
            resolutions = force_push_resolutions(diff)
        elif diff.conflicts:
            resolutions = _resolve_conflicts(
                diff,
                {
                    PushResolution.KEEP_BOTH.value: "keep both (local uploaded as <name>_local)",
                    PushResolution.USE_LOCAL.value: "overwrite remote with local",
                    PushResolution.KEEP_REMOTE.value: "keep the remote version",
                },
                PushResolution.KEEP_BOTH.value,
            )

        if not (force or yes):
            confirm_or_cancel("Push now?")

        info("Pushing...")
        result = push_profiles(
            remote, config.path, sync_password, local, diff, resolutions
        )
    finally:
        remote.close()

    success(f"✓ Pushed {len(result.profiles)} profile(s) to {remote.display_name}")
    click.echo()


@sync.command()
@click.option("--force", "-f", is_flag=True, help="Overwrite local conflicts with remote versions.")
@click.option("--yes", "-y", is_flag=True, help="Skip the final confirmation.")
@handle_sync_errors
def pull(force: bool, yes: bool) -> None:
    """Download remote profiles, keeping local-only ones."""
    config = require_remote_config()
    sync_password = get_sync_password(PasswordVault())
    remote = create_remote(config)
    try:
        info("Fetching remote...")
        snapshot = download_snapshot(remote, config.path, sync_password)
    finally:
        remote.close()

    if snapshot is None:
        warn("No remote data yet. Run: ccc sync push")
        return

    store = ProfileStore.for_type("claude")
    local, unreadable = read_local(store)
    diff = compare_profiles(local, snapshot, unreadable)
    _show_preview(diff, "pull")

    if not diff.remote_only and not diff.conflicts:
        success("✓ Local profiles are up to date.")
        return

    resolutions = {}
    if diff.conflicts and force:
        warn(f"⚠ {len(diff.conflicts)} conflict(s) will be overwritten with remote versions")
        resolutions = force_pull_resolutions(diff)
    elif diff.conflicts:
        resolutions = _resolve_conflicts(
            diff,
            {
                PullResolution.KEEP_BOTH.value: "keep both (remote saved as <name>_cloud)",
                PullResolution.USE_REMOTE.value: "overwrite local with remote",
                PullResolution.KEEP_LOCAL.value: "keep the local version",
            },
            PullResolution.KEEP_BOTH.value,
        )

    if not (force or yes):
        confirm_or_cancel("Pull now?")

    plan = merge_pull(local, snapshot, diff, resolutions)
    apply_pull(plan, store)

    if plan.imported:
        success(f"✓ Imported: {names(plan.imported)}")
    for original, renamed in plan.renamed:
        info(styled(f"✓ {original} → {renamed}", fg="cyan"))
    if plan.skipped:
        info(styled(f"○ Skipped: {names(plan.skipped)}", dim=True))
    success(f"✓ Pulled {plan.total} profile(s)")
    click.echo()


@sync.command()
@handle_sync_errors
def status() -> None:
    """Compare local profiles with the remote snapshot."""
    config = require_remote_config()
    vault = PasswordVault()

    heading("Sync status")
    info(f"Remote: {config.display_location}")
    info(f"File: {remote_file_path(config.path)}")
    info(f"Password cached: {'yes' if vault.has() else 'no'}")

    sync_password = get_sync_password(vault)
    remote = create_remote(config)
    try:
        snapshot = download_snapshot(remote, config.path, sync_password)
    finally:
        remote.close()

    local, unreadable = read_local(ProfileStore.for_type("claude"))

    heading("Local")
    info(f"Profiles: {len(local)}")
    if local:
        info(styled(names(local), dim=True))

    heading("Remote")
    if snapshot is None:
        info(styled("(no data)", dim=True))
        click.echo()
        return
    info(f"Profiles: {len(snapshot.profiles)}")
    info(f"Last updated: {format_ms(snapshot.updated_at)}")
    if snapshot.profiles:
        info(styled(names(snapshot.profiles), dim=True))

    diff = compare_profiles(local, snapshot, unreadable)
    heading("Differences")
    if diff.in_sync:
        success("✓ In sync")
    else:
        if diff.local_only:
            info(styled(f"Local only: {names(diff.local_only)}", fg="green"))
        if diff.remote_only:
            info(styled(f"Remote only: {names(diff.remote_only)}", fg="blue"))
        if diff.conflicts:
            info(styled(f"Conflicts: {names(diff.conflicts)}", fg="yellow"))
    click.echo()


@sync.command()
def forget() -> None:
    """Remove the cached sync password from this machine."""
    vault = PasswordVault()
    if not vault.has():
        info("No cached sync password.")
        return
    vault.clear()
    success("✓ Cached sync password removed")
