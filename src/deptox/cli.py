"""CLI interface for deptox."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import click

import deptox.storage as storage
from deptox.app import DeptoxApp
from deptox.backend.base import BackendError, ScanBackend
from deptox.core.preferences import Preferences
from deptox.core.sorting import SortOrder
from deptox.models.directory_entry import DependencyCategory, DirectoryEntry
from deptox.models.rescan_interval import RescanInterval
from deptox.models.scan_session import ScanStatus
from deptox.paths import get_project_info
from deptox.settings import AppSettings, SettingsError, SettingsStore, validate_exclude_patterns
from deptox.utils import bytes_to_human, format_bytes_compact, format_elapsed, format_relative_time, parse_size


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(name)s: %(message)s")


async def _connect_backend() -> ScanBackend:
    from deptox.backend.dbus import DBusScanBackend

    return await DBusScanBackend.connect()


@asynccontextmanager
async def _running_app() -> AsyncIterator[DeptoxApp]:
    try:
        backend = await _connect_backend()
    except BackendError as e:
        click.echo(f"{click.style('Error:', fg='red', bold=True)} {e}", err=True)
        click.echo("Is the deptox scanner service running?", err=True)
        sys.exit(1)
    async with DeptoxApp(backend) as app:
        yield app


def _entry_to_json(entry: DirectoryEntry) -> dict:
    info = get_project_info(entry.path)
    data = entry.to_dict()
    data["project"] = info.project_name
    data["monorepo"] = info.monorepo_name
    return data


def _format_entry(entry: DirectoryEntry, marker: str | None = None) -> str:
    info = get_project_info(entry.path)
    name = info.project_name if info.monorepo_name is None else f"{info.monorepo_name}/{info.project_name}"
    marker = marker or click.style("•", fg="cyan")
    size = click.style(f"{bytes_to_human(entry.size_bytes):>10s}", fg="green", bold=True)
    return f"  {marker} {name:30s} {size}  {entry.category.short_label:7s} {entry.path}"


def _echo_summary(app: DeptoxApp, elapsed: float | None = None) -> None:
    controller = app.controller
    settings = app.preferences.settings
    total = controller.total_size_bytes
    click.echo(f"\nTotal: {click.style(bytes_to_human(total), fg='green', bold=True)} in {len(controller.entries)} directories")
    if controller.session.skipped_count:
        click.echo(f"Skipped: {controller.session.skipped_count} unreadable directories")
    if total > settings.threshold_bytes:
        excess = format_bytes_compact(total - settings.threshold_bytes)
        click.echo(
            click.style(f"Threshold of {bytes_to_human(settings.threshold_bytes)} exceeded by +{excess}", fg="yellow")
        )
    if elapsed is not None:
        click.echo(f"Scanned in {format_elapsed(elapsed)}")
    click.echo()


def _echo_scan_failure(app: DeptoxApp, status: ScanStatus) -> None:
    if status == ScanStatus.ERROR:
        click.echo(f"{click.style('Scan failed:', fg='red', bold=True)} {app.controller.session.error}", err=True)
    else:
        click.echo("Scan was cancelled.", err=True)


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """deptox: find and remove dependency directories."""
    _setup_logging(verbose)


# ── scan ─────────────────────────────────────────────────────────────────

@main.command()
@click.option(
    "--sort",
    "sort_order",
    type=click.Choice([o.value for o in SortOrder], case_sensitive=False),
    default=None,
    help="Result ordering (defaults to the last used one)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def scan(sort_order: str | None, as_json: bool) -> None:
    """Scan for dependency directories (preview only, never deletes)."""
    asyncio.run(_scan(SortOrder(sort_order.upper()) if sort_order else None, as_json))


async def _scan(sort_order: SortOrder | None, as_json: bool) -> None:
    async with _running_app() as app:
        if sort_order is not None:
            app.controller.sort_order = sort_order
        if not as_json:
            root = app.preferences.settings.root_directory
            click.echo(f"\n{click.style('🔍', bold=True)} Scanning {root}...\n")

        started = time.monotonic()
        status = await app.scan()
        elapsed = time.monotonic() - started
        if status != ScanStatus.COMPLETED:
            _echo_scan_failure(app, status)
            sys.exit(1)

        entries = app.controller.sorted_entries()
        if as_json:
            data = {
                "totalSize": app.controller.total_size_bytes,
                "skippedCount": app.controller.session.skipped_count,
                "thresholdBytes": app.preferences.settings.threshold_bytes,
                "entries": [_entry_to_json(e) for e in entries],
            }
            click.echo(json.dumps(data, indent=2))
            return

        if not entries:
            click.echo("No dependency directories found.")
            return
        click.echo(click.style(f"  Sorted: {app.controller.sort_order.label}\n", dim=True))
        for entry in entries:
            click.echo(_format_entry(entry))
        _echo_summary(app, elapsed)


# ── clean ────────────────────────────────────────────────────────────────

@main.command()
@click.argument("paths", nargs=-1)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted without doing it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def clean(paths: tuple[str, ...], yes: bool, dry_run: bool, as_json: bool) -> None:
    """Scan, then delete the given directories (or all found ones)."""
    asyncio.run(_clean(paths, yes, dry_run, as_json))


async def _clean(paths: tuple[str, ...], yes: bool, dry_run: bool, as_json: bool) -> None:
    async with _running_app() as app:
        controller = app.controller
        if not as_json:
            click.echo(f"\n{click.style('🔍', bold=True)} Scanning...\n")

        status = await app.scan()
        if status != ScanStatus.COMPLETED:
            _echo_scan_failure(app, status)
            sys.exit(1)

        if paths:
            for path in paths:
                if path in controller.selected_paths:
                    continue
                if path in controller.session:
                    controller.toggle_selection(path)
                elif not as_json:
                    click.echo(f"  {click.style('?', fg='yellow')} {path} (not a found dependency directory)")
        else:
            controller.select_all()

        selected = [e for e in controller.sorted_entries() if e.path in controller.selected_paths]
        if not selected:
            if as_json:
                click.echo(json.dumps({"status": "nothing_to_clean", "results": []}))
            else:
                click.echo("Nothing to clean.")
            return

        total = sum(e.size_bytes for e in selected)
        if not as_json:
            for entry in selected:
                click.echo(_format_entry(entry))
            click.echo(f"\nSelected: {click.style(bytes_to_human(total), fg='green', bold=True)}\n")

        if dry_run:
            if as_json:
                data = [{"path": e.path, "wouldFreeBytes": e.size_bytes} for e in selected]
                click.echo(json.dumps({"status": "dry_run", "results": data}, indent=2))
            else:
                click.echo("(dry run, nothing was deleted)")
            return

        settings = app.preferences.settings
        if settings.confirm_before_delete and not yes:
            if as_json:
                click.echo("Refusing to delete without confirmation; pass --yes with --json.", err=True)
                sys.exit(1)
            if settings.permanent_delete:
                prompt = f"Permanently delete {len(selected)} directories?"
            else:
                prompt = f"Move {len(selected)} directories to the trash?"
            if not click.confirm(prompt, default=False):
                click.echo("Aborted.")
                return

        outcomes = await controller.delete_selected_directories()

        if as_json:
            data = [{"path": o.path, "success": o.success, "sizeFreed": o.size_freed} for o in outcomes]
            click.echo(json.dumps({"status": "cleaned", "results": data}, indent=2))
            return

        freed = 0
        for outcome in outcomes:
            if outcome.success:
                freed += outcome.size_freed
                click.echo(f"  {click.style('✓', fg='green')} {outcome.path}")
            else:
                click.echo(f"  {click.style('✗', fg='red')} {outcome.path} (could not be deleted)")
        click.echo(f"\nTotal freed: {click.style(bytes_to_human(freed), fg='green', bold=True)}\n")


# ── rescan ───────────────────────────────────────────────────────────────

@main.command()
@click.argument("path")
def rescan(path: str) -> None:
    """Measure a single directory again."""
    asyncio.run(_rescan(path))


async def _rescan(path: str) -> None:
    async with _running_app() as app:
        outcome = await app.controller.rescan_directory(path)
        if outcome is None:
            click.echo(f"{click.style('Error:', fg='red', bold=True)} could not rescan {path}", err=True)
            sys.exit(1)
        if not outcome.exists:
            click.echo(f"{path} no longer exists.")
        elif outcome.entry is not None:
            click.echo(_format_entry(outcome.entry))


# ── auto ─────────────────────────────────────────────────────────────────

@main.command()
def auto() -> None:
    """Scan only if the configured rescan interval has elapsed."""
    asyncio.run(_auto())


async def _auto() -> None:
    async with _running_app() as app:
        last = app.controller.session.last_completed_at_ms
        if not await app.maybe_auto_rescan():
            when = format_relative_time(last) if last is not None else "never"
            click.echo(f"No rescan due (last scan {when}, interval: {app.preferences.settings.rescan_interval.label}).")
            return
        if app.controller.status != ScanStatus.COMPLETED:
            _echo_scan_failure(app, app.controller.status)
            sys.exit(1)
        _echo_summary(app)


# ── config ───────────────────────────────────────────────────────────────

_CONFIG_KEYS = (
    "threshold",
    "root",
    "min-size",
    "permanent-delete",
    "exclude",
    "rescan-interval",
    "confirm-before-delete",
    "notify",
)


@main.group()
def config() -> None:
    """Show or change settings."""


def _settings_rows(settings: AppSettings) -> list[tuple[str, str]]:
    return [
        ("threshold", bytes_to_human(settings.threshold_bytes)),
        ("root", settings.root_directory),
        ("categories", ", ".join(c.short_label for c in settings.enabled_categories)),
        ("min-size", bytes_to_human(settings.min_size_bytes)),
        ("permanent-delete", str(settings.permanent_delete).lower()),
        ("exclude", settings.exclude_paths or "-"),
        ("rescan-interval", settings.rescan_interval.label),
        ("confirm-before-delete", str(settings.confirm_before_delete).lower()),
        ("notify", str(settings.notify_on_threshold_exceeded).lower()),
    ]


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def config_show(as_json: bool) -> None:
    """Print the current settings."""
    preferences = Preferences(SettingsStore())
    settings = asyncio.run(preferences.load())
    if as_json:
        click.echo(json.dumps(settings.to_dict(), indent=2))
        return

    click.echo()
    for key, value in _settings_rows(settings):
        click.echo(f"  {click.style(key + ':', bold=True):32s} {value}")

    last = storage.load_state().get("lastScanTimestamp")
    when = format_relative_time(int(last)) if isinstance(last, (int, float)) else "never"
    click.echo(f"\n  Last scan: {when}\n")


@config.command("set")
@click.argument("key", type=click.Choice(_CONFIG_KEYS))
@click.argument("value")
def config_set(key: str, value: str) -> None:
    """Change one setting."""
    try:
        asyncio.run(_config_set(key, value))
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="VALUE") from e
    click.echo(f"{key} updated.")


async def _config_set(key: str, value: str) -> None:
    preferences = Preferences(SettingsStore())
    await preferences.load()
    match key:
        case "threshold":
            await preferences.set_threshold(parse_size(value))
        case "root":
            await preferences.set_root_directory(value)
        case "min-size":
            await preferences.set_min_size(parse_size(value))
        case "permanent-delete":
            await preferences.set_permanent_delete(_parse_bool(value))
        case "exclude":
            try:
                validate_exclude_patterns(value)
            except SettingsError as e:
                raise ValueError(str(e)) from e
            await preferences.set_exclude_paths(value)
        case "rescan-interval":
            await preferences.set_rescan_interval(_parse_interval(value))
        case "confirm-before-delete":
            await preferences.set_confirm_before_delete(_parse_bool(value))
        case "notify":
            await preferences.set_notify_on_threshold_exceeded(_parse_bool(value))


@config.command("toggle-category")
@click.argument("category")
def config_toggle_category(category: str) -> None:
    """Enable or disable a dependency category (e.g. 'node' or 'PYTHON_VENV')."""
    try:
        parsed = DependencyCategory.parse(category)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="CATEGORY") from e

    preferences = Preferences(SettingsStore())

    async def toggle() -> bool:
        await preferences.load()
        return await preferences.toggle_category(parsed)

    if not asyncio.run(toggle()):
        click.echo("Cannot disable the last enabled category.", err=True)
        sys.exit(1)
    state = "enabled" if parsed in preferences.settings.enabled_categories else "disabled"
    click.echo(f"{parsed.label} {state}.")


@config.command("reset")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def config_reset(yes: bool) -> None:
    """Restore default settings."""
    if not yes and not click.confirm("Reset all settings to defaults?", default=False):
        click.echo("Aborted.")
        return
    asyncio.run(Preferences(SettingsStore()).reset())
    click.echo("Settings reset.")


def _parse_bool(value: str) -> bool:
    match value.strip().lower():
        case "true" | "yes" | "on" | "1":
            return True
        case "false" | "no" | "off" | "0":
            return False
    raise ValueError(f"Expected true or false, got {value!r}")


def _parse_interval(value: str) -> RescanInterval:
    normalized = value.strip().upper().replace("-", "_")
    try:
        return RescanInterval(normalized)
    except ValueError:
        choices = ", ".join(i.value.lower().replace("_", "-") for i in RescanInterval)
        raise ValueError(f"Unknown interval {value!r} (choose from {choices})") from None
