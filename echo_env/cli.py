"""CLI entry point for echo-env."""

from __future__ import annotations

from pathlib import Path
from typing import Optional
import json
import time

import click

from .config import Settings, load_settings
from .errors import SyncError
from .logging import configure_logging
from .session import SyncSession, SyncStatus
from .sync import build_template, sync_env_files


def _load_settings(root: Path) -> Settings:
    try:
        return load_settings(root)
    except ValueError as exc:
        raise click.ClickException(f"Invalid configuration: {exc}") from exc


def _settings_from_context(
    ctx: click.Context,
    *,
    strict: Optional[bool] = None,
    placeholder_format: Optional[str] = None,
) -> Settings:
    settings = _load_settings(ctx.obj["root"])
    overrides = {}
    if strict is not None:
        overrides["strict"] = strict
    if placeholder_format is not None:
        overrides["placeholder_format"] = placeholder_format
    if overrides:
        try:
            settings = settings.with_overrides(**overrides).validate()
        except ValueError as exc:
            raise click.ClickException(str(exc)) from exc

    configure_logging(ctx.obj["log_level"] or settings.log_level, settings.log_format)
    return settings


def _echo_notification(level: str, message: str) -> None:
    if level == "error":
        click.secho(message, fg="red", err=True)
    else:
        click.echo(message)


strict_option = click.option(
    "--strict/--no-strict",
    default=None,
    help="Skip # comments in sources, drop blank lines and add a header.",
)
placeholder_option = click.option(
    "--placeholder-format",
    default=None,
    help="Placeholder template; ${key} becomes the lowercased key.",
)


@click.group()
@click.option(
    "--root",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Workspace folder holding the env files.",
)
@click.option("--log-level", default=None, help="Override the configured log level.")
@click.pass_context
def cli(ctx: click.Context, root: Path, log_level: Optional[str]) -> None:
    """Keep env template files in sync with your real env files."""
    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["log_level"] = log_level


@cli.command("sync")
@strict_option
@placeholder_option
@click.pass_context
def sync_command(
    ctx: click.Context, strict: Optional[bool], placeholder_format: Optional[str]
) -> None:
    """Run one sync pass and report what changed."""
    settings = _settings_from_context(
        ctx, strict=strict, placeholder_format=placeholder_format
    )
    try:
        outcome = sync_env_files(settings)
    except SyncError as exc:
        raise click.ClickException(f"Error syncing .env files: {exc}") from exc

    destination = outcome.destination.relative_to(settings.workspace_root)
    if not outcome.written:
        click.echo(f"{destination} already up to date ({len(outcome.keys)} keys).")
        return

    click.echo(f"Synced {len(outcome.keys)} keys into {destination}.")
    if outcome.added:
        click.echo(f"Added: {', '.join(outcome.added)}")
    if outcome.removed:
        click.echo(f"Removed: {', '.join(outcome.removed)}")


@cli.command("preview")
@strict_option
@placeholder_option
@click.pass_context
def preview_command(
    ctx: click.Context, strict: Optional[bool], placeholder_format: Optional[str]
) -> None:
    """Print the template that a sync would write, without writing it."""
    settings = _settings_from_context(
        ctx, strict=strict, placeholder_format=placeholder_format
    )
    try:
        plan = build_template(settings)
    except SyncError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(plan.merge.content, nl=not plan.merge.content.endswith("\n"))


@cli.command("watch")
@click.option(
    "--initial-sync/--no-initial-sync",
    default=True,
    show_default=True,
    help="Run one pass before waiting for changes.",
)
@click.pass_context
def watch_command(ctx: click.Context, initial_sync: bool) -> None:
    """Sync whenever a source env file changes, until interrupted."""
    settings = _settings_from_context(ctx)

    def _show_status(status: SyncStatus) -> None:
        if status is not SyncStatus.SYNCING:
            click.echo(status.label)

    session = SyncSession(
        settings, notifier=_echo_notification, status_listener=_show_status
    )
    session.start()
    click.echo(f"Watching {settings.workspace_root} (Ctrl+C to stop)")
    try:
        if initial_sync:
            session.trigger("startup")
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        click.echo("Stopping...")
    finally:
        session.stop()


@cli.command("config")
@click.pass_context
def config_command(ctx: click.Context) -> None:
    """Show the effective configuration as JSON."""
    settings = _load_settings(ctx.obj["root"])
    click.echo(json.dumps(settings.to_dict(), indent=2))


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
