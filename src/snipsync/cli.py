"""Command-line interface for snipsync.

Commands:
- serve: Run the API server with the background scheduler
- sync: Run one full sync pass
- status: Show the sync configuration and mappings
- conflicts: List unresolved conflicts
- resolve: Resolve a conflict with local-wins or remote-wins
- logs: Show recent sync log entries
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import NoReturn

import click

from snipsync.core.config import GITHUB_API_URL
from snipsync.server.database import Database, SnippetNotFoundError
from snipsync.server.engine import SyncError
from snipsync.server.service import ConfigurationError, SyncService


@contextmanager
def _open_service(db_path: str) -> Iterator[SyncService]:
    """Open the database and build a sync service from the environment."""
    db = Database(Path(db_path))
    try:
        yield SyncService(
            db,
            os.environ.get("SNIPSYNC_SECRET_KEY", ""),
            api_url=os.environ.get("SNIPSYNC_GITHUB_API_URL", GITHUB_API_URL),
        )
    finally:
        db.close()


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(package_name="snipsync")
@click.option(
    "--db-path",
    type=click.Path(dir_okay=False),
    envvar="SNIPSYNC_DB_PATH",
    default="snipsync.db",
    show_default=True,
    help="Path to database file (or SNIPSYNC_DB_PATH).",
)
@click.pass_context
def cli(ctx: click.Context, db_path: str) -> None:
    """snipsync - Sync snippets with GitHub gists."""
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address.")
@click.option("--port", type=int, default=8000, show_default=True, help="Bind port.")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int) -> None:
    """Run the API server with automatic sync."""
    import uvicorn

    from snipsync.server.app import LOG_PATH, create_app, setup_logging

    setup_logging(LOG_PATH)
    application = create_app(db=Database(Path(ctx.obj["db_path"])))
    uvicorn.run(application, host=host, port=port)


@cli.command()
@click.pass_context
def sync(ctx: click.Context) -> None:
    """Run one full sync pass now."""
    with _open_service(ctx.obj["db_path"]) as service:
        try:
            result = service.sync_all()
        except (ConfigurationError, SyncError) as e:
            _fail(str(e))

    click.echo(
        f"Processed {result.total_processed}: {result.synced} synced, "
        f"{result.conflicts} conflicts, {result.errors} errors "
        f"({result.duration:.2f}s)"
    )
    if result.error_messages:
        click.echo(click.style("\nErrors:", fg="red"))
        for message in result.error_messages:
            click.echo(f"  ✗ {message}")
    if result.conflicts:
        click.echo("Run 'snipsync conflicts' to review conflicts.")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show sync configuration and mappings."""
    with _open_service(ctx.obj["db_path"]) as service:
        view = service.get_config_view()
        mappings = service.list_mappings()

    click.echo(f"Sync enabled:  {'yes' if view.enabled else 'no'}")
    click.echo(f"GitHub user:   {view.github_username or '-'}")
    click.echo(f"Token stored:  {'yes' if view.has_token else 'no'}")
    click.echo(
        f"Auto-sync:     {'on' if view.auto_sync_enabled else 'off'} "
        f"(every {view.sync_interval_minutes} min)"
    )
    click.echo(f"Strategy:      {view.conflict_strategy}")
    last = view.last_full_sync_at.isoformat() if view.last_full_sync_at else "never"
    click.echo(f"Last full sync: {last}")

    if not mappings:
        click.echo("\nNo linked snippets.")
        return

    click.echo(f"\nMappings ({len(mappings)}):")
    for mapping in mappings:
        flag = "" if mapping.sync_enabled else " (disabled)"
        line = f"  [{mapping.id}] {mapping.snippet_id} -> {mapping.gist_id}  {mapping.sync_status}{flag}"
        if mapping.error_message:
            line += f"  {mapping.error_message}"
        click.echo(line)


@cli.command()
@click.pass_context
def conflicts(ctx: click.Context) -> None:
    """List unresolved conflicts."""
    with _open_service(ctx.obj["db_path"]) as service:
        open_conflicts = service.list_conflicts()

    if not open_conflicts:
        click.echo("No unresolved conflicts.")
        return

    click.echo(click.style(f"Conflicts ({len(open_conflicts)}):", fg="yellow"))
    for conflict in open_conflicts:
        click.echo(
            f"  ! [{conflict.id}] snippet {conflict.snippet_id} / gist {conflict.gist_id} "
            f"({conflict.created_at.isoformat()})"
        )


@cli.command()
@click.argument("conflict_id", type=int)
@click.option(
    "--strategy",
    "-s",
    type=click.Choice(["local-wins", "remote-wins"]),
    required=True,
    help="Side to keep.",
)
@click.pass_context
def resolve(ctx: click.Context, conflict_id: int, strategy: str) -> None:
    """Resolve conflict CONFLICT_ID by keeping one side."""
    with _open_service(ctx.obj["db_path"]) as service:
        try:
            service.resolve_conflict(conflict_id, strategy)
        except (ConfigurationError, SyncError, SnippetNotFoundError) as e:
            _fail(str(e))

    click.echo(f"Conflict {conflict_id} resolved with {strategy}.")


@cli.command()
@click.option("--limit", "-n", type=int, default=50, show_default=True, help="Entries to show (max 200).")
@click.pass_context
def logs(ctx: click.Context, limit: int) -> None:
    """Show recent sync log entries."""
    with _open_service(ctx.obj["db_path"]) as service:
        entries = service.list_logs(limit)

    if not entries:
        click.echo("No log entries.")
        return

    for entry in entries:
        marker = "✓" if entry.status == "success" else "✗"
        target = entry.snippet_id or "-"
        message = f"  {entry.message}" if entry.message else ""
        click.echo(
            f"{entry.created_at.isoformat()} {marker} {entry.operation:<8} {target}{message}"
        )


def main() -> None:
    """Entry point for the snipsync command."""
    cli(obj={})


if __name__ == "__main__":
    main()
