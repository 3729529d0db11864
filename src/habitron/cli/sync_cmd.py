"""habitron watch / sync / set-root — run the ingestion pipeline."""

from __future__ import annotations

import threading

import click

from .common import console, open_app, track_progress


def _report(app, result) -> None:
    if result is None:
        return
    stats = app.pool.stats
    console.print(
        f"[bold]{result.total}[/bold] entries scanned in {result.root} "
        f"({stats.get('ingested', 0)} ingested, {stats.get('unchanged', 0)} unchanged, "
        f"{stats.get('failed', 0)} failed)",
        soft_wrap=True,
    )


@click.command()
@click.option("--force", is_flag=True, help="Re-read every entry, even unchanged ones.")
@click.pass_context
def sync(ctx: click.Context, force: bool) -> None:
    """Scan the journal directory once and ingest new or edited entries."""
    with open_app(ctx) as app:
        if not app.is_journal_path_configured():
            raise click.ClickException("No journal directory configured. Run 'habitron set-root PATH' first.")
        with track_progress(app):
            result = app.resync(force=force)
            app.wait_idle()
        _report(app, result)


@click.command("set-root")
@click.argument("path", type=click.Path(file_okay=False))
@click.pass_context
def set_root(ctx: click.Context, path: str) -> None:
    """Point habitron at a journal directory and ingest it."""
    with open_app(ctx) as app:
        with track_progress(app):
            result = app.set_journal_root(path)
            app.wait_idle()
        console.print(f"Journal directory set to [bold]{result.root}[/bold]", soft_wrap=True)
        _report(app, result)


@click.command()
@click.option("--no-sync", is_flag=True, help="Skip the catch-up scan on startup.")
@click.pass_context
def watch(ctx: click.Context, no_sync: bool) -> None:
    """Watch the journal directory and ingest entries as they change."""
    with open_app(ctx) as app:
        root = app.settings.get_journal_root()
        if not root:
            raise click.ClickException("No journal directory configured. Run 'habitron set-root PATH' first.")
        app.start(initial_sync=not no_sync)
        console.print(f"Watching [bold]{root}[/bold]. Press Ctrl+C to stop.")
        stopped = threading.Event()
        try:
            while not stopped.wait(1.0):
                pass
        except KeyboardInterrupt:
            console.print("Stopping...")
