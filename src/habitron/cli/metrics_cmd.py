"""habitron metrics — manage tracked habits."""

from __future__ import annotations

import click
from rich.table import Table

from .common import console, open_app, track_progress


@click.group()
def metrics() -> None:
    """List, add, rename or remove tracked habits."""


@metrics.command("list")
@click.pass_context
def list_metrics(ctx: click.Context) -> None:
    """Show tracked habits with their entry counts."""
    with open_app(ctx) as app:
        tracked = app.tracked_metrics()
    if not tracked:
        console.print("No tracked metrics. Add one with 'habitron metrics add NAME'.")
        return
    table = Table(title="Tracked metrics")
    table.add_column("Name")
    table.add_column("Entries", justify="right")
    table.add_column("Last updated")
    table.add_column("Active")
    for metric in tracked:
        row = metric.to_dict()
        table.add_row(metric.name, str(metric.entries), row["lastUpdated"] or "-", "yes" if metric.active else "no")
    console.print(table)


@metrics.command("add")
@click.argument("name")
@click.pass_context
def add_metric(ctx: click.Context, name: str) -> None:
    """Track NAME and back-fill it from existing entries."""
    with open_app(ctx) as app:
        configured = app.is_journal_path_configured()
        with track_progress(app, "Back-filling"):
            app.add_metric(name)
            app.wait_idle()
    if not configured:
        console.print(f"Tracking '{name.strip()}'. Set a journal directory to ingest it.")
    else:
        console.print(f"Tracking '{name.strip()}'.")


@metrics.command("remove")
@click.argument("name")
@click.pass_context
def remove_metric(ctx: click.Context, name: str) -> None:
    """Stop tracking NAME but keep its history."""
    with open_app(ctx) as app:
        removed = app.remove_metric(name)
    if not removed:
        raise click.ClickException(f"Metric '{name}' is not tracked")
    console.print(f"Stopped tracking '{name}'. Stored history was kept.")


@metrics.command("rename")
@click.argument("old_name")
@click.argument("new_name")
@click.pass_context
def rename_metric(ctx: click.Context, old_name: str, new_name: str) -> None:
    """Rename a tracked habit, including its stored history."""
    with open_app(ctx) as app:
        with track_progress(app, "Re-reading entries"):
            app.rename_metric(old_name, new_name)
            app.wait_idle()
    console.print(f"Renamed '{old_name}' to '{new_name.strip()}'.")


@metrics.command("delete")
@click.argument("name")
@click.confirmation_option(prompt="Delete this metric and all of its stored history?")
@click.pass_context
def delete_metric(ctx: click.Context, name: str) -> None:
    """Stop tracking NAME and delete its stored history."""
    with open_app(ctx) as app:
        deleted = app.delete_metric(name)
    console.print(f"Deleted '{name}' ({deleted} entries).")
