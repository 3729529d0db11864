"""Shared setup logic for CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import click
from rich.console import Console

from habitron.core.exceptions import HabitronError

HABITRON_DIR = Path.home() / ".habitron"
CONFIG_PATH = HABITRON_DIR / "config.yaml"

console = Console()


def init_context(
    ctx: click.Context,
    *,
    config_file: str | None = None,
    data_dir: str | None = None,
    log_level: str | None = None,
) -> None:
    """Load config, configure logging, and stash the config on the context."""
    from habitron.core.config import Config
    from habitron.core.utils.logging import setup_logging

    try:
        config = Config(config_file=config_file or str(CONFIG_PATH), data_dir=data_dir)
        options = config.validated()
    except HabitronError as e:
        raise click.ClickException(str(e)) from e

    level = log_level.upper() if log_level else options.logging.level
    setup_logging(level=level, log_file=options.logging.file, log_dir=options.paths.log_dir)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@contextmanager
def open_app(ctx: click.Context, *, start: bool = False) -> Iterator:
    """Yield a ``HabitronApp`` and always shut it down.

    Library errors become ``ClickException`` so users see a one-line message.
    """
    from habitron.app import HabitronApp

    try:
        app = HabitronApp(ctx.obj["config"])
    except HabitronError as e:
        raise click.ClickException(str(e)) from e
    try:
        if start:
            app.start(initial_sync=False)
        yield app
    except HabitronError as e:
        raise click.ClickException(str(e)) from e
    finally:
        app.stop()


def track_progress(app, description: str = "Syncing"):
    """Render resync progress events as a rich progress bar.

    Returns the ``Progress`` object; use it as a context manager around the
    operation that triggers the resync.
    """
    from rich.progress import Progress

    from habitron.core.events import SYNC_PROGRESS

    progress = Progress(console=console, transient=True)
    task = progress.add_task(description, total=100)
    app.events.on(SYNC_PROGRESS, lambda event: progress.update(task, completed=event.payload.get("percent", 0)))
    return progress
