"""Habitron CLI: sync, watch, manage tracked habits and print stats."""

import click

from habitron import __version__


@click.group()
@click.version_option(version=__version__, package_name="habitron")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="YAML or JSON config file (default: ~/.habitron/config.yaml).",
)
@click.option("--data-dir", type=click.Path(file_okay=False), default=None, help="Directory holding the database.")
@click.option("--log-level", default=None, help="Override logging.level (DEBUG, INFO, WARNING, ...).")
@click.pass_context
def main(ctx: click.Context, config_file: str | None, data_dir: str | None, log_level: str | None) -> None:
    """Habitron — habit tracking from your Markdown journal."""
    from .common import init_context

    init_context(ctx, config_file=config_file, data_dir=data_dir, log_level=log_level)


# Register subcommands
from .metrics_cmd import metrics
from .stats_cmd import heatmap, stats, streak
from .sync_cmd import set_root, sync, watch

main.add_command(watch)
main.add_command(sync)
main.add_command(set_root)
main.add_command(metrics)
main.add_command(stats)
main.add_command(streak)
main.add_command(heatmap)
