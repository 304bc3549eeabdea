"""Main CLI application wiring for roamline.

  roamline init --graph my-graph --token ...
  roamline status
  roamline show --date 2024-01-15
  roamline tui
"""

from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(add_completion=False, help="roamline: a terminal outliner for Roam graphs")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Config file (default: $XDG_CONFIG_HOME/roamline/config.yml)"
    ),
):
    """roamline CLI."""
    ctx.obj = {"config_path": config}


# =============================================================================
# Top-level commands
# =============================================================================

from roamline.cli import config_cmd
from roamline.cli import show as show_cmd

config_cmd.register(app)
show_cmd.register(app)


@app.command()
def tui(ctx: typer.Context):
    """Launch the roamline TUI."""
    from roamline.cli.config_cmd import load_or_exit
    from roamline.tui.app import RoamlineApp

    cfg = load_or_exit(ctx)
    RoamlineApp(cfg).run()
