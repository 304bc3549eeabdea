"""
`roamline init` and `roamline status`.

Policy layer:
- init writes a default config and never overwrites one silently
- status shows what the TUI would run with
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from roamline.config import AppConfig, default_config_path, load_config, write_default
from roamline.errors import ConfigError


def config_path(ctx: typer.Context) -> Path:
    path: Optional[Path] = (ctx.obj or {}).get("config_path")
    return path if path is not None else default_config_path()


def load_or_exit(ctx: typer.Context, *, validate: bool = True) -> AppConfig:
    try:
        cfg = load_config(config_path(ctx))
        if validate:
            cfg.validate()
    except ConfigError as e:
        print(str(e))
        sys.exit(1)
    return cfg


def _mask(token: str) -> str:
    if not token:
        return "(not set)"
    if len(token) <= 8:
        return "****"
    return f"{token[:4]}…{token[-4:]}"


def register(app: typer.Typer):
    @app.command()
    def init(
        ctx: typer.Context,
        graph: str = typer.Option("", "--graph", "-g", help="Graph name"),
        token: str = typer.Option("", "--token", help="API token (or set ROAM_API_TOKEN)"),
        force: bool = typer.Option(False, "--force", help="Overwrite an existing config"),
    ):
        """Write a default config file."""
        path = config_path(ctx)
        if path.exists() and not force:
            print(f"Config already exists: {path}")
            print("Use --force to overwrite it.")
            sys.exit(1)

        write_default(path, graph_name=graph, api_token=token)
        print(f"✓ Config written: {path}")
        if not graph or not token:
            print("  Set graph.name and graph.api_token before running `roamline tui`.")

    @app.command()
    def status(ctx: typer.Context):
        """Show the resolved configuration."""
        cfg = load_or_exit(ctx, validate=False)
        exists = cfg.path is not None and cfg.path.exists()

        print(f"Config: {cfg.path}{'' if exists else ' (missing, using defaults)'}\n")
        print("Graph:")
        print(f"  • Name:  {cfg.graph.name or '(not set)'}")
        print(f"  • Token: {_mask(cfg.graph.api_token)}")
        print("\nKeybindings:")
        print(f"  • Preset:    {cfg.keybindings.preset}")
        print(f"  • Overrides: {len(cfg.keybindings.bindings)}")
        print("\nRefresh:")
        print(f"  • Tick:  {cfg.refresh.tick_ms} ms")
        print(f"  • Every: {cfg.refresh.idle_ticks} idle ticks")
        print(f"\nLog file: {cfg.log_path}")

        try:
            cfg.validate()
            cfg.keymap()
        except ConfigError as e:
            print(f"\n✗ {e}")
            sys.exit(1)
        print("\n✓ Ready")
