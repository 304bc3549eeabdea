"""`roamline show`: print one page as an indented outline."""

from __future__ import annotations

import asyncio
import sys
from datetime import date
from typing import Optional

import typer

from roamline.api import queries
from roamline.api.client import RoamClient
from roamline.api.types import Block, LinkedRefGroup, Page, parse_linked_refs, parse_page
from roamline.config import AppConfig
from roamline.errors import ErrorInfo, RoamError
from roamline.tui.blocks import daily_title


async def fetch_page(
    cfg: AppConfig, *, title: Optional[str] = None, day: Optional[date] = None
) -> tuple[Page, list[LinkedRefGroup]]:
    """Pull a page (by title, else the daily note for ``day``) and its linked refs."""
    async with RoamClient(cfg.graph.name, cfg.graph.api_token) as client:
        if title is not None:
            eid, selector = queries.pull_page_by_title(title)
            page = parse_page(await client.pull(eid, selector))
            page.title = page.title or title
        else:
            day = day or date.today()
            eid, selector = queries.pull_daily_note(day)
            page = parse_page(
                await client.pull(eid, selector), uid=queries.daily_note_uid(day), day=day
            )
            page.title = page.title or daily_title(day)

        query, args = queries.linked_refs(page.title)
        groups = parse_linked_refs(await client.query(query, args), page.title)
    return page, groups


def format_outline(page: Page, groups: list[LinkedRefGroup]) -> list[str]:
    lines = [page.title]

    def walk(block_list: list[Block], depth: int) -> None:
        for block in block_list:
            indent = "  " * depth
            first, *rest = block.text.split("\n")
            lines.append(f"{indent}- {first}")
            lines.extend(f"{indent}  {more}" for more in rest)
            walk(block.children, depth + 1)

    if page.blocks:
        walk(page.blocks, 0)
    else:
        lines.append("  (empty)")

    if groups:
        count = sum(len(g.blocks) for g in groups)
        lines.append("")
        lines.append(f"Linked references ({count})")
        for group in groups:
            lines.append(f"  {group.page_title}")
            lines.extend(f"    - {b.text.replace(chr(10), ' ')}" for b in group.blocks)
    return lines


def register(app: typer.Typer):
    @app.command()
    def show(
        ctx: typer.Context,
        page: Optional[str] = typer.Option(None, "--page", "-p", help="Page title"),
        on_date: Optional[str] = typer.Option(None, "--date", "-d", help="Daily note date (YYYY-MM-DD)"),
    ):
        """Print a page or a daily note as an outline."""
        from roamline.cli.config_cmd import load_or_exit

        if page is not None and on_date is not None:
            print("Use either --page or --date, not both.")
            sys.exit(1)

        day = None
        if on_date is not None:
            try:
                day = date.fromisoformat(on_date)
            except ValueError:
                print(f"Invalid date: {on_date} (expected YYYY-MM-DD)")
                sys.exit(1)

        cfg = load_or_exit(ctx)
        try:
            result, groups = asyncio.run(fetch_page(cfg, title=page, day=day))
        except RoamError as e:
            info = ErrorInfo.from_exception(e)
            print(f"{info.title}: {info.message}")
            if info.hint:
                print(info.hint)
            sys.exit(1)

        for line in format_outline(result, groups):
            print(line)
