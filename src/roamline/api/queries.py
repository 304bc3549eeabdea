"""Pull selectors and datalog queries sent to the remote graph."""

from __future__ import annotations

import json
from datetime import date


BLOCK_TREE_SELECTOR = (
    "[:block/uid :block/string :block/order :block/open "
    "{:block/refs [:block/uid]} {:block/children ...}]"
)

PAGE_SELECTOR = f"[:node/title :block/uid {{:block/children {BLOCK_TREE_SELECTOR}}}]"

BLOCK_TEXT_SELECTOR = "[:block/string]"

LINKED_REFS_QUERY = (
    "[:find ?uid ?string ?source-title "
    ":in $ ?title "
    ":where [?page :node/title ?title] "
    "[?b :block/refs ?page] "
    "[?b :block/uid ?uid] "
    "[?b :block/string ?string] "
    "[?b :block/page ?source] "
    "[?source :node/title ?source-title]]"
)


def daily_note_uid(day: date) -> str:
    """Daily pages use ``MM-DD-YYYY`` as their uid."""
    return f"{day.month:02d}-{day.day:02d}-{day.year}"


def uid_eid(uid: str) -> str:
    return f"[:block/uid {json.dumps(uid)}]"


def title_eid(title: str) -> str:
    return f"[:node/title {json.dumps(title)}]"


def pull_daily_note(day: date) -> tuple[str, str]:
    return uid_eid(daily_note_uid(day)), PAGE_SELECTOR


def pull_page_by_title(title: str) -> tuple[str, str]:
    return title_eid(title), PAGE_SELECTOR


def pull_block_text(uid: str) -> tuple[str, str]:
    return uid_eid(uid), BLOCK_TEXT_SELECTOR


def linked_refs(title: str) -> tuple[str, list[str]]:
    return LINKED_REFS_QUERY, [title]
