"""Text scanning over loaded blocks: search, link and block-ref extraction."""

from __future__ import annotations

import re
from collections.abc import Callable, Collection, Mapping
from typing import Optional

from roamline.api.types import Block, Page
from roamline.tui.edit_buffer import EditBuffer


AUTOCOMPLETE_LIMIT = 20
SEARCH_LIMIT = 50

_INLINE_CODE = re.compile(r"`[^`]*`")
_PAGE_LINK = re.compile(r"#?\[\[(.*?)\]\]")
_BLOCK_REF = re.compile(r"\(\(([^()\s]+?)\)\)")


def _walk(blocks: list[Block]):
    for block in blocks:
        yield block
        yield from _walk(block.children)


def all_blocks(pages: list[Page]):
    for page in pages:
        yield from _walk(page.blocks)


def filter_blocks(
    pages: list[Page],
    cache: Mapping[str, str],
    query: str,
    limit: int,
) -> list[tuple[str, str]]:
    """Case-insensitive substring match over non-empty block texts.

    Loaded blocks come first in document order, then resolved references from
    ``cache`` not already listed.
    """
    q = query.lower()
    results: list[tuple[str, str]] = []
    seen: set[str] = set()

    def consider(uid: str, text: str) -> None:
        if text and uid not in seen and q in text.lower():
            seen.add(uid)
            results.append((uid, text))

    for block in all_blocks(pages):
        if len(results) >= limit:
            return results
        consider(block.uid, block.text)
    for uid, text in cache.items():
        if len(results) >= limit:
            break
        consider(uid, text)
    return results


def detect_block_ref_trigger(buffer: EditBuffer) -> bool:
    """True when the cursor sits inside a freshly typed ``(())``."""
    return buffer.before_cursor(2) == "((" and buffer.after_cursor(2) == "))"


def extract_page_links(text: str) -> list[str]:
    """Unique ``[[page]]`` and ``#[[page]]`` targets, skipping inline code."""
    links: list[str] = []
    for chunk in _INLINE_CODE.split(text):
        for name in _PAGE_LINK.findall(chunk):
            if name and name not in links:
                links.append(name)
    return links


def extract_block_uids(text: str) -> list[str]:
    """Uids referenced as ``((uid))``, including inside ``{{embed: ((uid))}}``."""
    uids: list[str] = []
    for uid in _BLOCK_REF.findall(text):
        if uid not in uids:
            uids.append(uid)
    return uids


def collect_unresolved_refs(
    pages: list[Page],
    cache: Mapping[str, str],
    pending: Collection[str],
) -> list[str]:
    """Referenced uids whose text is neither loaded, cached nor being fetched."""
    local = {block.uid for block in all_blocks(pages)}
    unresolved: list[str] = []
    for block in all_blocks(pages):
        for uid in extract_block_uids(block.text):
            if uid in local or uid in cache or uid in pending or uid in unresolved:
                continue
            unresolved.append(uid)
    return unresolved


def expand_block_refs(text: str, lookup: Callable[[str], Optional[str]]) -> str:
    """Replace each ``((uid))`` with the referenced text when it is known."""

    def sub(match: re.Match) -> str:
        found = lookup(match.group(1))
        return found if found else match.group(0)

    return _BLOCK_REF.sub(sub, text)
