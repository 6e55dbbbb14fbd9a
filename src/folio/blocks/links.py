"""Page link tokens and backlink extraction.

A link to another page is stored inline in block content as::

    [[page:<page_id>|<title>]]

The token is part of the persisted data format, so it must survive storage
byte-for-byte. The title runs up to the next ``]]``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Iterable, Iterator

from ..settings import settings

LINK_TOKEN_RE = re.compile(r"\[\[page:([^|\]]+)\|([^\]]+)\]\]")

# Unterminated "[[" at the end of content: the link autocomplete trigger
OPEN_LINK_RE = re.compile(r"\[\[([^\]]*)$")


def link_token(page_id: str, title: str) -> str:
    """Build the inline token for a link to ``page_id``."""
    return f"[[page:{page_id}|{title}]]"


def link_prefix(page_id: str) -> str:
    """The literal text every token for ``page_id`` starts with."""
    return f"[[page:{page_id}|"


def target_pattern(page_id: str) -> re.Pattern[str]:
    """Full token pattern anchored to one page id.

    The id is escaped and followed by the pipe, so ids that are prefixes of
    each other never match one another.
    """
    return re.compile(r"\[\[page:" + re.escape(page_id) + r"\|([^\]]+)\]\]")


@dataclass(frozen=True)
class PageLink:
    """One link token found in content."""

    page_id: str
    title: str
    start: int
    end: int


def iter_links(content: str) -> Iterator[PageLink]:
    """Yield every well-formed link token in ``content``, in order."""
    for match in LINK_TOKEN_RE.finditer(content or ""):
        yield PageLink(
            page_id=match.group(1),
            title=match.group(2),
            start=match.start(),
            end=match.end(),
        )


def linked_page_ids(content: str) -> list[str]:
    """Distinct page ids linked from ``content``, first occurrence first."""
    seen: dict[str, None] = {}
    for link in iter_links(content):
        seen.setdefault(link.page_id, None)
    return list(seen)


def strip_link_tokens(content: str) -> str:
    """Replace each link token with its display title.

    Used to render backlink previews, which are stored raw.
    """
    return LINK_TOKEN_RE.sub(lambda m: m.group(2), content or "")


# =============================================================================
# Backlinks
# =============================================================================


@dataclass(frozen=True)
class Backlink:
    """A block on some page that links to the target page."""

    page_id: str
    page_title: str
    block_id: str
    preview: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "page_id": self.page_id,
            "page_title": self.page_title,
            "block_id": self.block_id,
            "preview": self.preview,
        }


def extract_backlinks(
    target_page_id: str,
    rows: Iterable[tuple[str, str, str, str]],
    *,
    preview_chars: int | None = None,
) -> list[Backlink]:
    """Find the blocks that link to ``target_page_id``.

    Args:
        target_page_id: Page being linked to.
        rows: ``(page_id, page_title, block_id, content)`` for candidate blocks.
        preview_chars: Preview length, defaults to settings.preview_chars.

    Returns:
        One Backlink per matching block, in input order. Partial or malformed
        tokens simply do not match.
    """
    limit = settings.preview_chars if preview_chars is None else preview_chars
    prefix = link_prefix(target_page_id)
    pattern = target_pattern(target_page_id)

    backlinks: list[Backlink] = []
    for page_id, page_title, block_id, content in rows:
        content = content or ""
        if prefix not in content:
            continue
        if not pattern.search(content):
            continue
        backlinks.append(Backlink(
            page_id=page_id,
            page_title=page_title,
            block_id=block_id,
            preview=content[:limit],
        ))
    return backlinks
