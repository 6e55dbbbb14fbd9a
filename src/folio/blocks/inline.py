"""Inline formatting of block content for HTML display.

Block content is plain text with a few inline markers. Rendering escapes the
text first, so nothing the user typed is ever interpreted as markup.
"""

from __future__ import annotations

import html
import re

from .links import LINK_TOKEN_RE

_CODE_RE = re.compile(r"`([^`]+)`")
_BOLD_RE = re.compile(r"\*\*([^*]+)\*\*")
_ITALIC_RE = re.compile(r"\*([^*]+)\*")


def _link_html(match: re.Match[str]) -> str:
    page_id = match.group(1).replace('"', "&quot;")
    return f'<a class="page-link" data-page-id="{page_id}">{match.group(2)}</a>'


def render_inline_html(raw: str) -> str:
    """Render block content to an HTML fragment.

    Handles page link tokens, `` `code` ``, ``**bold**``, ``*italic*`` and
    newlines (as ``<br />``).
    """
    text = html.escape(raw or "", quote=False)
    text = LINK_TOKEN_RE.sub(_link_html, text)
    text = _CODE_RE.sub(r"<code>\1</code>", text)
    text = _BOLD_RE.sub(r"<strong>\1</strong>", text)
    text = _ITALIC_RE.sub(r"<em>\1</em>", text)
    return text.replace("\n", "<br />")
