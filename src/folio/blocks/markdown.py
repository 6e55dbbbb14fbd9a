"""Markdown export and import for a page's blocks.

Export walks the block tree; children are indented two spaces per level.
Import uses the mistletoe parser and produces a flat block list with
``parent_block_id`` set for nested list items and dense sibling indices.

Page link tokens are written as ``[Title](page:<id>)`` and turned back into
tokens on import. Block content keeps its inline Markdown (``**bold**``,
``*italic*``, `` `code` ``) as typed.
"""

from __future__ import annotations

import re
from typing import Any

from mistletoe import Document
from mistletoe.block_token import (
    BlockCode,
    CodeFence,
    Heading,
    List,
    ListItem,
    Paragraph,
    Quote,
    ThematicBreak,
)
from mistletoe.span_token import (
    Emphasis,
    EscapeSequence,
    Image,
    InlineCode,
    LineBreak,
    Link,
    RawText,
    Strikethrough,
    Strong,
)

from .links import LINK_TOKEN_RE, link_token
from .models import Block, BlockType
from .tree import build_tree, walk_tree

PAGE_LINK_SCHEME = "page:"
TABLE_LINK_SCHEME = "table:"

_CHECKBOX_RE = re.compile(r"^\[([xX ])\]\s*(.*)$", re.DOTALL)


# =============================================================================
# Export
# =============================================================================


def render_markdown(blocks: list[Block]) -> str:
    """Render a page's blocks to Markdown.

    Args:
        blocks: Flat block collection of one page.

    Returns:
        Markdown text. Top-level blocks are separated by blank lines.
    """
    roots = build_tree(blocks)
    lines = []

    for i, node in enumerate(roots):
        lines.extend(_render_block(n.block, depth) for n, depth in walk_tree([node]))
        # Blank line between top-level blocks, except around dividers
        if node.block.type != BlockType.DIVIDER and i < len(roots) - 1:
            lines.append("")

    return "\n".join(lines)


def _render_block(block: Block, depth: int) -> str:
    """Render a single block (without children) to Markdown."""
    indent = "  " * depth
    text = _export_links(block.content)
    block_type = BlockType(block.type)

    if block_type == BlockType.HEADING_1:
        return f"{indent}# {text}"
    elif block_type == BlockType.HEADING_2:
        return f"{indent}## {text}"
    elif block_type == BlockType.HEADING_3:
        return f"{indent}### {text}"
    elif block_type == BlockType.TODO:
        checkbox = "[x]" if block.props.get("checked") else "[ ]"
        return f"{indent}- {checkbox} {text}"
    elif block_type == BlockType.BULLET_LIST:
        return f"{indent}- {text}"
    elif block_type == BlockType.ORDERED_LIST:
        return f"{indent}1. {text}"
    elif block_type == BlockType.QUOTE:
        return "\n".join(f"{indent}> {line}" for line in text.split("\n"))
    elif block_type == BlockType.CODE:
        return _render_code(block, indent)
    elif block_type == BlockType.DIVIDER:
        return f"{indent}---"
    elif block_type == BlockType.TABLE:
        return f"{indent}[Table]({TABLE_LINK_SCHEME}{block.content})"
    elif block_type == BlockType.IMAGE:
        url = block.props.get("url", "")
        return f"{indent}![{text}]({url})"
    else:
        return "\n".join(f"{indent}{line}" for line in text.split("\n"))


def _render_code(block: Block, indent: str) -> str:
    language = block.props.get("language", "")
    lines = [f"{indent}```{language}"]
    lines.extend(f"{indent}{line}" for line in block.content.split("\n"))
    lines.append(f"{indent}```")
    return "\n".join(lines)


def _export_links(content: str) -> str:
    """Rewrite link tokens as Markdown links with the page scheme."""
    return LINK_TOKEN_RE.sub(
        lambda m: f"[{m.group(2)}]({PAGE_LINK_SCHEME}{m.group(1)})", content or ""
    )


# =============================================================================
# Import
# =============================================================================


def parse_markdown(text: str, page_id: str) -> list[Block]:
    """Parse Markdown into new blocks for ``page_id``.

    Headings, paragraphs, lists (including ``[ ]``/``[x]`` to-dos), quotes,
    code, thematic breaks, images and table placeholders are recognised.
    Nested list items become child blocks.

    Args:
        text: The Markdown source.
        page_id: Page the blocks are created for.

    Returns:
        Flat list of fresh blocks in document order.
    """
    doc = Document(text)
    blocks: list[Block] = []
    _convert_children(doc.children, page_id, None, blocks)
    return blocks


def _convert_children(
    tokens: Any, page_id: str, parent_id: str | None, out: list[Block]
) -> None:
    index = 0
    for token in tokens or []:
        for fields in _convert_token(token):
            children = fields.pop("children", None)
            block = Block.new(page_id, parent_block_id=parent_id, index=index, **fields)
            out.append(block)
            index += 1
            if children:
                _convert_children(children, page_id, block.id, out)


def _convert_token(token: Any) -> list[dict[str, Any]]:
    """Convert one mistletoe block token to block field dicts."""
    if isinstance(token, Heading):
        return [_convert_heading(token)]
    elif isinstance(token, Paragraph):
        return [_convert_paragraph(token)]
    elif isinstance(token, (BlockCode, CodeFence)):
        return [_convert_code(token)]
    elif isinstance(token, List):
        return [_convert_list_item(item, token.start is not None)
                for item in token.children if isinstance(item, ListItem)]
    elif isinstance(token, Quote):
        text = "\n".join(_inline_source(child.children) for child in token.children
                         if isinstance(child, Paragraph))
        return [{"type": BlockType.QUOTE, "content": text}]
    elif isinstance(token, ThematicBreak):
        return [{"type": BlockType.DIVIDER}]

    # Unknown token type - keep its text
    text = _plain_text(token)
    if text.strip():
        return [{"type": BlockType.PARAGRAPH, "content": text.strip()}]
    return []


def _convert_heading(token: Heading) -> dict[str, Any]:
    if token.level == 1:
        block_type = BlockType.HEADING_1
    elif token.level == 2:
        block_type = BlockType.HEADING_2
    else:
        block_type = BlockType.HEADING_3
    return {"type": block_type, "content": _inline_source(token.children)}


def _convert_paragraph(token: Paragraph) -> dict[str, Any]:
    children = list(token.children or [])

    # A paragraph holding a single image or table link is that block
    if len(children) == 1 and isinstance(children[0], Image):
        image = children[0]
        return {
            "type": BlockType.IMAGE,
            "content": _plain_text(image),
            "props": {"url": image.src},
        }
    if len(children) == 1 and isinstance(children[0], Link):
        target = children[0].target or ""
        if target.startswith(TABLE_LINK_SCHEME):
            return {"type": BlockType.TABLE, "content": target[len(TABLE_LINK_SCHEME):]}

    content = _inline_source(children)
    checkbox = _CHECKBOX_RE.match(content)
    if checkbox:
        return {
            "type": BlockType.TODO,
            "content": checkbox.group(2),
            "props": {"checked": checkbox.group(1).lower() == "x"},
        }
    return {"type": BlockType.PARAGRAPH, "content": content}


def _convert_code(token: BlockCode | CodeFence) -> dict[str, Any]:
    fields: dict[str, Any] = {
        "type": BlockType.CODE,
        "content": _plain_text(token).rstrip("\n"),
    }
    language = getattr(token, "language", None)
    if isinstance(token, CodeFence) and language:
        fields["props"] = {"language": language}
    return fields


def _convert_list_item(item: ListItem, ordered: bool) -> dict[str, Any]:
    """Convert a list item; nested lists inside it become its children."""
    paragraphs = []
    nested = []
    for child in item.children or []:
        if isinstance(child, List):
            nested.append(child)
        elif isinstance(child, Paragraph):
            paragraphs.append(_inline_source(child.children))
        else:
            nested.append(child)
    content = "\n".join(paragraphs)

    checkbox = _CHECKBOX_RE.match(content)
    if checkbox:
        fields: dict[str, Any] = {
            "type": BlockType.TODO,
            "content": checkbox.group(2),
            "props": {"checked": checkbox.group(1).lower() == "x"},
        }
    else:
        fields = {
            "type": BlockType.ORDERED_LIST if ordered else BlockType.BULLET_LIST,
            "content": content,
        }
    if nested:
        fields["children"] = nested
    return fields


def _inline_source(tokens: Any) -> str:
    """Rebuild block content from inline tokens.

    Emphasis markers are kept as typed; page links become link tokens.
    """
    return "".join(_inline_token_source(token) for token in tokens or [])


def _inline_token_source(token: Any) -> str:
    if isinstance(token, RawText):
        return token.content
    elif isinstance(token, Strong):
        return f"**{_inline_source(token.children)}**"
    elif isinstance(token, Emphasis):
        return f"*{_inline_source(token.children)}*"
    elif isinstance(token, Strikethrough):
        return f"~~{_inline_source(token.children)}~~"
    elif isinstance(token, InlineCode):
        return f"`{_plain_text(token)}`"
    elif isinstance(token, Link):
        title = _plain_text(token)
        target = token.target or ""
        if target.startswith(PAGE_LINK_SCHEME):
            return link_token(target[len(PAGE_LINK_SCHEME):], title)
        return f"[{_inline_source(token.children)}]({target})"
    elif isinstance(token, Image):
        return f"![{_plain_text(token)}]({token.src})"
    elif isinstance(token, LineBreak):
        return "\n"
    elif isinstance(token, EscapeSequence):
        return _plain_text(token)
    elif hasattr(token, "children"):
        return _inline_source(token.children)
    return ""


def _plain_text(token: Any) -> str:
    """Extract plain text from a token."""
    if isinstance(token, RawText):
        return token.content
    elif hasattr(token, "children") and token.children is not None:
        return "".join(_plain_text(child) for child in token.children)
    return ""
