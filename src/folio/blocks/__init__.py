"""Block-tree editing engine.

Key components:
- models: Block, BlockType, Page, BlockNode dataclasses
- tree: Tree building, pre-order flattening and lookups
- mutations: Pure structural and content edits
- commands: Slash-command and link-autocomplete menus
- links: Page link tokens and backlink extraction
- reconciler: Debounced whole-page persistence
- markdown: Markdown export and import
- inline: Inline HTML rendering of block content
"""

from .commands import apply_link, apply_slash_command
from .inline import render_inline_html
from .links import Backlink, extract_backlinks, iter_links, link_token
from .markdown import parse_markdown, render_markdown
from .models import Block, BlockNode, BlockType, Page, PageType
from .mutations import (
    EditResult,
    append_empty_block,
    delete_with_cascade,
    indent,
    insert_after,
    move_within_sibling_group,
    outdent,
    toggle_todo_checked,
    update_content,
    update_props,
    update_type,
)
from .reconciler import DebouncedSaver
from .tree import build_tree, flat_order, flatten_tree, walk_tree

__all__ = [
    "Block",
    "BlockNode",
    "BlockType",
    "Page",
    "PageType",
    "build_tree",
    "flatten_tree",
    "flat_order",
    "walk_tree",
    "EditResult",
    "update_content",
    "update_type",
    "update_props",
    "toggle_todo_checked",
    "insert_after",
    "delete_with_cascade",
    "indent",
    "outdent",
    "move_within_sibling_group",
    "append_empty_block",
    "apply_slash_command",
    "apply_link",
    "Backlink",
    "extract_backlinks",
    "iter_links",
    "link_token",
    "DebouncedSaver",
    "parse_markdown",
    "render_markdown",
    "render_inline_html",
]
