"""Slash-command and link-autocomplete menus.

Both menus are small state machines driven by a block's content as the user
types. The state is a plain value owned by the caller:

    Inactive()                               menu closed
    Active(block_id, query, selected_index)  menu open on one block

Transitions are pure functions. Confirming a menu produces an EditResult
through the mutation engine.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Callable, Iterable, Union

from ..errors import ExternalCallError
from ..settings import settings
from .links import OPEN_LINK_RE, link_token
from .models import Block, BlockType, Page
from .mutations import EditResult, insert_paragraph_after, replace_with_command, update_content
from .tree import find_block

logger = logging.getLogger(__name__)

# Title given to record tables created from the "/table" command
DEFAULT_TABLE_TITLE = "Untitled Database"


@dataclass(frozen=True)
class Inactive:
    """Menu closed."""


@dataclass(frozen=True)
class Active:
    """Menu open on ``block_id`` with the typed ``query``."""

    block_id: str
    query: str
    selected_index: int = 0


MenuState = Union[Inactive, Active]

INACTIVE = Inactive()


def move_selection(state: MenuState, delta: int, option_count: int) -> MenuState:
    """Move the highlighted option up (negative) or down (positive), clamped."""
    if not isinstance(state, Active):
        return state
    upper = max(option_count - 1, 0)
    selected = min(max(state.selected_index + delta, 0), upper)
    return replace(state, selected_index=selected)


def close(state: MenuState) -> MenuState:
    """Explicit cancel (Escape): always back to Inactive, no edit."""
    return INACTIVE


# =============================================================================
# Slash Commands
# =============================================================================


@dataclass(frozen=True)
class SlashCommand:
    id: str
    label: str
    type: BlockType
    description: str = ""


SLASH_COMMANDS: tuple[SlashCommand, ...] = (
    SlashCommand("text", "Text", BlockType.PARAGRAPH, "Just start writing with plain text."),
    SlashCommand("h1", "Heading 1", BlockType.HEADING_1, "Big section heading."),
    SlashCommand("h2", "Heading 2", BlockType.HEADING_2, "Medium section heading."),
    SlashCommand("h3", "Heading 3", BlockType.HEADING_3, "Small section heading."),
    SlashCommand("todo", "To-do list", BlockType.TODO, "Track tasks with a to-do list."),
    SlashCommand("bullet", "Bulleted list", BlockType.BULLET_LIST, "Create a simple bulleted list."),
    SlashCommand("numbered", "Numbered list", BlockType.ORDERED_LIST, "Create a list with numbering."),
    SlashCommand("quote", "Quote", BlockType.QUOTE, "Capture a quote."),
    SlashCommand("code", "Code", BlockType.CODE, "Capture a code snippet."),
    SlashCommand("divider", "Divider", BlockType.DIVIDER, "Visually divide blocks."),
    SlashCommand("table", "Table", BlockType.TABLE, "Add a table of records."),
)


def slash_transition(state: MenuState, block_id: str, content: str) -> MenuState:
    """Next slash menu state after ``block_id``'s content changed.

    Content starting with ``/`` opens (or refreshes) the menu with the rest
    of the text as the query; anything else closes it.
    """
    if content.startswith("/"):
        return Active(block_id=block_id, query=content[1:], selected_index=0)
    return INACTIVE


def filter_commands(query: str, commands: Iterable[SlashCommand] = SLASH_COMMANDS) -> list[SlashCommand]:
    """Commands whose label contains ``query``, case-insensitively."""
    needle = query.lower()
    return [cmd for cmd in commands if needle in cmd.label.lower()]


def find_command(command_id: str) -> SlashCommand | None:
    for cmd in SLASH_COMMANDS:
        if cmd.id == command_id:
            return cmd
    return None


def apply_slash_command(
    blocks: list[Block],
    block_id: str,
    command: SlashCommand,
    *,
    create_record_table: Callable[[str, str], str] | None = None,
) -> EditResult:
    """Apply a confirmed slash command to a block.

    The block keeps its identity; type, content and props are replaced. The
    table command first creates an external record table, stores its id as
    the block content and adds an empty paragraph after the table.

    Args:
        blocks: Current page blocks.
        block_id: Block the menu was opened on.
        command: The chosen command.
        create_record_table: ``(page_id, title) -> table_id`` collaborator,
            required for the table command.

    Raises:
        ExternalCallError: The record table could not be created. Nothing is
            changed in that case.
    """
    target = find_block(blocks, block_id)
    if target is None:
        return EditResult(blocks=list(blocks), changed=False)

    if command.type != BlockType.TABLE:
        return replace_with_command(blocks, block_id, command.type)

    if create_record_table is None:
        raise ExternalCallError(
            "No record table service configured",
            operation="create_record_table",
        )

    try:
        table_id = create_record_table(target.page_id, DEFAULT_TABLE_TITLE)
    except Exception as e:
        logger.error("Failed to create record table for block %s: %s", block_id, e)
        raise ExternalCallError(
            f"Failed to create table: {e}",
            operation="create_record_table",
            context={"block_id": block_id, "page_id": target.page_id},
        ) from e

    converted = replace_with_command(
        blocks, block_id, BlockType.TABLE, content=str(table_id), props={}
    )
    return insert_paragraph_after(converted.blocks, block_id)


# =============================================================================
# Link Autocomplete
# =============================================================================


def link_transition(state: MenuState, block_id: str, content: str) -> MenuState:
    """Next link menu state after ``block_id``'s content changed.

    The menu is open while the content ends in an unterminated ``[[`` plus
    free text; that text is the query.
    """
    match = OPEN_LINK_RE.search(content)
    if match:
        return Active(block_id=block_id, query=match.group(1), selected_index=0)
    return INACTIVE


def filter_pages(pages: Iterable[Page], query: str, limit: int | None = None) -> list[Page]:
    """Pages whose title contains ``query``, case-insensitively."""
    limit = settings.link_menu_limit if limit is None else limit
    needle = query.lower()
    return [p for p in pages if needle in p.title.lower()][:limit]


def apply_link(blocks: list[Block], block_id: str, page: Page) -> EditResult:
    """Replace the open ``[[query`` at the end of a block with a link token.

    Everything from the last ``[[`` to the end becomes
    ``[[page:<id>|<title>]]`` followed by a space.
    """
    block = find_block(blocks, block_id)
    if block is None:
        return EditResult(blocks=list(blocks), changed=False)

    start = block.content.rfind("[[")
    if start == -1:
        return EditResult(blocks=list(blocks), changed=False)

    content = block.content[:start] + link_token(page.id, page.title) + " "
    result = update_content(blocks, block_id, content)
    result.focus_id = block_id
    return result
