"""Tests for blocks/commands.py - Slash and link menus."""

from __future__ import annotations

import pytest

from folio.blocks import commands
from folio.blocks.commands import INACTIVE, Active, Inactive
from folio.blocks.models import Block, BlockType, Page
from folio.blocks.tree import children_of
from folio.errors import ExternalCallError


def make_block(block_id: str, content: str = "", index: int = 0) -> Block:
    return Block(id=block_id, page_id="page-1", content=content, index=index)


# =============================================================================
# Menu State
# =============================================================================


class TestMenuState:
    """Test the shared Inactive / Active state helpers."""

    def test_move_selection_clamps(self) -> None:
        state = Active(block_id="A", query="")

        down = commands.move_selection(state, 1, option_count=3)
        far = commands.move_selection(down, 10, option_count=3)
        up = commands.move_selection(far, -10, option_count=3)

        assert down.selected_index == 1
        assert far.selected_index == 2
        assert up.selected_index == 0

    def test_move_selection_inactive_unchanged(self) -> None:
        assert commands.move_selection(INACTIVE, 1, option_count=3) is INACTIVE

    def test_close(self) -> None:
        assert isinstance(commands.close(Active(block_id="A", query="x")), Inactive)


# =============================================================================
# Slash Commands
# =============================================================================


class TestSlashMenu:
    """Test slash command transitions and application."""

    def test_slash_opens_menu(self) -> None:
        state = commands.slash_transition(INACTIVE, "A", "/hea")
        assert state == Active(block_id="A", query="hea", selected_index=0)

    def test_other_text_closes_menu(self) -> None:
        state = commands.slash_transition(Active(block_id="A", query="h"), "A", "hello")
        assert state == INACTIVE

    def test_filter_commands_case_insensitive(self) -> None:
        labels = [c.label for c in commands.filter_commands("HEAD")]
        assert labels == ["Heading 1", "Heading 2", "Heading 3"]

    def test_filter_commands_empty_query_lists_all(self) -> None:
        assert len(commands.filter_commands("")) == len(commands.SLASH_COMMANDS)

    def test_apply_type_command_preserves_identity(self) -> None:
        blocks = [make_block("A", content="/todo")]

        result = commands.apply_slash_command(blocks, "A", commands.find_command("todo"))

        block = result.blocks[0]
        assert block.id == "A"
        assert block.type == BlockType.TODO
        assert block.content == ""
        assert block.props == {"checked": False}

    def test_apply_table_command(self) -> None:
        calls = []

        def create_table(page_id: str, title: str) -> str:
            calls.append((page_id, title))
            return "table-42"

        blocks = [make_block("A", content="/table", index=0), make_block("B", index=1)]

        result = commands.apply_slash_command(
            blocks, "A", commands.find_command("table"), create_record_table=create_table
        )

        assert calls == [("page-1", "Untitled Database")]
        roots = children_of(result.blocks, None)
        assert [b.id for b in roots][0] == "A"
        assert roots[0].type == BlockType.TABLE
        assert roots[0].content == "table-42"
        assert roots[1].type == BlockType.PARAGRAPH
        assert roots[1].id == result.focus_id
        assert roots[2].id == "B"
        assert [b.index for b in roots] == [0, 1, 2]

    def test_table_command_failure_leaves_block_unchanged(self) -> None:
        def failing(page_id: str, title: str) -> str:
            raise RuntimeError("service down")

        blocks = [make_block("A", content="/table")]

        with pytest.raises(ExternalCallError) as exc_info:
            commands.apply_slash_command(
                blocks, "A", commands.find_command("table"), create_record_table=failing
            )

        assert exc_info.value.recoverable is True
        assert blocks[0].type == BlockType.PARAGRAPH
        assert blocks[0].content == "/table"

    def test_table_command_without_collaborator(self) -> None:
        with pytest.raises(ExternalCallError):
            commands.apply_slash_command([make_block("A")], "A", commands.find_command("table"))

    def test_apply_to_missing_block(self) -> None:
        result = commands.apply_slash_command([make_block("A")], "nope", commands.find_command("h1"))
        assert result.changed is False


# =============================================================================
# Link Autocomplete
# =============================================================================


class TestLinkMenu:
    """Test link autocomplete transitions and application."""

    def test_open_bracket_opens_menu(self) -> None:
        state = commands.link_transition(INACTIVE, "A", "see [[Pro")
        assert state == Active(block_id="A", query="Pro")

    def test_closed_link_closes_menu(self) -> None:
        state = commands.link_transition(Active(block_id="A", query="P"), "A", "see [[page:p|P]]")
        assert state == INACTIVE

    def test_filter_pages(self) -> None:
        pages = [Page(id=f"p{i}", title=f"Project {i}") for i in range(15)] + [Page(id="x", title="Other")]

        assert len(commands.filter_pages(pages, "proj")) == 10
        assert [p.id for p in commands.filter_pages(pages, "oth")] == ["x"]
        assert len(commands.filter_pages(pages, "proj", limit=3)) == 3

    def test_apply_link_replaces_open_query(self) -> None:
        blocks = [make_block("A", content="Read [[Proj")]

        result = commands.apply_link(blocks, "A", Page(id="page-9", title="Project Plan"))

        assert result.blocks[0].content == "Read [[page:page-9|Project Plan]] "
        assert result.focus_id == "A"

    def test_apply_link_uses_last_open_bracket(self) -> None:
        blocks = [make_block("A", content="[[page:p1|One]] and [[Tw")]

        result = commands.apply_link(blocks, "A", Page(id="p2", title="Two"))

        assert result.blocks[0].content == "[[page:p1|One]] and [[page:p2|Two]] "

    def test_apply_link_without_brackets_is_no_op(self) -> None:
        result = commands.apply_link([make_block("A", content="plain")], "A", Page(id="p", title="P"))
        assert result.changed is False
