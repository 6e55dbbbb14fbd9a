"""Editor session: the owner of one page's working set.

The block engine is pure. EditorSession is the calling layer around it: it
holds the current blocks, the slash and link menu states and the focus
target, applies engine operations, and hands every changed snapshot to the
debounced saver.

Typical usage:

    session = EditorSession.open(page_id)
    session.type_text(block_id, "/")
    session.confirm_slash("todo")
    session.close()
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from .blocks import commands
from .blocks import mutations
from .blocks.commands import INACTIVE, Active, MenuState, SlashCommand
from .blocks.models import Block, BlockNode, BlockType, Page
from .blocks.mutations import EditResult
from .blocks.reconciler import DebouncedSaver
from .blocks.tree import build_tree, ensure_seeded, flat_order, next_block_id, previous_block_id
from .errors import FolioError, NotFoundError, ValidationError
from .storage import blocks_db, pages_db, tables_db

logger = logging.getLogger(__name__)

PageSource = Callable[[], list[Page]]
TableFactory = Callable[[str, str], str]


class EditorSession:
    """Working set and transient editor state for a single page.

    Args:
        page_id: The page being edited.
        blocks: Blocks as loaded from storage; an empty list is seeded with
            one paragraph.
        saver: Debounced saver that receives every changed snapshot. When
            None, edits stay in memory.
        create_record_table: ``(page_id, title) -> table_id`` used by the
            table slash command.
        pages: Returns the pages offered by the link menu.
    """

    def __init__(
        self,
        page_id: str,
        blocks: list[Block],
        *,
        saver: DebouncedSaver | None = None,
        create_record_table: TableFactory | None = None,
        pages: PageSource | None = None,
    ) -> None:
        self.page_id = page_id
        self.blocks: list[Block] = ensure_seeded(page_id, list(blocks))
        self.saver = saver
        self.create_record_table = create_record_table
        self._pages = pages

        self.focus_id: str | None = None
        self.slash_state: MenuState = INACTIVE
        self.link_state: MenuState = INACTIVE
        self.last_error: FolioError | None = None

        if saver is not None and saver.on_error is None:
            saver.on_error = self._on_save_error

    @classmethod
    def open(cls, page_id: str, *, delay: float | None = None) -> EditorSession:
        """Open a session backed by the sqlite store.

        Raises:
            NotFoundError: If the page does not exist.
        """
        if pages_db.get_page(page_id) is None:
            raise NotFoundError(f"Page not found: {page_id}", resource_type="page", resource_id=page_id)

        saver_kwargs: dict[str, Any] = {}
        if delay is not None:
            saver_kwargs["delay"] = delay
        saver = DebouncedSaver(save=blocks_db.replace_page_blocks, **saver_kwargs)

        return cls(
            page_id,
            blocks_db.load_page_blocks(page_id),
            saver=saver,
            create_record_table=tables_db.create_record_table,
            pages=pages_db.list_pages,
        )

    # -------------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------------

    def tree(self) -> list[BlockNode]:
        return build_tree(self.blocks)

    def order(self) -> list[str]:
        """Block ids in document order (the drag surface's id list)."""
        return flat_order(self.blocks)

    def block(self, block_id: str) -> Block | None:
        for block in self.blocks:
            if block.id == block_id:
                return block
        return None

    # -------------------------------------------------------------------------
    # Applying edits
    # -------------------------------------------------------------------------

    def _apply(self, result: EditResult) -> EditResult:
        if not result.changed:
            return result
        self.blocks = result.blocks
        if result.focus_id is not None:
            self.focus_id = result.focus_id
        if self.saver is not None:
            self.saver.schedule(self.page_id, self.blocks)
        return result

    def _on_save_error(self, page_id: str, error: Exception) -> None:
        logger.warning("Page %s not saved; keeping in-memory edits: %s", page_id, error)
        self.last_error = error if isinstance(error, FolioError) else None

    def type_text(self, block_id: str, text: str) -> EditResult:
        """Set a block's content and update both menus from the new text."""
        result = self._apply(mutations.update_content(self.blocks, block_id, text))
        if result.changed:
            self.slash_state = commands.slash_transition(self.slash_state, block_id, text)
            self.link_state = commands.link_transition(self.link_state, block_id, text)
        return result

    def set_type(self, block_id: str, block_type: BlockType | str) -> EditResult:
        """Change a block's type.

        Raises:
            ValidationError: If ``block_type`` is not a known type.
        """
        try:
            block_type = BlockType(block_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown block type: {block_type}", field="type", value=block_type
            ) from e
        return self._apply(mutations.update_type(self.blocks, block_id, block_type))

    def set_props(self, block_id: str, partial: dict[str, Any]) -> EditResult:
        return self._apply(mutations.update_props(self.blocks, block_id, partial))

    def toggle_todo(self, block_id: str) -> EditResult:
        return self._apply(mutations.toggle_todo_checked(self.blocks, block_id))

    def insert_after(self, block_id: str) -> EditResult:
        return self._apply(mutations.insert_after(self.blocks, block_id))

    def delete(self, block_id: str) -> EditResult:
        return self._apply(mutations.delete_with_cascade(self.blocks, block_id))

    def indent(self, block_id: str) -> EditResult:
        return self._apply(mutations.indent(self.blocks, block_id))

    def outdent(self, block_id: str) -> EditResult:
        return self._apply(mutations.outdent(self.blocks, block_id))

    def move(self, active_id: str, over_id: str) -> EditResult:
        return self._apply(mutations.move_within_sibling_group(self.blocks, active_id, over_id))

    def append_block(self) -> EditResult:
        return self._apply(mutations.append_empty_block(self.blocks, self.page_id))

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def focus_previous(self) -> str | None:
        """Move focus up one block in document order."""
        if self.focus_id is None:
            return None
        target = previous_block_id(self.blocks, self.focus_id)
        if target is not None:
            self.focus_id = target
        return target

    def focus_next(self) -> str | None:
        """Move focus down one block in document order."""
        if self.focus_id is None:
            return None
        target = next_block_id(self.blocks, self.focus_id)
        if target is not None:
            self.focus_id = target
        return target

    # -------------------------------------------------------------------------
    # Slash menu
    # -------------------------------------------------------------------------

    def slash_options(self) -> list[SlashCommand]:
        if not isinstance(self.slash_state, Active):
            return []
        return commands.filter_commands(self.slash_state.query)

    def move_slash_selection(self, delta: int) -> MenuState:
        self.slash_state = commands.move_selection(self.slash_state, delta, len(self.slash_options()))
        return self.slash_state

    def cancel_slash(self) -> None:
        self.slash_state = commands.close(self.slash_state)

    def confirm_slash(self, command_id: str | None = None) -> EditResult:
        """Apply the highlighted (or named) slash command and close the menu.

        Raises:
            ExternalCallError: The table command could not create its record
                table. The block is unchanged and the menu is closed.
        """
        state = self.slash_state
        if not isinstance(state, Active):
            return EditResult(blocks=list(self.blocks), changed=False)

        if command_id is not None:
            command = commands.find_command(command_id)
        else:
            options = self.slash_options()
            command = options[state.selected_index] if state.selected_index < len(options) else None

        self.slash_state = INACTIVE
        if command is None:
            return EditResult(blocks=list(self.blocks), changed=False)

        return self._apply(commands.apply_slash_command(
            self.blocks,
            state.block_id,
            command,
            create_record_table=self.create_record_table,
        ))

    # -------------------------------------------------------------------------
    # Link menu
    # -------------------------------------------------------------------------

    def link_options(self) -> list[Page]:
        """Pages matching the open ``[[`` query, the current page excluded."""
        if not isinstance(self.link_state, Active) or self._pages is None:
            return []
        candidates = [p for p in self._pages() if p.id != self.page_id]
        return commands.filter_pages(candidates, self.link_state.query)

    def move_link_selection(self, delta: int) -> MenuState:
        self.link_state = commands.move_selection(self.link_state, delta, len(self.link_options()))
        return self.link_state

    def cancel_link(self) -> None:
        self.link_state = commands.close(self.link_state)

    def confirm_link(self, page: Page | None = None) -> EditResult:
        """Insert a link to the highlighted (or given) page and close the menu."""
        state = self.link_state
        if not isinstance(state, Active):
            return EditResult(blocks=list(self.blocks), changed=False)

        if page is None:
            options = self.link_options()
            page = options[state.selected_index] if state.selected_index < len(options) else None

        self.link_state = INACTIVE
        if page is None:
            return EditResult(blocks=list(self.blocks), changed=False)
        return self._apply(commands.apply_link(self.blocks, state.block_id, page))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def flush(self) -> None:
        """Write any pending snapshot now."""
        if self.saver is not None:
            self.saver.flush(self.page_id)

    def close(self) -> None:
        """Flush pending edits and reset transient state."""
        self.flush()
        self.slash_state = INACTIVE
        self.link_state = INACTIVE
        self.focus_id = None
