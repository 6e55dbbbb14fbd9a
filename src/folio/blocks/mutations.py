"""Structural and content edits over a page's flat block collection.

Every operation is a pure function: it takes the current blocks and returns
an EditResult holding a new list. Inputs are never modified; changed blocks
are copies with a refreshed ``updated_at``.

Soft failures never raise. An unknown id, indenting the first sibling,
outdenting a root block or dragging across sibling groups all return the
collection unchanged with ``changed=False``.

Operations that insert or reorder renumber the touched sibling group to
0..n-1. Indent, outdent and delete leave indices alone: the remaining
siblings keep their relative order, which is what rendering depends on.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

from .models import Block, BlockType, _now_iso
from .tree import descendant_ids, find_block, flat_order, siblings_of

logger = logging.getLogger(__name__)


@dataclass
class EditResult:
    """Outcome of one edit.

    Attributes:
        blocks: The new flat collection (the caller's new working set).
        focus_id: Block the editing surface should focus next, if any.
        changed: False when the edit was a no-op.
    """

    blocks: list[Block]
    focus_id: str | None = None
    changed: bool = True


def _unchanged(blocks: list[Block]) -> EditResult:
    return EditResult(blocks=list(blocks), focus_id=None, changed=False)


def _touch(block: Block, **changes: Any) -> Block:
    """Copy ``block`` with ``changes`` applied and a fresh updated_at."""
    return replace(block, updated_at=_now_iso(), **changes)


def _replace_one(blocks: list[Block], updated: Block) -> list[Block]:
    return [updated if b.id == updated.id else b for b in blocks]


def _merge(
    blocks: list[Block],
    updated: dict[str, Block],
    *,
    new_block: Block | None = None,
    after_id: str | None = None,
) -> list[Block]:
    """Swap in updated blocks, keeping list positions; splice ``new_block`` after ``after_id``."""
    result: list[Block] = []
    for block in blocks:
        result.append(updated.get(block.id, block))
        if new_block is not None and block.id == after_id:
            result.append(new_block)
    return result


def _renumber(group: list[Block]) -> dict[str, Block]:
    """Dense 0..n-1 indices for an ordered sibling group.

    Returns the blocks of the group keyed by id; only blocks whose index
    actually moved are copied.
    """
    result: dict[str, Block] = {}
    for i, block in enumerate(group):
        result[block.id] = block if block.index == i else _touch(block, index=i)
    return result


# =============================================================================
# Content Edits
# =============================================================================


def update_content(blocks: list[Block], block_id: str, text: str) -> EditResult:
    """Replace a block's text content."""
    block = find_block(blocks, block_id)
    if block is None:
        return _unchanged(blocks)
    return EditResult(blocks=_replace_one(blocks, _touch(block, content=text)))


def update_type(blocks: list[Block], block_id: str, block_type: BlockType | str) -> EditResult:
    """Change a block's type, keeping its content and props.

    Raises:
        ValueError: If ``block_type`` is not a known block type.
    """
    block_type = BlockType(block_type)
    block = find_block(blocks, block_id)
    if block is None:
        return _unchanged(blocks)
    return EditResult(blocks=_replace_one(blocks, _touch(block, type=block_type)))


def update_props(blocks: list[Block], block_id: str, partial: dict[str, Any]) -> EditResult:
    """Shallow-merge ``partial`` into a block's props."""
    block = find_block(blocks, block_id)
    if block is None:
        return _unchanged(blocks)
    props = {**block.props, **partial}
    return EditResult(blocks=_replace_one(blocks, _touch(block, props=props)))


def toggle_todo_checked(blocks: list[Block], block_id: str) -> EditResult:
    """Flip the ``checked`` prop; a missing or falsy value counts as unchecked."""
    block = find_block(blocks, block_id)
    if block is None:
        return _unchanged(blocks)
    checked = bool(block.props.get("checked"))
    props = {**block.props, "checked": not checked}
    return EditResult(blocks=_replace_one(blocks, _touch(block, props=props)))


def replace_with_command(
    blocks: list[Block],
    block_id: str,
    block_type: BlockType | str,
    *,
    content: str = "",
    props: dict[str, Any] | None = None,
) -> EditResult:
    """Transform a block in place, as a slash command does.

    Unlike update_type this resets content and props. The block keeps its id
    and position.
    """
    block_type = BlockType(block_type)
    block = find_block(blocks, block_id)
    if block is None:
        return _unchanged(blocks)

    if props is None:
        props = {"checked": False} if block_type == BlockType.TODO else {}
    updated = _touch(block, type=block_type, content=content, props=dict(props))
    return EditResult(blocks=_replace_one(blocks, updated), focus_id=block_id)


# =============================================================================
# Insertion
# =============================================================================


def _insert_sibling_after(
    blocks: list[Block], reference: Block, block_type: BlockType
) -> EditResult:
    """Insert an empty block right after ``reference`` and renumber its group."""
    new_block = Block.new(
        reference.page_id,
        type=block_type,
        parent_block_id=reference.parent_block_id,
        index=reference.index + 1,
    )

    siblings = siblings_of(blocks, reference)
    position = next(i for i, b in enumerate(siblings) if b.id == reference.id)
    group = siblings[: position + 1] + [new_block] + siblings[position + 1 :]
    renumbered = _renumber(group)

    new_block = renumbered.pop(new_block.id)
    merged = _merge(blocks, renumbered, new_block=new_block, after_id=reference.id)
    return EditResult(blocks=merged, focus_id=new_block.id)


def insert_after(blocks: list[Block], block_id: str) -> EditResult:
    """Insert a new empty block after ``block_id`` in the same sibling group.

    The new block is a to-do when the reference is a to-do, otherwise a plain
    paragraph (headings included). Focus moves to the new block.
    """
    reference = find_block(blocks, block_id)
    if reference is None:
        return _unchanged(blocks)

    new_type = BlockType.TODO if reference.type == BlockType.TODO else BlockType.PARAGRAPH
    return _insert_sibling_after(blocks, reference, new_type)


def insert_paragraph_after(blocks: list[Block], block_id: str) -> EditResult:
    """Insert a plain paragraph after ``block_id`` whatever its type."""
    reference = find_block(blocks, block_id)
    if reference is None:
        return _unchanged(blocks)
    return _insert_sibling_after(blocks, reference, BlockType.PARAGRAPH)


def append_empty_block(blocks: list[Block], page_id: str) -> EditResult:
    """Append a root paragraph after the last block of the collection.

    Its index is the last block's index plus one; no group is renumbered.
    The last block in list order may be a nested child with a small index,
    in which case the new root ties an existing root and renders after it
    rather than at the end of the page.
    """
    last_index = blocks[-1].index if blocks else 0
    new_block = Block.new(page_id, type=BlockType.PARAGRAPH, index=last_index + 1)
    return EditResult(blocks=[*blocks, new_block], focus_id=new_block.id)


# =============================================================================
# Deletion
# =============================================================================


def delete_with_cascade(blocks: list[Block], block_id: str) -> EditResult:
    """Delete a block together with all of its descendants.

    A page is never emptied: when the deletion would remove every block, the
    target survives alone as a cleared root block. Focus goes to the previous
    block in document order, or the next one when the deleted block was
    first, unless that block is deleted too.
    """
    block = find_block(blocks, block_id)
    if block is None:
        return _unchanged(blocks)

    doomed = {block_id, *descendant_ids(blocks, block_id)}
    if len(doomed) >= len(blocks):
        cleared = _touch(block, content="", parent_block_id=None)
        return EditResult(blocks=[cleared], focus_id=block.id)

    order = flat_order(blocks)
    idx = order.index(block_id)
    if idx > 0:
        focus_id: str | None = order[idx - 1]
    elif len(order) > 1:
        focus_id = order[idx + 1]
    else:
        focus_id = None

    if focus_id in doomed:
        focus_id = None

    logger.debug("Deleting %d block(s) rooted at %s", len(doomed), block_id)
    remaining = [b for b in blocks if b.id not in doomed]
    return EditResult(blocks=remaining, focus_id=focus_id)


# =============================================================================
# Indent / Outdent
# =============================================================================


def indent(blocks: list[Block], block_id: str) -> EditResult:
    """Nest a block under its preceding sibling.

    No-op for the first block of a sibling group. Only ``parent_block_id``
    changes; the block keeps its index value.
    """
    block = find_block(blocks, block_id)
    if block is None:
        return _unchanged(blocks)

    siblings = siblings_of(blocks, block)
    position = next(i for i, b in enumerate(siblings) if b.id == block_id)
    if position == 0:
        return _unchanged(blocks)

    new_parent = siblings[position - 1]
    updated = _touch(block, parent_block_id=new_parent.id)
    return EditResult(blocks=_replace_one(blocks, updated), focus_id=block_id)


def outdent(blocks: list[Block], block_id: str) -> EditResult:
    """Move a block up one level, under its grandparent (or to the root).

    No-op for root blocks. A parent missing from the collection promotes the
    block to the root. The block keeps its index value.
    """
    block = find_block(blocks, block_id)
    if block is None or block.parent_block_id is None:
        return _unchanged(blocks)

    parent = find_block(blocks, block.parent_block_id)
    new_parent_id = parent.parent_block_id if parent is not None else None
    updated = _touch(block, parent_block_id=new_parent_id)
    return EditResult(blocks=_replace_one(blocks, updated), focus_id=block_id)


# =============================================================================
# Reordering
# =============================================================================


def move_within_sibling_group(blocks: list[Block], active_id: str, over_id: str) -> EditResult:
    """Drag ``active_id`` onto ``over_id``'s position within one sibling group.

    Moving forward lands the block just after the target, moving backward
    just before it. Targets in another sibling group are rejected. The group
    is renumbered afterwards.
    """
    if active_id == over_id:
        return _unchanged(blocks)

    active = find_block(blocks, active_id)
    over = find_block(blocks, over_id)
    if active is None or over is None:
        return _unchanged(blocks)
    if active.parent_block_id != over.parent_block_id:
        logger.debug("Rejected cross-group move of %s onto %s", active_id, over_id)
        return _unchanged(blocks)

    group = siblings_of(blocks, active)
    old_pos = next(i for i, b in enumerate(group) if b.id == active_id)
    new_pos = next(i for i, b in enumerate(group) if b.id == over_id)

    moved = group.pop(old_pos)
    group.insert(new_pos, moved)

    return EditResult(blocks=_merge(blocks, _renumber(group)), focus_id=active_id)
