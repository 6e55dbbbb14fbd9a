"""Tree operations for the block hierarchy.

This module turns a page's flat block collection into an ordered forest and
back into a linear pre-order sequence:
- Building the tree (parent links + sibling order)
- Flattening for up/down navigation and the drag surface id list
- Sibling, ancestor and descendant lookups used by the mutation engine

Everything here is pure: inputs are never modified.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from .models import Block, BlockNode, BlockType

logger = logging.getLogger(__name__)


# =============================================================================
# Tree Builder
# =============================================================================


def build_tree(blocks: Iterable[Block]) -> list[BlockNode]:
    """Build an ordered forest from a flat list of blocks.

    A block whose parent is not in the collection is placed at the root.
    Children lists and the root list are sorted by ``index``; the sort is
    stable, so equal indices keep their input order.

    Args:
        blocks: Blocks of one page, in any order.

    Returns:
        Root nodes with children populated.
    """
    blocks = list(blocks)
    nodes = {b.id: BlockNode(block=b) for b in blocks}
    parent_of = _resolved_parents(blocks, nodes.keys())

    roots: list[BlockNode] = []
    for block in blocks:
        parent_id = parent_of[block.id]
        if parent_id is None:
            roots.append(nodes[block.id])
        else:
            nodes[parent_id].children.append(nodes[block.id])

    _sort_forest(roots)
    return roots


def _resolved_parents(blocks: list[Block], known_ids: Iterable[str]) -> dict[str, str | None]:
    """Map each block id to the parent it is attached under, or None for root.

    Dangling references fall back to root. A parent chain that loops back on
    itself (corrupt data) has its entry block promoted to root so that every
    block stays reachable.
    """
    known = set(known_ids)
    parent_of: dict[str, str | None] = {}
    for block in blocks:
        pid = block.parent_block_id
        parent_of[block.id] = pid if pid in known and pid != block.id else None

    resolved: set[str] = set()
    for block in blocks:
        path: list[str] = []
        on_path: set[str] = set()
        current = block.id
        while current is not None and current not in resolved:
            if current in on_path:
                logger.warning("Parent cycle at block %s; placing it at root", current)
                parent_of[current] = None
                break
            on_path.add(current)
            path.append(current)
            current = parent_of[current]
        resolved.update(path)

    return parent_of


def _sort_forest(roots: list[BlockNode]) -> None:
    """Sort every sibling list by index, without recursion."""
    stack = [roots]
    while stack:
        nodes = stack.pop()
        nodes.sort(key=lambda n: n.block.index)
        stack.extend(node.children for node in nodes if node.children)


# =============================================================================
# Tree Flattener
# =============================================================================


def flatten_tree(root_nodes: list[BlockNode]) -> list[BlockNode]:
    """Flatten a forest to a pre-order list.

    Args:
        root_nodes: Root nodes with children populated.

    Returns:
        Flat list of all nodes, each parent immediately followed by its subtree.
    """
    return [node for node, _ in walk_tree(root_nodes)]


def walk_tree(root_nodes: list[BlockNode]) -> Iterator[tuple[BlockNode, int]]:
    """Yield ``(node, depth)`` pairs in pre-order.

    Uses an explicit stack, so nesting depth is not limited by the
    interpreter's recursion limit.
    """
    stack = [(node, 0) for node in reversed(root_nodes)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        stack.extend((child, depth + 1) for child in reversed(node.children))


def flat_order(blocks: Iterable[Block]) -> list[str]:
    """Block ids in document (pre-order) order.

    This is the id list handed to the drag-and-drop surface, and the order
    used for up/down navigation.
    """
    return [node.id for node in flatten_tree(build_tree(blocks))]


def previous_block_id(blocks: Iterable[Block], block_id: str) -> str | None:
    """Id of the block before ``block_id`` in document order, if any."""
    order = flat_order(blocks)
    try:
        idx = order.index(block_id)
    except ValueError:
        return None
    return order[idx - 1] if idx > 0 else None


def next_block_id(blocks: Iterable[Block], block_id: str) -> str | None:
    """Id of the block after ``block_id`` in document order, if any."""
    order = flat_order(blocks)
    try:
        idx = order.index(block_id)
    except ValueError:
        return None
    return order[idx + 1] if idx < len(order) - 1 else None


# =============================================================================
# Sibling / Ancestor / Descendant Lookups
# =============================================================================


def find_block(blocks: Iterable[Block], block_id: str) -> Block | None:
    """Return the block with ``block_id`` or None."""
    for block in blocks:
        if block.id == block_id:
            return block
    return None


def children_of(blocks: Iterable[Block], parent_id: str | None) -> list[Block]:
    """Blocks whose parent is ``parent_id``, sorted by index (stable)."""
    return sorted(
        (b for b in blocks if b.parent_block_id == parent_id),
        key=lambda b: b.index,
    )


def siblings_of(blocks: Iterable[Block], block: Block) -> list[Block]:
    """The sibling group of ``block``, including itself, sorted by index."""
    return children_of(blocks, block.parent_block_id)


def descendant_ids(blocks: Iterable[Block], block_id: str) -> list[str]:
    """All transitive descendants of ``block_id``, depth-first.

    Args:
        blocks: The page's blocks.
        block_id: The subtree root (not included in the result).
    """
    by_parent: dict[str | None, list[Block]] = {}
    for block in blocks:
        by_parent.setdefault(block.parent_block_id, []).append(block)

    result: list[str] = []
    seen = {block_id}
    stack = list(reversed(by_parent.get(block_id, [])))
    while stack:
        child = stack.pop()
        # Corrupt data may loop back
        if child.id in seen:
            continue
        seen.add(child.id)
        result.append(child.id)
        stack.extend(reversed(by_parent.get(child.id, [])))
    return result


def ancestor_ids(blocks: Iterable[Block], block_id: str) -> list[str]:
    """Ancestors of a block, immediate parent first.

    Stops at the first parent that is missing from the collection.
    """
    by_id = {b.id: b for b in blocks}
    ancestors: list[str] = []
    seen = {block_id}
    current = by_id.get(block_id)
    while current is not None and current.parent_block_id:
        parent = by_id.get(current.parent_block_id)
        if parent is None or parent.id in seen:
            break
        ancestors.append(parent.id)
        seen.add(parent.id)
        current = parent
    return ancestors


def block_depth(blocks: Iterable[Block], block_id: str) -> int:
    """Nesting depth of a block (0 for root blocks)."""
    return len(ancestor_ids(blocks, block_id))


# =============================================================================
# Empty Page Policy
# =============================================================================


def seed_block(page_id: str) -> Block:
    """The single default paragraph a page starts with."""
    return Block.new(page_id, type=BlockType.PARAGRAPH, index=0)


def ensure_seeded(page_id: str, blocks: list[Block]) -> list[Block]:
    """Return ``blocks``, or a one-block list when the page has none."""
    if blocks:
        return blocks
    return [seed_block(page_id)]
