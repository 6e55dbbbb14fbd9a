"""Tests for blocks/tree.py - Tree building and flattening.

Tests:
- Building an ordered forest from flat blocks
- Orphans, self references and cycles
- Pre-order flattening and navigation
- Sibling, ancestor and descendant lookups
- Empty page seeding
"""

from __future__ import annotations

from folio.blocks.models import Block, BlockType
from folio.blocks.tree import (
    ancestor_ids,
    block_depth,
    build_tree,
    children_of,
    descendant_ids,
    ensure_seeded,
    flat_order,
    flatten_tree,
    next_block_id,
    previous_block_id,
    seed_block,
    walk_tree,
)


def make_block(block_id: str, parent: str | None = None, index: int = 0) -> Block:
    return Block(id=block_id, page_id="page-1", parent_block_id=parent, index=index)


# =============================================================================
# Tree Builder
# =============================================================================


class TestBuildTree:
    """Test building the block forest."""

    def test_nests_children_under_parents(self) -> None:
        blocks = [make_block("A"), make_block("B", "A"), make_block("C", "B")]

        roots = build_tree(blocks)

        assert [n.id for n in roots] == ["A"]
        assert [n.id for n in roots[0].children] == ["B"]
        assert [n.id for n in roots[0].children[0].children] == ["C"]

    def test_sorts_siblings_by_index(self) -> None:
        blocks = [make_block("A", index=2), make_block("B", index=0), make_block("C", index=1)]

        assert [n.id for n in build_tree(blocks)] == ["B", "C", "A"]

    def test_equal_indices_keep_input_order(self) -> None:
        blocks = [make_block("X", index=1), make_block("Y", index=1), make_block("Z", index=0)]

        assert [n.id for n in build_tree(blocks)] == ["Z", "X", "Y"]

    def test_orphan_goes_to_root(self) -> None:
        blocks = [make_block("A", index=0), make_block("B", "missing", index=1)]

        roots = build_tree(blocks)

        assert [n.id for n in roots] == ["A", "B"]

    def test_self_parent_goes_to_root(self) -> None:
        roots = build_tree([make_block("A", "A")])
        assert [n.id for n in roots] == ["A"]

    def test_cycle_keeps_every_block_reachable(self) -> None:
        blocks = [make_block("A", "B"), make_block("B", "A"), make_block("C")]

        order = flat_order(blocks)

        assert sorted(order) == ["A", "B", "C"]
        assert len(order) == 3

    def test_does_not_modify_input(self) -> None:
        blocks = [make_block("B", index=1), make_block("A", index=0)]
        build_tree(blocks)
        assert [b.id for b in blocks] == ["B", "A"]

    def test_never_omits_a_block(self) -> None:
        blocks = [
            make_block("A", index=0),
            make_block("B", "A", index=0),
            make_block("C", "A", index=1),
            make_block("D", "C", index=0),
            make_block("E", index=1),
            make_block("F", "ghost", index=5),
        ]

        order = flat_order(blocks)

        assert sorted(order) == sorted(b.id for b in blocks)
        assert len(order) == len(set(order))


# =============================================================================
# Tree Flattener
# =============================================================================


class TestFlatten:
    """Test pre-order flattening and navigation."""

    def test_pre_order(self) -> None:
        blocks = [
            make_block("A", index=0),
            make_block("A2", "A", index=1),
            make_block("A1", "A", index=0),
            make_block("A1a", "A1", index=0),
            make_block("B", index=1),
        ]

        nodes = flatten_tree(build_tree(blocks))

        assert [n.id for n in nodes] == ["A", "A1", "A1a", "A2", "B"]

    def test_previous_and_next(self) -> None:
        blocks = [make_block("A", index=0), make_block("A1", "A"), make_block("B", index=1)]

        assert previous_block_id(blocks, "A") is None
        assert previous_block_id(blocks, "B") == "A1"
        assert next_block_id(blocks, "A") == "A1"
        assert next_block_id(blocks, "B") is None

    def test_navigation_unknown_id(self) -> None:
        blocks = [make_block("A")]
        assert previous_block_id(blocks, "nope") is None
        assert next_block_id(blocks, "nope") is None

    def test_walk_tree_depths(self) -> None:
        blocks = [make_block("A", index=0), make_block("A1", "A"), make_block("B", index=1)]

        walked = [(node.id, depth) for node, depth in walk_tree(build_tree(blocks))]

        assert walked == [("A", 0), ("A1", 1), ("B", 0)]


class TestDeepNesting:
    """Test that very deep chains do not hit the recursion limit."""

    DEPTH = 2000

    def chain(self) -> list[Block]:
        return [make_block("b0")] + [
            make_block(f"b{i}", f"b{i - 1}") for i in range(1, self.DEPTH)
        ]

    def test_flat_order(self) -> None:
        blocks = self.chain()
        assert flat_order(blocks) == [f"b{i}" for i in range(self.DEPTH)]

    def test_flat_order_reversed_input(self) -> None:
        blocks = list(reversed(self.chain()))
        assert flat_order(blocks)[-1] == f"b{self.DEPTH - 1}"

    def test_walk_tree_reaches_bottom(self) -> None:
        last_node, last_depth = list(walk_tree(build_tree(self.chain())))[-1]

        assert last_node.id == f"b{self.DEPTH - 1}"
        assert last_depth == self.DEPTH - 1

    def test_descendants_and_depth(self) -> None:
        blocks = self.chain()

        assert len(descendant_ids(blocks, "b0")) == self.DEPTH - 1
        assert block_depth(blocks, f"b{self.DEPTH - 1}") == self.DEPTH - 1


# =============================================================================
# Lookups
# =============================================================================


class TestLookups:
    """Test sibling, ancestor and descendant helpers."""

    def test_children_of_sorted(self) -> None:
        blocks = [make_block("A"), make_block("C", "A", 1), make_block("B", "A", 0)]
        assert [b.id for b in children_of(blocks, "A")] == ["B", "C"]

    def test_descendants_transitive(self) -> None:
        blocks = [
            make_block("A"),
            make_block("B", "A"),
            make_block("C", "B"),
            make_block("D", "C"),
            make_block("E"),
        ]

        assert sorted(descendant_ids(blocks, "A")) == ["B", "C", "D"]
        assert descendant_ids(blocks, "E") == []

    def test_descendants_terminate_on_cycle(self) -> None:
        blocks = [make_block("A", "B"), make_block("B", "A")]
        assert descendant_ids(blocks, "A") == ["B"]

    def test_ancestors_and_depth(self) -> None:
        blocks = [make_block("A"), make_block("B", "A"), make_block("C", "B")]

        assert ancestor_ids(blocks, "C") == ["B", "A"]
        assert block_depth(blocks, "C") == 2
        assert block_depth(blocks, "A") == 0


# =============================================================================
# Empty Page Policy
# =============================================================================


class TestSeeding:
    """Test the single default paragraph for empty pages."""

    def test_seed_block(self) -> None:
        block = seed_block("page-1")

        assert block.type == BlockType.PARAGRAPH
        assert block.page_id == "page-1"
        assert block.content == ""
        assert block.index == 0
        assert block.parent_block_id is None

    def test_ensure_seeded_empty(self) -> None:
        blocks = ensure_seeded("page-1", [])
        assert len(blocks) == 1

    def test_ensure_seeded_keeps_existing(self) -> None:
        existing = [make_block("A")]
        assert ensure_seeded("page-1", existing) is existing
