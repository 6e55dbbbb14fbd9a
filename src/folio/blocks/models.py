"""Data models for the block-based page editor.

This module defines the core data structures: pages, the blocks that make up
a page's content tree, and the tree node wrapper produced by the builder.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4


def _now_iso() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


def _new_id(prefix: str) -> str:
    """Generate a new unique ID with prefix."""
    return f"{prefix}-{uuid4().hex[:12]}"


class BlockType(str, Enum):
    """Closed set of block tags. The tag decides rendering and which props matter."""

    # Text blocks
    PARAGRAPH = "paragraph"
    HEADING_1 = "heading1"
    HEADING_2 = "heading2"
    HEADING_3 = "heading3"

    # List blocks
    TODO = "todo"
    BULLET_LIST = "bulletList"
    ORDERED_LIST = "orderedList"

    # Special blocks
    QUOTE = "quote"
    CODE = "code"
    DIVIDER = "divider"
    IMAGE = "image"

    # Embeds an external record table; content holds the table id
    TABLE = "table"


HEADING_TYPES = frozenset({
    BlockType.HEADING_1,
    BlockType.HEADING_2,
    BlockType.HEADING_3,
})


class PageType(str, Enum):
    NOTE = "note"
    PROJECT = "project"
    DAILY = "daily"
    COLLECTION = "collection"


# camelCase keys of the persisted JSON wire format
_WIRE_KEYS = {
    "pageId": "page_id",
    "parentBlockId": "parent_block_id",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "remoteId": "remote_id",
    "workspaceId": "workspace_id",
    "parentId": "parent_id",
    "sortOrder": "sort_order",
    "isArchived": "is_archived",
}


def _normalize_keys(data: dict[str, Any]) -> dict[str, Any]:
    return {_WIRE_KEYS.get(key, key): value for key, value in data.items()}


@dataclass
class Block:
    """A content block on a page.

    Blocks are stored flat; the hierarchy lives in ``parent_block_id`` and the
    order among siblings in ``index``. ``props`` is an open map and keys the
    block type does not use are carried along untouched.
    """

    id: str
    page_id: str
    type: BlockType = BlockType.PARAGRAPH

    # Hierarchy
    parent_block_id: str | None = None
    index: int = 0

    # Payload
    content: str = ""
    props: dict[str, Any] = field(default_factory=dict)

    # Bookkeeping
    created_at: str = ""
    updated_at: str = ""
    version: int = 1
    remote_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "page_id": self.page_id,
            "parent_block_id": self.parent_block_id,
            "type": self.type.value if isinstance(self.type, BlockType) else self.type,
            "content": self.content,
            "props": dict(self.props),
            "index": self.index,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "version": self.version,
            "remote_id": self.remote_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Block:
        """Create from dictionary.

        Accepts both snake_case keys and the camelCase keys of the editor's
        JSON format.

        Raises:
            ValueError: If ``type`` is not a known block type.
        """
        data = _normalize_keys(data)
        block_type = data.get("type", BlockType.PARAGRAPH)
        if isinstance(block_type, str):
            block_type = BlockType(block_type)

        return cls(
            id=data["id"],
            page_id=data["page_id"],
            type=block_type,
            parent_block_id=data.get("parent_block_id") or None,
            index=int(data.get("index", 0)),
            content=data.get("content") or "",
            props=dict(data.get("props") or {}),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            version=int(data.get("version", 1)),
            remote_id=data.get("remote_id"),
        )

    @classmethod
    def new(
        cls,
        page_id: str,
        *,
        type: BlockType = BlockType.PARAGRAPH,
        parent_block_id: str | None = None,
        index: int = 0,
        content: str = "",
        props: dict[str, Any] | None = None,
    ) -> Block:
        """Create a fresh block with a new identity and timestamps."""
        now = _now_iso()
        return cls(
            id=_new_id("block"),
            page_id=page_id,
            type=type,
            parent_block_id=parent_block_id,
            index=index,
            content=content,
            props=dict(props or {}),
            created_at=now,
            updated_at=now,
        )

    def is_root(self) -> bool:
        return self.parent_block_id is None


@dataclass
class BlockNode:
    """A block together with its ordered children, as produced by build_tree."""

    block: Block
    children: list[BlockNode] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.block.id

    def to_dict(self) -> dict[str, Any]:
        result = self.block.to_dict()
        result["children"] = [child.to_dict() for child in self.children]
        return result


@dataclass
class Page:
    """A page: the container that owns one block forest."""

    id: str
    title: str = "Untitled"
    type: PageType = PageType.NOTE
    workspace_id: str = "default"
    icon: str | None = None
    parent_id: str | None = None
    sort_order: int = 0
    is_archived: bool = False
    created_at: str = ""
    updated_at: str = ""
    version: int = 1
    remote_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "workspace_id": self.workspace_id,
            "title": self.title,
            "type": self.type.value if isinstance(self.type, PageType) else self.type,
            "icon": self.icon,
            "parent_id": self.parent_id,
            "sort_order": self.sort_order,
            "is_archived": self.is_archived,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "version": self.version,
            "remote_id": self.remote_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Page:
        """Create from dictionary."""
        data = _normalize_keys(data)
        page_type = data.get("type", PageType.NOTE)
        if isinstance(page_type, str):
            page_type = PageType(page_type)

        return cls(
            id=data["id"],
            title=data.get("title") or "Untitled",
            type=page_type,
            workspace_id=data.get("workspace_id", "default"),
            icon=data.get("icon"),
            parent_id=data.get("parent_id"),
            sort_order=int(data.get("sort_order", 0)),
            is_archived=bool(data.get("is_archived", False)),
            created_at=data.get("created_at", ""),
            updated_at=data.get("updated_at", ""),
            version=int(data.get("version", 1)),
            remote_id=data.get("remote_id"),
        )
