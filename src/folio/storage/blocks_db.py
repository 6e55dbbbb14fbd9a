"""Block persistence.

A page's blocks are written as a whole: the editor keeps the working set in
memory and periodically replaces everything stored for the page in one
transaction. Readers therefore never see a partially written page.
"""

from __future__ import annotations

import json
import logging
import sqlite3

import tenacity

from ..blocks.links import Backlink, extract_backlinks, link_prefix
from ..blocks.models import Block, BlockType
from ..errors import DatabaseError, ValidationError
from .db import _get_connection, _transaction, init_db

logger = logging.getLogger(__name__)


# =============================================================================
# Retry Configuration
# =============================================================================


def _is_locked(exc: BaseException) -> bool:
    """Another connection (usually a save timer thread) holds the write lock."""
    return isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc).lower()


_retry_locked = tenacity.retry(
    stop=tenacity.stop_after_attempt(3),
    wait=tenacity.wait_exponential(multiplier=0.05, min=0.05, max=0.5),
    retry=tenacity.retry_if_exception(_is_locked),
    before_sleep=lambda rs: logger.debug(
        "Retrying locked page write (attempt %d)", rs.attempt_number + 1
    ),
    reraise=True,
)


def _row_to_block(row: sqlite3.Row) -> Block:
    try:
        props = json.loads(row["props"]) if row["props"] else {}
    except (json.JSONDecodeError, TypeError):
        logger.warning("Unreadable props on block %s; using empty props", row["id"])
        props = {}

    return Block(
        id=row["id"],
        page_id=row["page_id"],
        type=BlockType(row["type"]),
        parent_block_id=row["parent_block_id"],
        index=row["idx"],
        content=row["content"] or "",
        props=props if isinstance(props, dict) else {},
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        version=row["version"],
        remote_id=row["remote_id"],
    )


def load_page_blocks(page_id: str) -> list[Block]:
    """Load every block stored for a page, ordered by index.

    Args:
        page_id: The page ID.

    Returns:
        Flat list of blocks; empty when the page has none.
    """
    init_db()
    conn = _get_connection()
    cursor = conn.execute(
        "SELECT * FROM blocks WHERE page_id = ? ORDER BY idx, rowid",
        (page_id,),
    )
    return [_row_to_block(row) for row in cursor]


def replace_page_blocks(page_id: str, blocks: list[Block]) -> None:
    """Replace all stored blocks of a page with ``blocks``.

    Delete and insert run in one transaction: either the new set is stored
    or the old one is left intact.

    Raises:
        ValidationError: If a block belongs to another page.
        DatabaseError: If the write fails (e.g. unknown page).
    """
    for block in blocks:
        if block.page_id != page_id:
            raise ValidationError(
                f"Block {block.id} belongs to page {block.page_id}, not {page_id}",
                field="page_id",
                value=block.page_id,
            )

    rows = [
        (
            b.id,
            page_id,
            b.parent_block_id,
            BlockType(b.type).value,
            b.content,
            json.dumps(b.props),
            b.index,
            b.created_at,
            b.updated_at,
            b.version,
            b.remote_id,
        )
        for b in blocks
    ]

    init_db()
    try:
        _write_page_rows(page_id, rows)
    except sqlite3.Error as e:
        raise DatabaseError(
            f"Failed to replace blocks for page {page_id}: {e}",
            operation="replace_page_blocks",
            table="blocks",
        ) from e

    logger.debug("Stored %d block(s) for page %s", len(blocks), page_id)


@_retry_locked
def _write_page_rows(page_id: str, rows: list[tuple]) -> None:
    with _transaction() as conn:
        conn.execute("DELETE FROM blocks WHERE page_id = ?", (page_id,))
        conn.executemany("""
            INSERT INTO blocks (id, page_id, parent_block_id, type, content, props, idx,
                                created_at, updated_at, version, remote_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, rows)


def _like_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def find_backlinks(target_page_id: str, *, preview_chars: int | None = None) -> list[Backlink]:
    """Find blocks on any page that link to ``target_page_id``.

    A LIKE query narrows the candidates; the link pattern then confirms
    each one, so partial or malformed tokens are not reported.
    """
    init_db()
    conn = _get_connection()
    pattern = "%" + _like_escape(link_prefix(target_page_id)) + "%"
    cursor = conn.execute("""
        SELECT b.page_id, p.title, b.id, b.content
        FROM blocks b
        JOIN pages p ON p.id = b.page_id
        WHERE b.content LIKE ? ESCAPE '\\'
        ORDER BY p.sort_order DESC, b.idx
    """, (pattern,))
    rows = [(row[0], row[1], row[2], row[3]) for row in cursor]
    return extract_backlinks(target_page_id, rows, preview_chars=preview_chars)
