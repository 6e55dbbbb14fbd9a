"""Page CRUD operations."""

from __future__ import annotations

import logging
import sqlite3
from typing import Any

from ..blocks.models import Page, PageType, _new_id, _now_iso
from ..errors import NotFoundError, ValidationError
from .db import _get_connection, _transaction, init_db

logger = logging.getLogger(__name__)

# Distinguishes "leave unchanged" from an explicit None in update_page
_UNSET: Any = object()


def _row_to_page(row: sqlite3.Row) -> Page:
    return Page(
        id=row["id"],
        workspace_id=row["workspace_id"],
        title=row["title"],
        type=PageType(row["type"]),
        icon=row["icon"],
        parent_id=row["parent_id"],
        sort_order=row["sort_order"],
        is_archived=bool(row["is_archived"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        version=row["version"],
        remote_id=row["remote_id"],
    )


def create_page(
    title: str = "Untitled",
    *,
    type: PageType | str = PageType.NOTE,
    parent_id: str | None = None,
    icon: str | None = None,
    workspace_id: str = "default",
) -> Page:
    """Create a page.

    New pages get the next sort_order, so they list first.

    Raises:
        ValidationError: If ``type`` is not a known page type.
        NotFoundError: If ``parent_id`` does not exist.
    """
    init_db()

    try:
        page_type = PageType(type)
    except ValueError as e:
        raise ValidationError(f"Unknown page type: {type}", field="type", value=type) from e

    if parent_id is not None and get_page(parent_id) is None:
        raise NotFoundError(f"Page not found: {parent_id}", resource_type="page", resource_id=parent_id)

    page_id = _new_id("page")
    now = _now_iso()
    title = title.strip() or "Untitled"

    with _transaction() as conn:
        cursor = conn.execute("SELECT COALESCE(MAX(sort_order), -1) + 1 FROM pages")
        sort_order = cursor.fetchone()[0]
        conn.execute("""
            INSERT INTO pages (id, workspace_id, title, type, icon, parent_id, sort_order,
                               is_archived, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
        """, (page_id, workspace_id, title, page_type.value, icon, parent_id, sort_order, now, now))

    logger.debug("Created page %s (%s)", page_id, title)
    return Page(
        id=page_id,
        workspace_id=workspace_id,
        title=title,
        type=page_type,
        icon=icon,
        parent_id=parent_id,
        sort_order=sort_order,
        created_at=now,
        updated_at=now,
    )


def get_page(page_id: str) -> Page | None:
    """Get a page by ID, archived or not."""
    init_db()
    conn = _get_connection()
    row = conn.execute("SELECT * FROM pages WHERE id = ?", (page_id,)).fetchone()
    return _row_to_page(row) if row else None


def list_pages(*, include_archived: bool = False) -> list[Page]:
    """List pages, newest sort_order first."""
    init_db()
    conn = _get_connection()
    if include_archived:
        cursor = conn.execute("SELECT * FROM pages ORDER BY sort_order DESC")
    else:
        cursor = conn.execute(
            "SELECT * FROM pages WHERE is_archived = 0 ORDER BY sort_order DESC"
        )
    return [_row_to_page(row) for row in cursor]


def update_page(
    page_id: str,
    *,
    title: str | None = None,
    parent_id: str | None = _UNSET,
    icon: str | None = _UNSET,
    is_archived: bool | None = None,
) -> Page:
    """Update page fields. Omitted fields are left alone.

    Raises:
        NotFoundError: If the page (or the new parent) does not exist.
        ValidationError: If the page would become its own parent.
    """
    init_db()
    page = get_page(page_id)
    if page is None:
        raise NotFoundError(f"Page not found: {page_id}", resource_type="page", resource_id=page_id)

    updates: dict[str, Any] = {}
    if title is not None:
        updates["title"] = title.strip() or "Untitled"
    if parent_id is not _UNSET:
        if parent_id == page_id:
            raise ValidationError("A page cannot be its own parent", field="parent_id", value=parent_id)
        if parent_id is not None and get_page(parent_id) is None:
            raise NotFoundError(
                f"Page not found: {parent_id}", resource_type="page", resource_id=parent_id
            )
        updates["parent_id"] = parent_id
    if icon is not _UNSET:
        updates["icon"] = icon
    if is_archived is not None:
        updates["is_archived"] = 1 if is_archived else 0

    if not updates:
        return page

    updates["updated_at"] = _now_iso()
    assignments = ", ".join(f"{column} = ?" for column in updates)
    with _transaction() as conn:
        conn.execute(
            f"UPDATE pages SET {assignments}, version = version + 1 WHERE id = ?",
            (*updates.values(), page_id),
        )

    updated = get_page(page_id)
    assert updated is not None
    return updated


def page_titles() -> dict[str, str]:
    """Map of page id to title for every non-archived page."""
    return {page.id: page.title for page in list_pages()}
