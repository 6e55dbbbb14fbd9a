"""Record tables embedded in pages by ``table`` blocks.

Only creation and lookup live here; a table block stores nothing but the
table id in its content.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ..blocks.models import _new_id, _now_iso
from ..errors import NotFoundError
from .db import _get_connection, _transaction, init_db

logger = logging.getLogger(__name__)

DEFAULT_COLUMNS = ("Name", "Tags")
DEFAULT_ROW_COUNT = 3


@dataclass
class RecordColumn:
    id: str
    name: str
    type: str = "text"
    position: int = 0


@dataclass
class RecordTable:
    id: str
    page_id: str
    title: str
    columns: list[RecordColumn] = field(default_factory=list)
    rows: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "page_id": self.page_id,
            "title": self.title,
            "columns": [
                {"id": c.id, "name": c.name, "type": c.type, "position": c.position}
                for c in self.columns
            ],
            "rows": list(self.rows),
        }


def create_record_table(page_id: str, title: str) -> str:
    """Create a record table on a page.

    The table starts with text columns Name and Tags and three empty rows.

    Returns:
        The new table ID.

    Raises:
        NotFoundError: If the page does not exist.
    """
    init_db()
    conn = _get_connection()
    if conn.execute("SELECT 1 FROM pages WHERE id = ?", (page_id,)).fetchone() is None:
        raise NotFoundError(f"Page not found: {page_id}", resource_type="page", resource_id=page_id)

    table_id = _new_id("table")
    now = _now_iso()
    with _transaction() as conn:
        conn.execute(
            "INSERT INTO record_tables (id, page_id, title, created_at, updated_at) VALUES (?, ?, ?, ?, ?)",
            (table_id, page_id, title, now, now),
        )
        for position, name in enumerate(DEFAULT_COLUMNS):
            conn.execute(
                "INSERT INTO record_table_columns (id, table_id, name, type, position) VALUES (?, ?, ?, 'text', ?)",
                (_new_id("col"), table_id, name, position),
            )
        for position in range(DEFAULT_ROW_COUNT):
            conn.execute(
                "INSERT INTO record_table_rows (id, table_id, data, position, created_at, updated_at) "
                "VALUES (?, ?, '{}', ?, ?, ?)",
                (_new_id("row"), table_id, position, now, now),
            )

    logger.info("Created record table %s on page %s", table_id, page_id)
    return table_id


def get_record_table(table_id: str) -> RecordTable | None:
    """Load a record table with its columns and rows."""
    init_db()
    conn = _get_connection()
    row = conn.execute("SELECT * FROM record_tables WHERE id = ?", (table_id,)).fetchone()
    if row is None:
        return None

    columns = [
        RecordColumn(id=c["id"], name=c["name"], type=c["type"], position=c["position"])
        for c in conn.execute(
            "SELECT * FROM record_table_columns WHERE table_id = ? ORDER BY position",
            (table_id,),
        )
    ]
    rows = [
        {"id": r["id"], "position": r["position"], "data": json.loads(r["data"] or "{}")}
        for r in conn.execute(
            "SELECT * FROM record_table_rows WHERE table_id = ? ORDER BY position",
            (table_id,),
        )
    ]
    return RecordTable(id=row["id"], page_id=row["page_id"], title=row["title"], columns=columns, rows=rows)
