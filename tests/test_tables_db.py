"""Tests for storage/tables_db.py - Record tables behind table blocks."""

from __future__ import annotations

from pathlib import Path

import pytest


class TestCreateRecordTable:
    """Test record table creation."""

    def test_default_columns_and_rows(self, test_page: str) -> None:
        from folio.storage import tables_db

        table_id = tables_db.create_record_table(test_page, "Untitled Database")

        table = tables_db.get_record_table(table_id)
        assert table is not None
        assert table.page_id == test_page
        assert table.title == "Untitled Database"
        assert [c.name for c in table.columns] == ["Name", "Tags"]
        assert all(c.type == "text" for c in table.columns)
        assert len(table.rows) == 3
        assert all(r["data"] == {} for r in table.rows)

    def test_unknown_page(self, initialized_db: Path) -> None:
        from folio.errors import NotFoundError
        from folio.storage import tables_db

        with pytest.raises(NotFoundError):
            tables_db.create_record_table("page-missing", "T")

    def test_get_missing_table(self, initialized_db: Path) -> None:
        from folio.storage import tables_db

        assert tables_db.get_record_table("table-missing") is None

    def test_to_dict(self, test_page: str) -> None:
        from folio.storage import tables_db

        table = tables_db.get_record_table(tables_db.create_record_table(test_page, "T"))
        data = table.to_dict()

        assert data["title"] == "T"
        assert [c["name"] for c in data["columns"]] == ["Name", "Tags"]
        assert len(data["rows"]) == 3
