from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest


@pytest.fixture
def temp_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Create isolated data directory."""
    data_dir = tmp_path / "folio-data"
    data_dir.mkdir()
    monkeypatch.setenv("FOLIO_DATA_DIR", str(data_dir))

    from folio.storage import db

    db.close_connection()

    yield data_dir

    db.close_connection()


@pytest.fixture
def initialized_db(temp_data_dir: Path) -> Path:
    """Initialize the database."""
    from folio.storage import db

    db.init_db()
    return temp_data_dir


@pytest.fixture
def test_page(initialized_db: Path) -> str:
    """Create a test page."""
    from folio.storage import pages_db

    return pages_db.create_page("Test Page").id
