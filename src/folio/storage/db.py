"""SQLite storage for pages, blocks and record tables.

One database file under the data directory holds everything. Connections are
thread-local, so the debounced saver's timer threads get their own.

Schema versions:
- v1: pages, blocks
- v2: record_tables, record_table_columns, record_table_rows
"""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from ..errors import DatabaseError
from ..settings import settings

logger = logging.getLogger(__name__)

# Thread-local storage for connections
_local = threading.local()

SCHEMA_VERSION = 2


def _db_path() -> Path:
    """Get the path to the workspace database."""
    base = Path(os.environ.get("FOLIO_DATA_DIR", settings.data_dir))
    return base / "workspace.db"


def _get_connection() -> sqlite3.Connection:
    """Get a thread-local database connection."""
    if not hasattr(_local, "conn") or _local.conn is None:
        db_path = _db_path()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        _local.conn = sqlite3.connect(str(db_path), check_same_thread=False)
        _local.conn.row_factory = sqlite3.Row
        # Enable foreign keys
        _local.conn.execute("PRAGMA foreign_keys = ON")
        # WAL mode for better concurrent access
        _local.conn.execute("PRAGMA journal_mode = WAL")
        _local.initialized = False
    return _local.conn


def close_connection() -> None:
    """Close the thread-local database connection.

    This is primarily used for testing to ensure clean state between tests.
    """
    if hasattr(_local, "conn") and _local.conn is not None:
        try:
            _local.conn.close()
        except sqlite3.Error as e:
            logger.debug("Error closing connection (non-critical): %s", e)
        _local.conn = None
        _local.initialized = False


@contextmanager
def _transaction() -> Iterator[sqlite3.Connection]:
    """Context manager for database transactions."""
    conn = _get_connection()
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise


def _init_schema(conn: sqlite3.Connection) -> None:
    """Create tables and apply migrations up to SCHEMA_VERSION."""
    conn.execute("""
        CREATE TABLE IF NOT EXISTS schema_version (
            version INTEGER NOT NULL
        )
    """)
    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] or 0

    if current >= SCHEMA_VERSION:
        return

    if current < 1:
        _create_v1(conn)
    if current < 2:
        _migrate_v1_to_v2(conn)

    conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
    logger.info("Workspace schema at v%d (was v%d)", SCHEMA_VERSION, current)


def _create_v1(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS pages (
            id TEXT PRIMARY KEY,
            workspace_id TEXT NOT NULL DEFAULT 'default',
            title TEXT NOT NULL DEFAULT 'Untitled',
            type TEXT NOT NULL DEFAULT 'note',
            icon TEXT,
            parent_id TEXT REFERENCES pages(id) ON DELETE SET NULL,
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_archived INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            version INTEGER NOT NULL DEFAULT 1,
            remote_id TEXT
        )
    """)
    # No foreign key on parent_block_id: the editor writes whole pages and a
    # dangling parent is legal (it renders at the root).
    conn.execute("""
        CREATE TABLE IF NOT EXISTS blocks (
            id TEXT PRIMARY KEY,
            page_id TEXT NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
            parent_block_id TEXT,
            type TEXT NOT NULL,
            content TEXT NOT NULL DEFAULT '',
            props TEXT NOT NULL DEFAULT '{}',
            idx INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL,
            version INTEGER NOT NULL DEFAULT 1,
            remote_id TEXT
        )
    """)
    conn.execute("CREATE INDEX IF NOT EXISTS idx_blocks_page ON blocks(page_id, idx)")


def _migrate_v1_to_v2(conn: sqlite3.Connection) -> None:
    conn.execute("""
        CREATE TABLE IF NOT EXISTS record_tables (
            id TEXT PRIMARY KEY,
            page_id TEXT NOT NULL REFERENCES pages(id) ON DELETE CASCADE,
            title TEXT NOT NULL,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS record_table_columns (
            id TEXT PRIMARY KEY,
            table_id TEXT NOT NULL REFERENCES record_tables(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT 'text',
            options TEXT,
            position INTEGER NOT NULL DEFAULT 0
        )
    """)
    conn.execute("""
        CREATE TABLE IF NOT EXISTS record_table_rows (
            id TEXT PRIMARY KEY,
            table_id TEXT NOT NULL REFERENCES record_tables(id) ON DELETE CASCADE,
            data TEXT NOT NULL DEFAULT '{}',
            position INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL,
            updated_at TEXT NOT NULL
        )
    """)


def init_db() -> None:
    """Initialize the database and run migrations (once per connection)."""
    conn = _get_connection()
    if getattr(_local, "initialized", False):
        return
    try:
        with _transaction() as conn:
            _init_schema(conn)
    except sqlite3.Error as e:
        raise DatabaseError(f"Failed to initialize database: {e}", operation="init") from e
    _local.initialized = True
