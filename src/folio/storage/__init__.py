"""SQLite persistence for pages, blocks and record tables."""

from .db import close_connection, init_db

__all__ = ["close_connection", "init_db"]
