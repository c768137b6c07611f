"""Shared SQLite helpers: WAL mode, row_factory defaults, store error mapping."""

import sqlite3
from contextlib import contextmanager
from pathlib import Path

from errors import StoreError


def wal_connect(db_path: str | Path, row_factory: bool = False) -> sqlite3.Connection:
    """Open SQLite connection with WAL journal mode.

    Args:
        db_path: Path to database file.
        row_factory: If True, set conn.row_factory = sqlite3.Row.
    """
    conn = sqlite3.connect(str(db_path))
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")
    if row_factory:
        conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def store_errors(operation: str):
    """Re-raise sqlite failures as StoreError tagged with the operation name."""
    try:
        yield
    except sqlite3.Error as e:
        raise StoreError(f"{operation} failed: {e}") from e
