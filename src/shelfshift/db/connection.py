# ABOUTME: SQLite connection management for the shelfshift library database.
# ABOUTME: Creates or upgrades the schema and hands out catalogs scoped to one connection.

import logging
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from shelfshift.db.catalog import LibraryCatalog
from shelfshift.db.schema import MIGRATIONS, SCHEMA_V1

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path.home() / ".shelfshift" / "library.db"
DEFAULT_BACKUP_DIR = Path.home() / ".shelfshift" / "backups"

# Seconds a BEGIN IMMEDIATE waits for another writer before failing.
BUSY_TIMEOUT = 10.0


def _schema_exists(conn: sqlite3.Connection) -> bool:
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    return cursor.fetchone() is not None


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the newest applied schema version, 0 for an empty database."""
    cursor = conn.execute("SELECT MAX(version) FROM schema_version")
    return cursor.fetchone()[0] or 0


def _apply_migrations(conn: sqlite3.Connection) -> list[int]:
    """Bring the schema up to the newest version.

    A database without a schema_version table gets the base schema first.
    Migrations newer than the stored version then run in order.

    Returns:
        The versions that were applied, oldest first.
    """
    applied: list[int] = []
    if not _schema_exists(conn):
        conn.executescript(SCHEMA_V1)
        applied.append(1)

    current = _get_schema_version(conn)
    for version, sql in MIGRATIONS:
        if version <= current:
            continue
        logger.info("Upgrading library schema to version %d", version)
        conn.executescript(sql)
        applied.append(version)
    return applied


def open_library(path: Path | None = None) -> sqlite3.Connection:
    """Open or create the shelfshift library database.

    Creates the file and its parent directories when missing, then applies
    any pending schema migrations. The connection uses WAL journaling,
    enforces foreign keys, and returns sqlite3.Row rows.

    Args:
        path: Database file. Defaults to ~/.shelfshift/library.db.

    Returns:
        A configured sqlite3.Connection.
    """
    db_path = path or DEFAULT_DB_PATH
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(str(db_path), timeout=BUSY_TIMEOUT)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA foreign_keys=ON")

    applied = _apply_migrations(conn)
    if applied:
        logger.debug("Schema versions applied to %s: %s", db_path, applied)
    return conn


@contextmanager
def open_catalog(path: Path | None = None) -> Iterator[LibraryCatalog]:
    """Open the library and yield a catalog over it; the connection closes on exit."""
    conn = open_library(path)
    try:
        yield LibraryCatalog(conn)
    finally:
        conn.close()
