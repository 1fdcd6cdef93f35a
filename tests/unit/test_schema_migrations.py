# ABOUTME: Unit tests for the library schema and its migration runner.
# ABOUTME: Validates fresh creation, v1 upgrades, idempotence, and key constraints.

import sqlite3
from pathlib import Path

import pytest

from shelfshift.db.connection import (
    _apply_migrations,
    _get_schema_version,
    open_catalog,
    open_library,
)
from shelfshift.db.schema import LIBRARY_TABLES, MIGRATIONS, SCHEMA_V1


def _tables(conn: sqlite3.Connection) -> set[str]:
    cursor = conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
    return {row[0] for row in cursor.fetchall()}


class TestFreshDatabase:
    """Tests for a newly created library database."""

    def test_fresh_db_has_latest_version(self, db_path: Path) -> None:
        conn = open_library(db_path)
        version = _get_schema_version(conn)
        conn.close()
        assert version == MIGRATIONS[-1][0]

    def test_all_library_tables_exist(self, db_path: Path) -> None:
        conn = open_library(db_path)
        assert set(LIBRARY_TABLES) <= _tables(conn)
        conn.close()

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        path = tmp_path / "nested" / "dir" / "library.db"
        conn = open_library(path)
        conn.close()
        assert path.exists()

    def test_foreign_keys_enabled(self, db_path: Path) -> None:
        conn = open_library(db_path)
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
        conn.close()

    def test_entry_collections_cascade_on_entry_delete(self, db_path: Path) -> None:
        conn = open_library(db_path)
        conn.execute(
            "INSERT INTO contents (id, provider_id, content_id, title) "
            "VALUES ('a||bp', 'a', 'bp', 'Blue Period')"
        )
        conn.execute("INSERT INTO library_entries (id, content_id) VALUES ('a||bp', 'a||bp')")
        conn.execute("INSERT INTO collections (id, name) VALUES ('fav', 'Favourites')")
        conn.execute("INSERT INTO entry_collections (entry_id, collection_id) VALUES ('a||bp', 'fav')")
        conn.commit()

        conn.execute("DELETE FROM library_entries WHERE id = 'a||bp'")
        conn.commit()

        assert conn.execute("SELECT COUNT(*) FROM entry_collections").fetchone()[0] == 0
        conn.close()

    def test_content_identity_is_unique(self, db_path: Path) -> None:
        conn = open_library(db_path)
        conn.execute(
            "INSERT INTO contents (id, provider_id, content_id, title) "
            "VALUES ('a||bp', 'a', 'bp', 'Blue Period')"
        )
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO contents (id, provider_id, content_id, title) "
                "VALUES ('other', 'a', 'bp', 'Blue Period')"
            )
        conn.close()


class TestMigrations:
    """Tests for the migration runner."""

    def test_migrations_list_is_ordered(self) -> None:
        versions = [v for v, _ in MIGRATIONS]
        assert versions == sorted(versions)
        assert len(versions) == len(set(versions))

    def test_v1_database_is_upgraded(self, db_path: Path) -> None:
        """A database created at version 1 gains the content_links table."""
        conn = sqlite3.connect(str(db_path))
        conn.executescript(SCHEMA_V1)
        conn.close()

        conn = open_library(db_path)
        assert _get_schema_version(conn) == 2
        assert "content_links" in _tables(conn)
        conn.close()

    def test_reopening_is_idempotent(self, db_path: Path) -> None:
        open_library(db_path).close()
        conn = open_library(db_path)
        assert _apply_migrations(conn) == []
        rows = conn.execute("SELECT version FROM schema_version ORDER BY version").fetchall()
        conn.close()
        assert [row[0] for row in rows] == [1, 2]

    def test_runner_reports_applied_versions(self, db_path: Path) -> None:
        conn = sqlite3.connect(str(db_path))
        assert _apply_migrations(conn) == [1, 2]
        assert _apply_migrations(conn) == []
        conn.close()


class TestOpenCatalog:
    """Tests for the open_catalog context manager."""

    def test_yields_catalog_and_closes(self, db_path: Path) -> None:
        with open_catalog(db_path) as catalog:
            assert catalog.list_entries() == []
            conn = catalog.connection
        with pytest.raises(sqlite3.ProgrammingError):
            conn.execute("SELECT 1")
