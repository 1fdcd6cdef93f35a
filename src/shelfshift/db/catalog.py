# ABOUTME: Persistence operations for the shelfshift library catalog.
# ABOUTME: Primary-key lookups, overwrite/merge upserts, and a scoped atomic write region.

import sqlite3
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from typing import Any

from shelfshift.db.mapping import (
    ChapterReference,
    Collection,
    ContentLink,
    LibraryEntry,
    ProgressMarker,
    StoredChapter,
    StoredContent,
    row_to_chapter,
    row_to_content,
    row_to_entry,
    row_to_link,
    row_to_marker,
    row_to_reference,
)
from shelfshift.sources.types import ContentIdentifier


class EntryNotFoundError(Exception):
    """Raised when a library entry id does not exist."""


class LibraryCatalog:
    """Wraps a sqlite3 connection and provides typed access to the library tables.

    Every mutating method runs inside write(). Calls made while an outer
    write() scope is open join that scope, so a whole migration commits or
    rolls back as one unit.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._write_depth = 0

    @property
    def connection(self) -> sqlite3.Connection:
        return self._conn

    @property
    def in_write(self) -> bool:
        return self._write_depth > 0

    @contextmanager
    def write(self) -> Iterator[None]:
        """Open an exclusive write scope.

        The outermost scope begins an immediate transaction, commits on a
        clean exit, and rolls back if anything raises. Nested scopes are
        part of the outermost one.
        """
        if self._write_depth:
            self._write_depth += 1
            try:
                yield
            finally:
                self._write_depth -= 1
            return

        self._conn.execute("BEGIN IMMEDIATE")
        self._write_depth = 1
        try:
            yield
        except BaseException:
            self._conn.rollback()
            raise
        else:
            self._conn.commit()
        finally:
            self._write_depth = 0

    def _upsert(self, table: str, row: dict[str, Any], *, merge: bool = False) -> None:
        """Insert a row keyed by id, or update the existing one.

        Overwrite replaces every column. Merge keeps existing values where
        the new row has None.
        """
        columns = ", ".join(row)
        placeholders = ", ".join("?" for _ in row)
        if merge:
            updates = ", ".join(
                f"{col} = COALESCE(excluded.{col}, {col})" for col in row if col != "id"
            )
        else:
            updates = ", ".join(f"{col} = excluded.{col}" for col in row if col != "id")
        with self.write():
            self._conn.execute(
                f"INSERT INTO {table} ({columns}) VALUES ({placeholders}) "
                f"ON CONFLICT(id) DO UPDATE SET {updates}",
                list(row.values()),
            )

    # --- Contents ---

    def get_content(self, content_id: str) -> StoredContent | None:
        """Retrieve stored content by its composite id."""
        cursor = self._conn.execute("SELECT * FROM contents WHERE id = ?", (content_id,))
        row = cursor.fetchone()
        return row_to_content(row) if row else None

    def add_content(self, content: StoredContent) -> StoredContent:
        """Insert or merge a content record and return it."""
        self._upsert(
            "contents",
            {
                "id": content.id,
                "provider_id": content.provider_id,
                "content_id": content.content_id,
                "title": content.title,
                "cover": content.cover,
                "is_deleted": int(content.is_deleted),
            },
            merge=True,
        )
        return content

    # --- Chapters ---

    def store_chapters(
        self, identifier: ContentIdentifier, chapters: Iterable[StoredChapter]
    ) -> int:
        """Replace the cached chapters of a content. Returns the number written.

        Chapters the provider no longer lists are dropped from the cache.
        """
        count = 0
        with self.write():
            self._conn.execute(
                "DELETE FROM chapters WHERE provider_id = ? AND content_id = ?",
                (identifier.provider_id, identifier.content_id),
            )
            for chapter in chapters:
                self._upsert(
                    "chapters",
                    {
                        "id": chapter.id,
                        "provider_id": chapter.provider_id,
                        "content_id": chapter.content_id,
                        "chapter_id": chapter.chapter_id,
                        "number": chapter.number,
                        "volume": chapter.volume,
                        "order_key": chapter.order_key,
                        "title": chapter.title,
                        "language": chapter.language,
                        "idx": chapter.index,
                    },
                )
                count += 1
        return count

    def get_chapters(self, identifier: ContentIdentifier) -> list[StoredChapter]:
        """Return cached chapters of a content, newest first."""
        cursor = self._conn.execute(
            "SELECT * FROM chapters WHERE provider_id = ? AND content_id = ? "
            "ORDER BY idx, order_key DESC",
            (identifier.provider_id, identifier.content_id),
        )
        return [row_to_chapter(row) for row in cursor.fetchall()]

    def latest_stored_chapter(self, identifier: ContentIdentifier) -> StoredChapter | None:
        """Return the newest cached chapter of a content, if any."""
        cursor = self._conn.execute(
            "SELECT * FROM chapters WHERE provider_id = ? AND content_id = ? "
            "ORDER BY idx, order_key DESC LIMIT 1",
            (identifier.provider_id, identifier.content_id),
        )
        row = cursor.fetchone()
        return row_to_chapter(row) if row else None

    def stored_chapter_count(self, identifier: ContentIdentifier) -> int:
        cursor = self._conn.execute(
            "SELECT COUNT(*) FROM chapters WHERE provider_id = ? AND content_id = ?",
            (identifier.provider_id, identifier.content_id),
        )
        return cursor.fetchone()[0]

    # --- Collections ---

    def add_collection(self, collection: Collection) -> None:
        self._upsert(
            "collections",
            {"id": collection.id, "name": collection.name, "sort_order": collection.order},
        )

    def list_collections(self) -> list[Collection]:
        cursor = self._conn.execute("SELECT * FROM collections ORDER BY sort_order, name")
        return [
            Collection(id=row["id"], name=row["name"], order=row["sort_order"])
            for row in cursor.fetchall()
        ]

    # --- Library entries ---

    def _entry_collections(self, entry_id: str) -> list[str]:
        cursor = self._conn.execute(
            "SELECT collection_id FROM entry_collections WHERE entry_id = ? "
            "ORDER BY collection_id",
            (entry_id,),
        )
        return [row[0] for row in cursor.fetchall()]

    def get_entry(self, entry_id: str) -> LibraryEntry | None:
        """Retrieve a library entry by id, including soft-deleted entries."""
        cursor = self._conn.execute("SELECT * FROM library_entries WHERE id = ?", (entry_id,))
        row = cursor.fetchone()
        return row_to_entry(row, self._entry_collections(entry_id)) if row else None

    def list_entries(self, *, include_deleted: bool = False) -> list[LibraryEntry]:
        """Return library entries ordered by their content title."""
        sql = (
            "SELECT e.* FROM library_entries e "
            "LEFT JOIN contents c ON c.id = e.content_id "
        )
        if not include_deleted:
            sql += "WHERE e.is_deleted = 0 "
        sql += "ORDER BY c.title, e.id"
        cursor = self._conn.execute(sql)
        return [
            row_to_entry(row, self._entry_collections(row["id"])) for row in cursor.fetchall()
        ]

    def upsert_entry(self, entry: LibraryEntry) -> None:
        """Insert or overwrite a library entry, replacing its collection set."""
        row: dict[str, Any] = {
            "id": entry.id,
            "content_id": entry.content_id,
            "flag": entry.flag.value,
            "unread_count": entry.unread_count,
            "is_deleted": int(entry.is_deleted),
        }
        if entry.date_added is not None:
            row["date_added"] = entry.date_added
        with self.write():
            self._upsert("library_entries", row)
            self._conn.execute("DELETE FROM entry_collections WHERE entry_id = ?", (entry.id,))
            self._conn.executemany(
                "INSERT INTO entry_collections (entry_id, collection_id) VALUES (?, ?)",
                [(entry.id, collection_id) for collection_id in entry.collections],
            )

    def mark_entry_deleted(self, entry_id: str) -> None:
        """Soft-delete a library entry.

        Raises:
            EntryNotFoundError: If the entry does not exist.
        """
        with self.write():
            cursor = self._conn.execute(
                "UPDATE library_entries SET is_deleted = 1 WHERE id = ?", (entry_id,)
            )
        if cursor.rowcount == 0:
            raise EntryNotFoundError(f"Library entry {entry_id} not found")

    # --- Chapter references and progress markers ---

    def get_reference(self, reference_id: str) -> ChapterReference | None:
        cursor = self._conn.execute(
            "SELECT * FROM chapter_references WHERE id = ?", (reference_id,)
        )
        row = cursor.fetchone()
        return row_to_reference(row) if row else None

    def add_reference(self, reference: ChapterReference) -> None:
        self._upsert(
            "chapter_references",
            {
                "id": reference.id,
                "chapter_id": reference.chapter_id,
                "content_id": reference.content_id,
                "number": reference.number,
                "volume": reference.volume,
            },
            merge=True,
        )

    def get_marker(self, marker_id: str) -> ProgressMarker | None:
        cursor = self._conn.execute("SELECT * FROM progress_markers WHERE id = ?", (marker_id,))
        row = cursor.fetchone()
        return row_to_marker(row) if row else None

    def add_marker(self, marker: ProgressMarker) -> None:
        self._upsert(
            "progress_markers",
            {
                "id": marker.id,
                "reference_id": marker.reference_id,
                "is_completed": int(marker.is_completed),
                "hidden_in_history": int(marker.hidden_in_history),
                "is_deleted": int(marker.is_deleted),
                "date_read": marker.date_read,
            },
            merge=True,
        )

    def markers_for_content(
        self, content_id: str
    ) -> list[tuple[ProgressMarker, ChapterReference]]:
        """Return live progress markers whose reference points at a content."""
        cursor = self._conn.execute(
            "SELECT pm.id AS pm_id, pm.reference_id, pm.is_completed, pm.hidden_in_history, "
            "pm.is_deleted, pm.date_read, cr.* "
            "FROM progress_markers pm "
            "JOIN chapter_references cr ON cr.id = pm.reference_id "
            "WHERE cr.content_id = ? AND pm.is_deleted = 0 "
            "ORDER BY cr.number",
            (content_id,),
        )
        pairs = []
        for row in cursor.fetchall():
            marker = ProgressMarker(
                id=row["pm_id"],
                reference_id=row["reference_id"],
                is_completed=bool(row["is_completed"]),
                hidden_in_history=bool(row["hidden_in_history"]),
                is_deleted=bool(row["is_deleted"]),
                date_read=row["date_read"],
            )
            pairs.append((marker, row_to_reference(row)))
        return pairs

    # --- Content links ---

    def find_link(self, entry_id: str, content_id: str) -> ContentLink | None:
        """Return the live link between an entry and a content, if any."""
        cursor = self._conn.execute(
            "SELECT * FROM content_links "
            "WHERE entry_id = ? AND content_id = ? AND is_deleted = 0",
            (entry_id, content_id),
        )
        row = cursor.fetchone()
        return row_to_link(row) if row else None

    def add_link(self, link: ContentLink) -> None:
        self._upsert(
            "content_links",
            {
                "id": link.id,
                "entry_id": link.entry_id,
                "content_id": link.content_id,
                "is_deleted": int(link.is_deleted),
            },
            merge=True,
        )

    def links_for_entry(self, entry_id: str, *, include_deleted: bool = False) -> list[ContentLink]:
        sql = "SELECT * FROM content_links WHERE entry_id = ?"
        if not include_deleted:
            sql += " AND is_deleted = 0"
        cursor = self._conn.execute(sql + " ORDER BY id", (entry_id,))
        return [row_to_link(row) for row in cursor.fetchall()]

    # --- Raw table access (backup/restore) ---

    def dump_table(self, table: str) -> list[dict[str, Any]]:
        """Return every row of a table as a plain dict."""
        cursor = self._conn.execute(f"SELECT * FROM {table}")
        return [dict(row) for row in cursor.fetchall()]

    def load_table(self, table: str, rows: Iterable[dict[str, Any]]) -> int:
        """Insert plain-dict rows into a table. Returns the number inserted."""
        count = 0
        with self.write():
            for row in rows:
                columns = ", ".join(row)
                placeholders = ", ".join("?" for _ in row)
                self._conn.execute(
                    f"INSERT INTO {table} ({columns}) VALUES ({placeholders})",
                    list(row.values()),
                )
                count += 1
        return count

    def clear_table(self, table: str) -> None:
        with self.write():
            self._conn.execute(f"DELETE FROM {table}")
