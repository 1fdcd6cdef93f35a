# ABOUTME: Public API for the shelfshift library database layer.
# ABOUTME: Exports connection management, catalog operations, backups, and record types.

from shelfshift.db.backup import BackupError, BackupManager
from shelfshift.db.catalog import EntryNotFoundError, LibraryCatalog
from shelfshift.db.connection import (
    DEFAULT_BACKUP_DIR,
    DEFAULT_DB_PATH,
    open_catalog,
    open_library,
)
from shelfshift.db.mapping import (
    ChapterReference,
    Collection,
    ContentLink,
    LibraryEntry,
    LibraryFlag,
    ProgressMarker,
    StoredChapter,
    StoredContent,
)

__all__ = [
    "DEFAULT_BACKUP_DIR",
    "DEFAULT_DB_PATH",
    "BackupError",
    "BackupManager",
    "ChapterReference",
    "Collection",
    "ContentLink",
    "EntryNotFoundError",
    "LibraryCatalog",
    "LibraryEntry",
    "LibraryFlag",
    "ProgressMarker",
    "StoredChapter",
    "StoredContent",
    "open_catalog",
    "open_library",
]
