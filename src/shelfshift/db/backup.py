# ABOUTME: Full-library JSON snapshots taken before destructive operations.
# ABOUTME: BackupManager saves, lists, and restores snapshots of every library table.

import json
import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from shelfshift.db.catalog import LibraryCatalog
from shelfshift.db.schema import LIBRARY_TABLES

logger = logging.getLogger(__name__)

BACKUP_FORMAT_VERSION = 1
_SUFFIX = ".json"


class BackupError(Exception):
    """Raised when a snapshot cannot be written or restored."""


def _restorable_links(
    links: list[dict[str, Any]],
    entries: list[dict[str, Any]],
    contents: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Keep only content links whose entry and content are both in the snapshot."""
    entry_ids = {row["id"] for row in entries}
    content_ids = {row["id"] for row in contents}
    kept = []
    for link in links:
        if link["entry_id"] in entry_ids and link["content_id"] in content_ids:
            kept.append(link)
        else:
            logger.warning("Dropping content link %s: entry or content missing", link["id"])
    return kept


class BackupManager:
    """Writes and restores JSON snapshots of the library database."""

    def __init__(self, catalog: LibraryCatalog, backup_dir: Path) -> None:
        self._catalog = catalog
        self._backup_dir = backup_dir

    @property
    def backup_dir(self) -> Path:
        return self._backup_dir

    def save(self, label: str) -> Path:
        """Write a snapshot of every library table.

        Args:
            label: Short name used as the file name prefix.

        Returns:
            Path of the written snapshot.

        Raises:
            BackupError: If the tables cannot be read or the file cannot be written.
        """
        now = datetime.now(timezone.utc)
        try:
            tables = {table: self._catalog.dump_table(table) for table in LIBRARY_TABLES}
            document = {
                "version": BACKUP_FORMAT_VERSION,
                "label": label,
                "created_at": now.isoformat(timespec="seconds"),
                "tables": tables,
            }
            self._backup_dir.mkdir(parents=True, exist_ok=True)
            path = self._backup_dir / f"{label}-{now.strftime('%Y%m%dT%H%M%S%f')}{_SUFFIX}"
            path.write_text(json.dumps(document, indent=2), encoding="utf-8")
        except (OSError, sqlite3.Error, TypeError, ValueError) as exc:
            raise BackupError(f"Backup '{label}' failed: {exc}") from exc

        logger.info("Backup written to %s", path)
        return path

    def list_backups(self) -> list[Path]:
        """Return snapshot files, newest first."""
        if not self._backup_dir.exists():
            return []
        return sorted(
            self._backup_dir.glob(f"*{_SUFFIX}"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )

    def restore(self, path: Path) -> dict[str, int]:
        """Replace the library contents with a snapshot.

        Runs in a single write scope: either the whole snapshot is restored
        or nothing changes.

        Returns:
            Number of rows restored per table.

        Raises:
            BackupError: If the snapshot is unreadable, has an unknown format
                version, or does not fit the current schema.
        """
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise BackupError(f"Cannot read backup {path}: {exc}") from exc

        if not isinstance(document, dict) or document.get("version") != BACKUP_FORMAT_VERSION:
            raise BackupError(f"Unsupported backup format in {path}")

        tables: dict[str, list[dict[str, Any]]] = {
            table: document.get("tables", {}).get(table, []) for table in LIBRARY_TABLES
        }
        tables["content_links"] = _restorable_links(
            tables["content_links"], tables["library_entries"], tables["contents"]
        )

        counts: dict[str, int] = {}
        try:
            with self._catalog.write():
                for table in reversed(LIBRARY_TABLES):
                    self._catalog.clear_table(table)
                for table in LIBRARY_TABLES:
                    counts[table] = self._catalog.load_table(table, tables[table])
        except sqlite3.Error as exc:
            raise BackupError(f"Restore from {path} failed: {exc}") from exc

        logger.info("Restored backup %s", path)
        return counts
