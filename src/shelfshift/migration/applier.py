# ABOUTME: Applies finished migration searches to the library in one atomic write.
# ABOUTME: Backs up first, then links or replaces entries and carries read progress over.

import logging
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone

from shelfshift.db.backup import BackupError, BackupManager
from shelfshift.db.catalog import LibraryCatalog
from shelfshift.db.mapping import (
    ContentLink,
    LibraryEntry,
    ProgressMarker,
    StoredChapter,
    StoredContent,
)
from shelfshift.migration.notify import LoggingNotifier, Notifier
from shelfshift.migration.state import (
    Found,
    LibraryStrategy,
    LowerChapterStrategy,
    LowerFind,
    MigrationItemState,
)
from shelfshift.sources.filtering import ChapterFilter, KeepAllChapters
from shelfshift.sources.types import TaggedHighlight, order_key

logger = logging.getLogger(__name__)

BACKUP_LABEL = "PreMigration"


@dataclass
class MigrationResult:
    """Summary of a migration run."""

    success: bool = False
    linked: int = 0
    replaced: int = 0
    skipped: int = 0
    progress_carried: int = 0
    backup_path: str | None = None
    error: str | None = None

    def __bool__(self) -> bool:
        return self.success


@dataclass
class _RunCounts:
    linked: int = 0
    replaced: int = 0
    skipped: int = 0
    progress_carried: int = 0
    touched: list[str] = field(default_factory=list)


class MigrationApplier:
    """Carries terminal search states over to the library.

    A full backup must succeed before anything is written. All item
    mutations then happen inside one catalog write scope, so a failure on
    any item leaves the library exactly as it was.
    """

    def __init__(
        self,
        catalog: LibraryCatalog,
        backup: BackupManager,
        *,
        chapter_filter: ChapterFilter | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._catalog = catalog
        self._backup = backup
        self._filter = chapter_filter or KeepAllChapters()
        self._notifier = notifier or LoggingNotifier()

    def apply(
        self,
        states: Mapping[str, MigrationItemState],
        library_strategy: LibraryStrategy,
        lower_chapter_strategy: LowerChapterStrategy,
    ) -> MigrationResult:
        """Migrate every item whose state calls for it.

        Args:
            states: Item state per library entry id.
            library_strategy: Link the new content or replace the entry.
            lower_chapter_strategy: Whether matches behind the tracked
                chapter are migrated or skipped.

        Returns:
            MigrationResult; success is False when the backup or the write
            transaction failed, in which case nothing was changed.
        """
        result = MigrationResult()
        self._notifier.loading = True
        try:
            self._notifier.info("Migration in progress. Your data is being backed up.")
            try:
                result.backup_path = str(self._backup.save(BACKUP_LABEL))
            except BackupError as exc:
                logger.error("Pre-migration backup failed: %s", exc)
                self._notifier.error(str(exc))
                result.error = str(exc)
                return result

            counts = _RunCounts()
            try:
                with self._catalog.write():
                    for entry_id, state in states.items():
                        self._apply_one(
                            entry_id, state, library_strategy, lower_chapter_strategy, counts
                        )
            except Exception as exc:
                logger.exception("Migration transaction failed")
                self._notifier.error("Migration failed")
                result.error = str(exc)
                return result

            result.success = True
            result.linked = counts.linked
            result.replaced = counts.replaced
            result.skipped = counts.skipped
            result.progress_carried = counts.progress_carried
            logger.info(
                "Migration complete: %d linked, %d replaced, %d skipped",
                counts.linked,
                counts.replaced,
                counts.skipped,
            )
            self._notifier.info("Migration complete!")
            return result
        finally:
            self._notifier.loading = False

    def _apply_one(
        self,
        entry_id: str,
        state: MigrationItemState,
        library_strategy: LibraryStrategy,
        lower_chapter_strategy: LowerChapterStrategy,
        counts: _RunCounts,
    ) -> None:
        entry = self._catalog.get_entry(entry_id)
        if entry is None or entry.is_deleted:
            logger.debug("Entry %s is gone, skipping", entry_id)
            counts.skipped += 1
            return

        if isinstance(state, Found):
            candidate = state.candidate
        elif isinstance(state, LowerFind) and lower_chapter_strategy is LowerChapterStrategy.MIGRATE:
            candidate = state.candidate
        else:
            counts.skipped += 1
            return

        if library_strategy is LibraryStrategy.LINK:
            if self._link(entry, candidate):
                counts.linked += 1
            else:
                counts.skipped += 1
        else:
            counts.progress_carried += self._replace(entry, candidate)
            counts.replaced += 1

    def _find_or_create(self, highlight: TaggedHighlight) -> StoredContent:
        existing = self._catalog.get_content(highlight.id)
        if existing is not None:
            return existing
        return self._catalog.add_content(StoredContent.from_highlight(highlight))

    def _link(self, entry: LibraryEntry, highlight: TaggedHighlight) -> bool:
        """Link entry to the candidate's content. Returns False when nothing changed."""
        if entry.id == highlight.id:
            return False
        if self._catalog.find_link(entry.id, highlight.id) is not None:
            return False

        content = self._find_or_create(highlight)
        self._catalog.add_link(
            ContentLink(id=uuid.uuid4().hex, entry_id=entry.id, content_id=content.id)
        )
        return True

    def _replace(self, entry: LibraryEntry, highlight: TaggedHighlight) -> int:
        """Replace entry with a new one tracking the candidate's content.

        Returns the number of chapters whose read state was carried over.
        """
        content = self._find_or_create(highlight)
        replacement = LibraryEntry(
            id=content.id,
            content_id=content.id,
            flag=entry.flag,
            date_added=entry.date_added,
            collections=list(entry.collections),
        )

        new_chapters = self._catalog.get_chapters(highlight.identifier)
        read_numbers = self._carry_progress(entry.content_id, new_chapters)
        replacement.unread_count = self._unread_count(new_chapters, read_numbers, highlight)

        # Content links stay with the old entry; the replacement starts without any.
        self._catalog.upsert_entry(replacement)
        if replacement.id != entry.id:
            self._catalog.mark_entry_deleted(entry.id)
        return len(read_numbers)

    def _carry_progress(
        self, old_content_id: str, new_chapters: Sequence[StoredChapter]
    ) -> set[float]:
        """Mark chapters of the new content read where the old content was read.

        Chapters are matched on chapter number alone; volumes are ignored.
        Returns the chapter numbers that were carried over.
        """
        read_numbers: set[float] = set()
        now = datetime.now(timezone.utc).isoformat(timespec="seconds")

        for marker, reference in self._catalog.markers_for_content(old_content_id):
            if not marker.is_completed:
                continue
            number = reference.number
            number_key = order_key(None, number)
            target = next((ch for ch in new_chapters if ch.order_key == number_key), None)
            if target is None:
                continue

            new_reference = target.generate_reference()
            owner = self._catalog.get_content(target.identifier.id)
            if owner is not None and not owner.is_deleted:
                new_reference.content_id = owner.id

            if not new_reference.is_valid:
                logger.warning("Invalid chapter reference %s, progress not carried", new_reference.id)
                continue

            self._catalog.add_reference(new_reference)
            self._catalog.add_marker(
                ProgressMarker(
                    id=new_reference.id,
                    reference_id=new_reference.id,
                    is_completed=True,
                    hidden_in_history=True,
                    is_deleted=False,
                    date_read=now,
                )
            )
            read_numbers.add(number)
        return read_numbers

    def _unread_count(
        self,
        new_chapters: Sequence[StoredChapter],
        read_numbers: set[float],
        highlight: TaggedHighlight,
    ) -> int:
        seen: set[float] = set()
        unread: list[StoredChapter] = []
        for chapter in new_chapters:
            if chapter.number in seen:
                continue
            seen.add(chapter.number)
            if chapter.number not in read_numbers:
                unread.append(chapter)
        return len(self._filter.filter(unread, highlight.identifier))
