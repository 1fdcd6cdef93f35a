# ABOUTME: SQL DDL statements for the shelfshift library database schema.
# ABOUTME: Defines content, chapter, entry, progress tables and versioned migrations.

SCHEMA_V1 = """
-- Content known to the library, one row per (provider, content id)
CREATE TABLE contents (
    id           TEXT PRIMARY KEY,
    provider_id  TEXT NOT NULL,
    content_id   TEXT NOT NULL,
    title        TEXT NOT NULL,
    cover        TEXT,
    is_deleted   INTEGER NOT NULL DEFAULT 0
);

CREATE UNIQUE INDEX idx_contents_identity ON contents(provider_id, content_id);

-- Chapter cache; rows may exist for content without a contents row
CREATE TABLE chapters (
    id           TEXT PRIMARY KEY,
    provider_id  TEXT NOT NULL,
    content_id   TEXT NOT NULL,
    chapter_id   TEXT NOT NULL,
    number       REAL NOT NULL,
    volume       REAL,
    order_key    REAL NOT NULL,
    title        TEXT,
    language     TEXT,
    idx          INTEGER NOT NULL DEFAULT 0
);

CREATE INDEX idx_chapters_content ON chapters(provider_id, content_id);

CREATE TABLE collections (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    sort_order  INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE library_entries (
    id            TEXT PRIMARY KEY,
    content_id    TEXT NOT NULL REFERENCES contents(id),
    flag          TEXT NOT NULL DEFAULT 'unknown',
    date_added    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now')),
    unread_count  INTEGER NOT NULL DEFAULT 0,
    is_deleted    INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE entry_collections (
    entry_id       TEXT NOT NULL REFERENCES library_entries(id) ON DELETE CASCADE,
    collection_id  TEXT NOT NULL REFERENCES collections(id) ON DELETE CASCADE,
    PRIMARY KEY (entry_id, collection_id)
);

CREATE TABLE chapter_references (
    id          TEXT PRIMARY KEY,
    chapter_id  TEXT NOT NULL,
    content_id  TEXT REFERENCES contents(id),
    number      REAL NOT NULL,
    volume      REAL
);

CREATE TABLE progress_markers (
    id                 TEXT PRIMARY KEY,
    reference_id       TEXT NOT NULL REFERENCES chapter_references(id),
    is_completed       INTEGER NOT NULL DEFAULT 0,
    hidden_in_history  INTEGER NOT NULL DEFAULT 0,
    is_deleted         INTEGER NOT NULL DEFAULT 0,
    date_read          TEXT
);

CREATE INDEX idx_progress_markers_reference ON progress_markers(reference_id);

-- Schema versioning for future migrations
CREATE TABLE schema_version (
    version    INTEGER NOT NULL,
    applied_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%S', 'now'))
);

INSERT INTO schema_version (version) VALUES (1);
"""

SCHEMA_V2 = """
-- Content links: extra content an entry was migrated to without replacement
CREATE TABLE content_links (
    id          TEXT PRIMARY KEY,
    entry_id    TEXT NOT NULL REFERENCES library_entries(id),
    content_id  TEXT NOT NULL REFERENCES contents(id),
    is_deleted  INTEGER NOT NULL DEFAULT 0
);

CREATE UNIQUE INDEX idx_content_links_live
    ON content_links(entry_id, content_id) WHERE is_deleted = 0;

INSERT INTO schema_version (version) VALUES (2);
"""

MIGRATIONS: list[tuple[int, str]] = [
    (2, SCHEMA_V2),
]

# Tables in dependency order, used by backup and restore.
LIBRARY_TABLES: tuple[str, ...] = (
    "contents",
    "chapters",
    "collections",
    "library_entries",
    "entry_collections",
    "chapter_references",
    "progress_markers",
    "content_links",
)
