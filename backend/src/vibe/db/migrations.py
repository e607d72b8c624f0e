"""Database migrations and schema management for Vibe."""

from vibe.db.connection import Database

# Schema version for tracking migrations
SCHEMA_VERSION = 1

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Projects, owned by exactly one user
CREATE TABLE IF NOT EXISTS projects (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    name TEXT NOT NULL,
    framework TEXT NOT NULL DEFAULT 'react',  -- 'react', 'vue', 'vanilla'
    created_at TEXT NOT NULL DEFAULT (datetime('now')),
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- Generated files
-- One row per (project, path) pair - upsert semantics
CREATE TABLE IF NOT EXISTS files (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    path TEXT NOT NULL,
    content TEXT NOT NULL,
    language TEXT NOT NULL DEFAULT 'plaintext',
    updated_at TEXT NOT NULL DEFAULT (datetime('now')),
    UNIQUE(project_id, path)
);

-- Conversation turns
-- id gives a strict order even when created_at ties
CREATE TABLE IF NOT EXISTS messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    project_id TEXT NOT NULL REFERENCES projects(id) ON DELETE CASCADE,
    role TEXT NOT NULL,  -- 'user', 'assistant'
    content TEXT NOT NULL,
    metadata TEXT,  -- JSON: provider, filesGenerated, tokens
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_projects_user ON projects(user_id);
CREATE INDEX IF NOT EXISTS idx_files_project ON files(project_id);
CREATE INDEX IF NOT EXISTS idx_messages_project ON messages(project_id, id);
"""


def run_migrations(db: Database) -> None:
    """Run database migrations to set up or upgrade schema.

    Args:
        db: Database connection to run migrations on.
    """
    try:
        result = db.execute(
            "SELECT version FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()
        current_version = result[0] if result else 0
    except Exception:
        # Table doesn't exist yet
        current_version = 0

    if current_version < SCHEMA_VERSION:
        # executescript auto-commits, so the version insert is handled separately
        db.executescript(SCHEMA_SQL)

        db.execute(
            "INSERT OR REPLACE INTO schema_version (version) VALUES (?)",
            (SCHEMA_VERSION,),
        )
        db.commit()
