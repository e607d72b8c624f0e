"""Project storage: projects, generated files and conversation turns."""

import json
import logging
import threading
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from vibe.db.connection import Database
from vibe.providers.models import ExistingFile, GeneratedFile, Turn, TurnRole

logger = logging.getLogger(__name__)


@dataclass
class ProjectRecord:
    """A project row."""

    id: str
    user_id: str
    name: str
    framework: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class TurnRecord:
    """A stored conversation turn."""

    id: int
    project_id: str
    role: TurnRole
    content: str
    metadata: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None

    def to_turn(self) -> Turn:
        return Turn(role=self.role, content=self.content)


def _parse_datetime(value: str | None) -> datetime | None:
    """Parse SQLite datetime string."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace(" ", "T"))
    except ValueError:
        return None


def _row_to_project(row) -> ProjectRecord:
    return ProjectRecord(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        framework=row["framework"],
        created_at=_parse_datetime(row["created_at"]),
        updated_at=_parse_datetime(row["updated_at"]),
    )


def _row_to_turn(row) -> TurnRecord:
    return TurnRecord(
        id=row["id"],
        project_id=row["project_id"],
        role=TurnRole(row["role"]),
        content=row["content"],
        metadata=json.loads(row["metadata"]) if row["metadata"] else None,
        created_at=_parse_datetime(row["created_at"]),
    )


class ProjectStore:
    """SQL access to projects and everything a generation run reads or writes.

    Writes are serialized with a lock; file upserts for one run are applied in
    a single transaction.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = threading.Lock()

    def create_project(
        self,
        user_id: str,
        name: str,
        framework: str = "react",
        project_id: Optional[str] = None,
    ) -> ProjectRecord:
        """Create a project owned by `user_id`."""
        project_id = project_id or str(uuid.uuid4())
        with self._lock, self._db.transaction():
            self._db.execute(
                "INSERT INTO projects (id, user_id, name, framework) VALUES (?, ?, ?, ?)",
                (project_id, user_id, name, framework),
            )
        project = self.get_owned_project(project_id, user_id)
        if project is None:
            raise RuntimeError("Failed to get project after insert")
        return project

    def get_owned_project(self, project_id: str, user_id: str) -> Optional[ProjectRecord]:
        """Get a project only if it belongs to `user_id`.

        Returns:
            ProjectRecord if found and owned, None otherwise.
        """
        row = self._db.execute(
            """
            SELECT id, user_id, name, framework, created_at, updated_at
            FROM projects
            WHERE id = ? AND user_id = ?
            """,
            (project_id, user_id),
        ).fetchone()
        return _row_to_project(row) if row else None

    def list_files(self, project_id: str) -> list[ExistingFile]:
        """All files of a project, ordered by path."""
        cursor = self._db.execute(
            "SELECT path, content, language FROM files WHERE project_id = ? ORDER BY path",
            (project_id,),
        )
        return [
            ExistingFile(path=row["path"], content=row["content"], language=row["language"])
            for row in cursor.fetchall()
        ]

    def get_file(self, project_id: str, path: str) -> Optional[ExistingFile]:
        row = self._db.execute(
            "SELECT path, content, language FROM files WHERE project_id = ? AND path = ?",
            (project_id, path),
        ).fetchone()
        if not row:
            return None
        return ExistingFile(path=row["path"], content=row["content"], language=row["language"])

    def recent_turns(self, project_id: str, limit: int) -> list[TurnRecord]:
        """The latest `limit` turns, newest first."""
        cursor = self._db.execute(
            """
            SELECT id, project_id, role, content, metadata, created_at
            FROM messages
            WHERE project_id = ?
            ORDER BY id DESC
            LIMIT ?
            """,
            (project_id, limit),
        )
        return [_row_to_turn(row) for row in cursor.fetchall()]

    def list_turns(self, project_id: str) -> list[TurnRecord]:
        """All turns of a project in chronological order."""
        cursor = self._db.execute(
            """
            SELECT id, project_id, role, content, metadata, created_at
            FROM messages
            WHERE project_id = ?
            ORDER BY id ASC
            """,
            (project_id,),
        )
        return [_row_to_turn(row) for row in cursor.fetchall()]

    def _get_turn(self, turn_id: int) -> TurnRecord:
        row = self._db.execute(
            """
            SELECT id, project_id, role, content, metadata, created_at
            FROM messages WHERE id = ?
            """,
            (turn_id,),
        ).fetchone()
        return _row_to_turn(row)

    def _insert_turn(
        self,
        project_id: str,
        role: TurnRole,
        content: str,
        metadata: Optional[dict[str, Any]],
    ) -> int:
        cursor = self._db.execute(
            "INSERT INTO messages (project_id, role, content, metadata) VALUES (?, ?, ?, ?)",
            (project_id, role.value, content, json.dumps(metadata) if metadata else None),
        )
        return int(cursor.lastrowid)

    def _upsert_files(self, project_id: str, files: Iterable[GeneratedFile]) -> int:
        params = [(project_id, f.path, f.content, f.language) for f in files]
        self._db.executemany(
            """
            INSERT INTO files (project_id, path, content, language)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(project_id, path) DO UPDATE SET
                content = excluded.content,
                language = excluded.language,
                updated_at = datetime('now')
            """,
            params,
        )
        return len(params)

    def _touch_project(self, project_id: str) -> None:
        self._db.execute(
            "UPDATE projects SET updated_at = datetime('now') WHERE id = ?",
            (project_id,),
        )

    def add_turn(
        self,
        project_id: str,
        role: TurnRole,
        content: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> TurnRecord:
        """Append a turn to the project's conversation."""
        with self._lock, self._db.transaction():
            turn_id = self._insert_turn(project_id, role, content, metadata)
        return self._get_turn(turn_id)

    def upsert_files(self, project_id: str, files: Iterable[GeneratedFile]) -> int:
        """Create or overwrite files by path, all or nothing.

        Returns:
            Number of files written.
        """
        with self._lock, self._db.transaction():
            count = self._upsert_files(project_id, files)
        logger.debug(f"Upserted {count} file(s) for project {project_id}")
        return count

    def touch_project(self, project_id: str) -> None:
        """Mark the project as modified now."""
        with self._lock, self._db.transaction():
            self._touch_project(project_id)

    def save_generation(
        self,
        project_id: str,
        files: Iterable[GeneratedFile],
        content: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> TurnRecord:
        """Store a finished run in one transaction.

        Upserts the files, appends the assistant turn and touches the project.
        Either everything is written or nothing is.

        Returns:
            The stored assistant turn.
        """
        with self._lock, self._db.transaction():
            count = self._upsert_files(project_id, files)
            turn_id = self._insert_turn(project_id, TurnRole.ASSISTANT, content, metadata)
            self._touch_project(project_id)
        logger.info(f"Saved generation for project {project_id}: {count} file(s)")
        return self._get_turn(turn_id)
