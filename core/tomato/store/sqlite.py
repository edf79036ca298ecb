"""
SQLite-backed store for projects, tasks, sessions and conversation state.

Implements both core ports plus the CRUD used by the task service. A
connection is opened per call, so one instance can be shared between
request handlers; the database is the only source of truth.
"""

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, Optional

from tomato.config import DB_PATH
from tomato.errors import NotFoundError, StoreFailure, ValidationFailure
from tomato.store.base import SESSION_UPDATABLE_FIELDS, WorkStore
from tomato.store.models import Project, Session, SessionStatus, Task, TaskStatus
from tomato.utils.logging import logger


class SQLiteStore(WorkStore):
    """
    Relational store keyed by record UUIDs.

    Every sqlite3.Error is re-raised as StoreFailure so callers only
    deal with the port's own error type.
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Initialize the store.

        Args:
            db_path: Path to SQLite database. Defaults to ~/.tomato/tomato.db
        """
        if db_path is None:
            DB_PATH.parent.mkdir(parents=True, exist_ok=True)
            db_path = str(DB_PATH)

        self.db_path = db_path
        self._init_db()

    @contextmanager
    def _connect(self, operation: str) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.db_path)
        except sqlite3.Error as e:
            raise StoreFailure(operation, str(e)) from e
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            logger.error(f"Store failure during {operation}: {e}")
            raise StoreFailure(operation, str(e)) from e
        finally:
            conn.close()

    def _init_db(self):
        """Initialize database schema."""
        with self._connect("init") as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS projects (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    deadline TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id TEXT PRIMARY KEY,
                    project_id TEXT NOT NULL REFERENCES projects(id),
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    status TEXT NOT NULL,
                    estimated_minutes INTEGER NOT NULL DEFAULT 25,
                    deadline TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_tasks_project
                ON tasks(project_id)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS sessions (
                    id TEXT PRIMARY KEY,
                    task_id TEXT NOT NULL REFERENCES tasks(id),
                    work_minutes INTEGER NOT NULL,
                    break_minutes INTEGER NOT NULL,
                    status TEXT NOT NULL,
                    start_time TEXT NOT NULL,
                    remaining_work_minutes INTEGER NOT NULL,
                    pause_time TEXT,
                    completed_at TEXT
                )
            """)
            conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_sessions_status
                ON sessions(status)
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS conversation_state (
                    conversation_id TEXT PRIMARY KEY,
                    active_project_id TEXT,
                    active_task_id TEXT,
                    pending_action TEXT,
                    messages TEXT,
                    turn_index INTEGER DEFAULT 0,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            # Databases created before message history was kept
            columns = {row[1] for row in conn.execute("PRAGMA table_info(conversation_state)")}
            if "messages" not in columns:
                conn.execute("ALTER TABLE conversation_state ADD COLUMN messages TEXT")

    # --- Projects ---

    def add_project(self, project: Project) -> None:
        """Insert a project row."""
        data = project.to_dict()
        with self._connect("add_project") as conn:
            conn.execute(
                """
                INSERT INTO projects (id, name, description, deadline, created_at, updated_at)
                VALUES (:id, :name, :description, :deadline, :created_at, :updated_at)
                """,
                data,
            )

    def find_project_by_id(self, project_id: str) -> Optional[Project]:
        with self._connect("find_project_by_id") as conn:
            row = conn.execute(
                "SELECT * FROM projects WHERE id = ?", (project_id,)
            ).fetchone()
            return Project.from_dict(dict(row)) if row else None

    def find_projects_by_name_contains(self, fragment: str) -> list[Project]:
        needle = fragment.casefold()
        return [p for p in self.list_all_projects() if needle in p.name.casefold()]

    def list_all_projects(self) -> list[Project]:
        with self._connect("list_all_projects") as conn:
            rows = conn.execute(
                "SELECT * FROM projects ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
            return [Project.from_dict(dict(row)) for row in rows]

    def delete_project(self, project_id: str) -> int:
        """
        Hard-delete a project, its tasks and their sessions.

        Runs in one transaction. Returns the number of deleted tasks.
        """
        with self._connect("delete_project") as conn:
            exists = conn.execute(
                "SELECT 1 FROM projects WHERE id = ?", (project_id,)
            ).fetchone()
            if not exists:
                raise NotFoundError("project", project_id)
            conn.execute(
                """
                DELETE FROM sessions
                WHERE task_id IN (SELECT id FROM tasks WHERE project_id = ?)
                """,
                (project_id,),
            )
            deleted = conn.execute(
                "DELETE FROM tasks WHERE project_id = ?", (project_id,)
            ).rowcount
            conn.execute("DELETE FROM projects WHERE id = ?", (project_id,))
            return deleted

    # --- Tasks ---

    def add_task(self, task: Task) -> None:
        """Insert a task row. The owning project must exist."""
        data = task.to_dict()
        with self._connect("add_task") as conn:
            owner = conn.execute(
                "SELECT 1 FROM projects WHERE id = ?", (task.project_id,)
            ).fetchone()
            if not owner:
                raise NotFoundError("project", task.project_id)
            conn.execute(
                """
                INSERT INTO tasks (
                    id, project_id, title, description, status,
                    estimated_minutes, deadline, created_at, updated_at
                )
                VALUES (
                    :id, :project_id, :title, :description, :status,
                    :estimated_minutes, :deadline, :created_at, :updated_at
                )
                """,
                data,
            )

    def find_task_by_id(self, task_id: str) -> Optional[Task]:
        with self._connect("find_task_by_id") as conn:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ?", (task_id,)
            ).fetchone()
            return Task.from_dict(dict(row)) if row else None

    def find_tasks_by_title_contains(self, fragment: str) -> list[Task]:
        needle = fragment.casefold()
        return [t for t in self.list_all_tasks() if needle in t.title.casefold()]

    def list_all_tasks(self) -> list[Task]:
        with self._connect("list_all_tasks") as conn:
            rows = conn.execute(
                "SELECT * FROM tasks ORDER BY created_at DESC, rowid DESC"
            ).fetchall()
            return [Task.from_dict(dict(row)) for row in rows]

    def list_tasks(
        self,
        project_id: Optional[str] = None,
        status: Optional[TaskStatus] = None,
    ) -> list[Task]:
        """Tasks filtered by project and/or status, oldest first."""
        clauses = []
        params: list[Any] = []
        if project_id:
            clauses.append("project_id = ?")
            params.append(project_id)
        if status:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect("list_tasks") as conn:
            rows = conn.execute(
                f"SELECT * FROM tasks {where} ORDER BY created_at ASC, rowid ASC",
                params,
            ).fetchall()
            return [Task.from_dict(dict(row)) for row in rows]

    def list_priority_tasks(self, limit: int = 5) -> list[Task]:
        """Unfinished tasks: earliest deadline first, undated last, then oldest."""
        with self._connect("list_priority_tasks") as conn:
            rows = conn.execute(
                """
                SELECT * FROM tasks
                WHERE status != ?
                ORDER BY
                    CASE WHEN deadline IS NULL THEN 1 ELSE 0 END,
                    deadline ASC,
                    created_at ASC
                LIMIT ?
                """,
                (TaskStatus.COMPLETED.value, limit),
            ).fetchall()
            return [Task.from_dict(dict(row)) for row in rows]

    def update_task_status(self, task_id: str, status: TaskStatus, now: datetime) -> None:
        with self._connect("update_task_status") as conn:
            cursor = conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?",
                (status.value, now.isoformat(), task_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("task", task_id)

    def count_tasks_by_status(self) -> dict[str, int]:
        with self._connect("count_tasks_by_status") as conn:
            rows = conn.execute(
                "SELECT status, COUNT(*) AS n FROM tasks GROUP BY status"
            ).fetchall()
            counts = {s.value: 0 for s in TaskStatus}
            counts.update({row["status"]: row["n"] for row in rows})
            return counts

    # --- Sessions ---

    def insert_session(self, session: Session) -> None:
        with self._connect("insert_session") as conn:
            conn.execute(
                """
                INSERT INTO sessions (
                    id, task_id, work_minutes, break_minutes, status,
                    start_time, remaining_work_minutes, pause_time, completed_at
                )
                VALUES (
                    :id, :task_id, :work_minutes, :break_minutes, :status,
                    :start_time, :remaining_work_minutes, :pause_time, :completed_at
                )
                """,
                session.to_dict(),
            )

    def update_session_fields(self, session_id: str, fields: dict[str, Any]) -> None:
        if not fields:
            raise ValidationFailure("fields", "no session fields to update")
        unknown = set(fields) - SESSION_UPDATABLE_FIELDS
        if unknown:
            raise ValidationFailure("fields", f"not updatable: {', '.join(sorted(unknown))}")

        columns = sorted(fields)
        values = [_to_column(fields[c]) for c in columns]
        assignments = ", ".join(f"{c} = ?" for c in columns)
        with self._connect("update_session_fields") as conn:
            cursor = conn.execute(
                f"UPDATE sessions SET {assignments} WHERE id = ?",
                (*values, session_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError("session", session_id)

    def delete_session(self, session_id: str) -> None:
        with self._connect("delete_session") as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
            if cursor.rowcount == 0:
                raise NotFoundError("session", session_id)

    def find_session_by_id(self, session_id: str) -> Optional[Session]:
        with self._connect("find_session_by_id") as conn:
            row = conn.execute(
                "SELECT * FROM sessions WHERE id = ?", (session_id,)
            ).fetchone()
            return Session.from_dict(dict(row)) if row else None

    def list_sessions(
        self,
        status: Optional[SessionStatus] = None,
        task_id: Optional[str] = None,
    ) -> list[Session]:
        clauses = []
        params: list[Any] = []
        if status:
            clauses.append("status = ?")
            params.append(status.value)
        if task_id:
            clauses.append("task_id = ?")
            params.append(task_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect("list_sessions") as conn:
            rows = conn.execute(
                f"SELECT * FROM sessions {where} ORDER BY start_time DESC, rowid DESC",
                params,
            ).fetchall()
            return [Session.from_dict(dict(row)) for row in rows]

    # --- Conversation State ---

    def _upsert_state(self, conversation_id: str, column: str, value: Any) -> None:
        with self._connect(f"set_{column}") as conn:
            conn.execute(
                f"""
                INSERT INTO conversation_state (conversation_id, {column}, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(conversation_id) DO UPDATE SET
                    {column} = excluded.{column},
                    updated_at = CURRENT_TIMESTAMP
                """,
                (conversation_id, value),
            )

    def _get_state(self, conversation_id: str, column: str) -> Any:
        with self._connect(f"get_{column}") as conn:
            row = conn.execute(
                f"SELECT {column} FROM conversation_state WHERE conversation_id = ?",
                (conversation_id,),
            ).fetchone()
            return row[0] if row else None

    def get_turn_index(self, conversation_id: str) -> int:
        """Get current turn index for a conversation."""
        return self._get_state(conversation_id, "turn_index") or 0

    def increment_turn(self, conversation_id: str) -> int:
        """Increment and return the turn index."""
        new_index = self.get_turn_index(conversation_id) + 1
        self._upsert_state(conversation_id, "turn_index", new_index)
        return new_index

    def set_active_project(self, conversation_id: str, project_id: Optional[str]) -> None:
        self._upsert_state(conversation_id, "active_project_id", project_id)

    def get_active_project_id(self, conversation_id: str) -> Optional[str]:
        return self._get_state(conversation_id, "active_project_id")

    def set_active_task(self, conversation_id: str, task_id: Optional[str]) -> None:
        self._upsert_state(conversation_id, "active_task_id", task_id)

    def get_active_task_id(self, conversation_id: str) -> Optional[str]:
        return self._get_state(conversation_id, "active_task_id")

    def set_pending_action(self, conversation_id: str, action: Optional[dict]) -> None:
        """Persist an action awaiting confirmation (None clears it)."""
        payload = json.dumps(action) if action is not None else None
        self._upsert_state(conversation_id, "pending_action", payload)

    def get_pending_action(self, conversation_id: str) -> Optional[dict]:
        raw = self._get_state(conversation_id, "pending_action")
        return json.loads(raw) if raw else None

    def get_messages(self, conversation_id: str) -> list[dict]:
        """Recent chat messages, oldest first."""
        raw = self._get_state(conversation_id, "messages")
        return json.loads(raw) if raw else []

    def append_messages(self, conversation_id: str, messages: list[dict], limit: int) -> None:
        """Append messages, keeping only the newest limit entries."""
        history = (self.get_messages(conversation_id) + list(messages))[-limit:] if limit > 0 else []
        self._upsert_state(conversation_id, "messages", json.dumps(history))

    def clear_conversation(self, conversation_id: str) -> None:
        """Forget all state for a conversation."""
        with self._connect("clear_conversation") as conn:
            conn.execute(
                "DELETE FROM conversation_state WHERE conversation_id = ?",
                (conversation_id,),
            )


def _to_column(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, SessionStatus):
        return value.value
    return value
