"""
Store ports consumed by the resolver and the lifecycle engine.

The core never talks to a database directly. It reads projects and tasks
through StoreQueryPort and reads/writes session rows through
SessionStorePort. Every method operates on one row or returns an ordered
collection (newest first) with created_at available for tie-breaking.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from tomato.store.models import Project, Session, SessionStatus, Task

# Session columns that may be changed after insert. start_time is
# included because resume re-bases the active interval on it.
SESSION_UPDATABLE_FIELDS = frozenset({
    "work_minutes",
    "break_minutes",
    "status",
    "remaining_work_minutes",
    "start_time",
    "pause_time",
    "completed_at",
})


class StoreQueryPort(ABC):
    """Read-only access to projects and tasks."""

    @abstractmethod
    def find_project_by_id(self, project_id: str) -> Optional[Project]:
        """Get a project by ID."""

    @abstractmethod
    def find_projects_by_name_contains(self, fragment: str) -> list[Project]:
        """Projects whose name contains fragment, case-insensitive, newest first."""

    @abstractmethod
    def list_all_projects(self) -> list[Project]:
        """All projects, newest first."""

    @abstractmethod
    def find_task_by_id(self, task_id: str) -> Optional[Task]:
        """Get a task by ID."""

    @abstractmethod
    def find_tasks_by_title_contains(self, fragment: str) -> list[Task]:
        """Tasks whose title contains fragment, case-insensitive, newest first."""

    @abstractmethod
    def list_all_tasks(self) -> list[Task]:
        """All tasks, newest first."""


class SessionStorePort(ABC):
    """Single-row persistence for pomodoro sessions."""

    @abstractmethod
    def insert_session(self, session: Session) -> None:
        """Persist a new session row."""

    @abstractmethod
    def update_session_fields(self, session_id: str, fields: dict[str, Any]) -> None:
        """
        Update a subset of columns on one session.

        Raises ValidationFailure for columns outside
        SESSION_UPDATABLE_FIELDS and NotFoundError for a missing row.
        """

    @abstractmethod
    def delete_session(self, session_id: str) -> None:
        """Remove a session row."""

    @abstractmethod
    def find_session_by_id(self, session_id: str) -> Optional[Session]:
        """Get a session by ID."""

    @abstractmethod
    def list_sessions(
        self,
        status: Optional[SessionStatus] = None,
        task_id: Optional[str] = None,
    ) -> list[Session]:
        """Sessions filtered by status and/or task, by start_time descending."""


class WorkStore(StoreQueryPort, SessionStorePort):
    """Both ports together, as the lifecycle engine needs them."""
