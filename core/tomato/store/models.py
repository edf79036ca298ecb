"""
Domain records for projects, tasks and pomodoro sessions.

Records carry stable UUIDs so a reference typed in one message keeps
pointing at the same row in the next one. Timestamps are kept as
datetime objects in memory and ISO-8601 strings on disk.
"""

import uuid
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Optional


class TaskStatus(str, Enum):
    """Progress of a task. Driven by the user, never by sessions."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class SessionStatus(str, Enum):
    """State of a pomodoro session. COMPLETED is terminal."""
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    # Deadlines sometimes arrive as full timestamps from the classifier
    return date.fromisoformat(value[:10])


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class Project:
    """A named container of tasks. Names are not unique."""
    id: str
    name: str
    description: str
    deadline: Optional[date]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        name: str,
        description: str = "",
        deadline: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> "Project":
        """Factory method to create a new project with generated UUID."""
        now = now or datetime.now()
        return cls(
            id=str(uuid.uuid4()),
            name=name,
            description=description,
            deadline=deadline,
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "deadline": _iso(self.deadline),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description") or "",
            deadline=_parse_date(data.get("deadline")),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    @property
    def display_name(self) -> str:
        return self.name


@dataclass
class Task:
    """A unit of work owned by exactly one project."""
    id: str
    project_id: str
    title: str
    description: str
    status: TaskStatus
    estimated_minutes: int
    deadline: Optional[date]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def create(
        cls,
        project_id: str,
        title: str,
        description: str = "",
        estimated_minutes: int = 25,
        deadline: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> "Task":
        """Factory method to create a new pending task with generated UUID."""
        now = now or datetime.now()
        return cls(
            id=str(uuid.uuid4()),
            project_id=project_id,
            title=title,
            description=description,
            status=TaskStatus.PENDING,
            estimated_minutes=estimated_minutes,
            deadline=deadline,
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "project_id": self.project_id,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "estimated_minutes": self.estimated_minutes,
            "deadline": _iso(self.deadline),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Task":
        return cls(
            id=data["id"],
            project_id=data["project_id"],
            title=data["title"],
            description=data.get("description") or "",
            status=TaskStatus(data["status"]),
            estimated_minutes=int(data.get("estimated_minutes") or 0),
            deadline=_parse_date(data.get("deadline")),
            created_at=datetime.fromisoformat(data["created_at"]),
            updated_at=datetime.fromisoformat(data["updated_at"]),
        )

    @property
    def display_name(self) -> str:
        return self.title


@dataclass
class Session:
    """
    One timed work/break cycle on a task.

    remaining_work_minutes is the work budget for the current active
    interval. It is rewritten only when the session is paused.
    """
    id: str
    task_id: str
    work_minutes: int
    break_minutes: int
    status: SessionStatus
    start_time: datetime
    remaining_work_minutes: int
    pause_time: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @classmethod
    def create(
        cls,
        task_id: str,
        work_minutes: int,
        break_minutes: int,
        now: datetime,
    ) -> "Session":
        """Factory method for a freshly started, active session."""
        return cls(
            id=str(uuid.uuid4()),
            task_id=task_id,
            work_minutes=work_minutes,
            break_minutes=break_minutes,
            status=SessionStatus.ACTIVE,
            start_time=now,
            remaining_work_minutes=work_minutes,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "task_id": self.task_id,
            "work_minutes": self.work_minutes,
            "break_minutes": self.break_minutes,
            "status": self.status.value,
            "start_time": self.start_time.isoformat(),
            "remaining_work_minutes": self.remaining_work_minutes,
            "pause_time": _iso(self.pause_time),
            "completed_at": _iso(self.completed_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        return cls(
            id=data["id"],
            task_id=data["task_id"],
            work_minutes=int(data["work_minutes"]),
            break_minutes=int(data["break_minutes"]),
            status=SessionStatus(data["status"]),
            start_time=datetime.fromisoformat(data["start_time"]),
            remaining_work_minutes=int(data["remaining_work_minutes"]),
            pause_time=_parse_dt(data.get("pause_time")),
            completed_at=_parse_dt(data.get("completed_at")),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status == SessionStatus.COMPLETED
