"""
Project and task bookkeeping on top of the sqlite store.

Sessions are not handled here; see engine.lifecycle.
"""

from datetime import date, datetime
from typing import Callable, Optional

from tomato.config import DEFAULT_ESTIMATED_MINUTES
from tomato.errors import NotFoundError, ValidationFailure
from tomato.store.models import Project, Task, TaskStatus
from tomato.store.sqlite import SQLiteStore
from tomato.utils.logging import logger


class TaskService:
    """CRUD for projects and tasks."""

    def __init__(
        self,
        store: SQLiteStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.clock = clock or datetime.now

    # --- Projects ---

    def create_project(
        self,
        name: str,
        description: str = "",
        deadline: Optional[date] = None,
    ) -> Project:
        name = (name or "").strip()
        if not name:
            raise ValidationFailure("name", "a project name is required")

        project = Project.create(name, description or "", deadline, now=self.clock())
        self.store.add_project(project)
        logger.info(f"Created project {project.id} '{project.name}'")
        return project

    def create_projects(self, specs: list[dict]) -> list[Project]:
        """Create several projects. Stops at the first invalid entry."""
        return [
            self.create_project(s.get("name", ""), s.get("description", ""), s.get("deadline"))
            for s in specs
        ]

    def get_project(self, project_id: str) -> Project:
        project = self.store.find_project_by_id(project_id)
        if project is None:
            raise NotFoundError("project", project_id)
        return project

    def list_projects(self) -> list[Project]:
        """All projects, newest first."""
        return self.store.list_all_projects()

    def delete_project(self, project_id: str) -> int:
        """
        Hard-delete a project with all its tasks and their sessions.

        Returns:
            Number of deleted tasks
        """
        project = self.get_project(project_id)
        deleted = self.store.delete_project(project.id)
        logger.warning(
            f"Deleted project {project.id} '{project.name}' and {deleted} task(s)"
        )
        return deleted

    # --- Tasks ---

    def create_task(
        self,
        project_id: str,
        title: str,
        description: str = "",
        estimated_minutes: Optional[int] = None,
        deadline: Optional[date] = None,
    ) -> Task:
        title = (title or "").strip()
        if not title:
            raise ValidationFailure("title", "a task title is required")
        if estimated_minutes is None:
            estimated_minutes = DEFAULT_ESTIMATED_MINUTES
        elif isinstance(estimated_minutes, bool) or estimated_minutes <= 0:
            raise ValidationFailure("estimated_minutes", "must be a positive integer")

        task = Task.create(
            project_id,
            title,
            description=description or "",
            estimated_minutes=estimated_minutes,
            deadline=deadline,
            now=self.clock(),
        )
        self.store.add_task(task)
        logger.info(f"Created task {task.id} '{task.title}' in project {project_id}")
        return task

    def create_tasks(self, project_id: str, specs: list[dict]) -> list[Task]:
        """Create several tasks in one project."""
        self.get_project(project_id)
        return [
            self.create_task(
                project_id,
                s.get("title", ""),
                s.get("description", ""),
                s.get("estimated_minutes"),
                s.get("deadline"),
            )
            for s in specs
        ]

    def get_task(self, task_id: str) -> Task:
        task = self.store.find_task_by_id(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    def list_tasks(
        self,
        project_id: Optional[str] = None,
        status: Optional[TaskStatus] = None,
    ) -> list[Task]:
        """Tasks filtered by project and/or status, oldest first."""
        return self.store.list_tasks(project_id=project_id, status=status)

    def recent_tasks(self, limit: int = 5) -> list[Task]:
        return self.store.list_all_tasks()[:limit]

    def priority_tasks(self, limit: int = 5) -> list[Task]:
        """Unfinished tasks by deadline (undated last), then by age."""
        return self.store.list_priority_tasks(limit)

    def update_task_status(self, task_id: str, status) -> Task:
        try:
            status = TaskStatus(status)
        except ValueError as e:
            raise ValidationFailure("status", f"unknown task status {status!r}") from e

        self.store.update_task_status(task_id, status, self.clock())
        logger.info(f"Task {task_id} is now {status.value}")
        return self.get_task(task_id)

    def task_counts(self) -> dict[str, int]:
        """Task count per status, plus the total."""
        counts = self.store.count_tasks_by_status()
        counts["total"] = sum(counts.values())
        return counts
