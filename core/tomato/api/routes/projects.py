"""Project and task API routes."""

from typing import Optional

from fastapi import APIRouter

from tomato.api.orchestrator_store import get_orchestrator
from tomato.api.schemas import (
    ProjectCreate,
    ProjectDeleteResponse,
    ProjectResponse,
    TaskCreate,
    TaskResponse,
    TaskStatusUpdate,
)
from tomato.store.models import TaskStatus

router = APIRouter(tags=["projects"])


# ─────────────────────────────────────────────────────────
# PROJECTS
# ─────────────────────────────────────────────────────────


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects():
    """All projects, newest first."""
    orch = await get_orchestrator()
    return [ProjectResponse.from_record(p) for p in orch.tasks.list_projects()]


@router.post("/projects", response_model=ProjectResponse, status_code=201)
async def create_project(request: ProjectCreate):
    orch = await get_orchestrator()
    project = orch.tasks.create_project(request.name, request.description, request.deadline)
    return ProjectResponse.from_record(project)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str):
    orch = await get_orchestrator()
    return ProjectResponse.from_record(orch.tasks.get_project(project_id))


@router.delete("/projects/{project_id}", response_model=ProjectDeleteResponse)
async def delete_project(project_id: str):
    """Delete a project with its tasks and their sessions. No confirmation."""
    orch = await get_orchestrator()
    deleted = orch.tasks.delete_project(project_id)
    return ProjectDeleteResponse(id=project_id, deleted_tasks=deleted)


# ─────────────────────────────────────────────────────────
# TASKS
# ─────────────────────────────────────────────────────────


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(project_id: Optional[str] = None, status: Optional[TaskStatus] = None):
    """Tasks filtered by project and/or status, oldest first."""
    orch = await get_orchestrator()
    tasks = orch.tasks.list_tasks(project_id=project_id, status=status)
    return [TaskResponse.from_record(t) for t in tasks]


@router.get("/tasks/priority", response_model=list[TaskResponse])
async def priority_tasks(limit: int = 5):
    """Unfinished tasks by deadline, undated last."""
    orch = await get_orchestrator()
    return [TaskResponse.from_record(t) for t in orch.tasks.priority_tasks(limit)]


@router.get("/tasks/counts")
async def task_counts():
    orch = await get_orchestrator()
    return orch.tasks.task_counts()


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(request: TaskCreate):
    orch = await get_orchestrator()
    task = orch.tasks.create_task(
        request.project_id,
        request.title,
        request.description,
        request.estimated_minutes,
        request.deadline,
    )
    return TaskResponse.from_record(task)


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: str):
    orch = await get_orchestrator()
    return TaskResponse.from_record(orch.tasks.get_task(task_id))


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task_status(task_id: str, request: TaskStatusUpdate):
    orch = await get_orchestrator()
    return TaskResponse.from_record(orch.tasks.update_task_status(task_id, request.status))
