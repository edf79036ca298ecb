"""Pydantic models for API request/response schemas."""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from tomato.config import DEFAULT_BREAK_MINUTES, DEFAULT_WORK_MINUTES
from tomato.context.resolver import Candidate, ResolvedReference
from tomato.store.models import Project, Session, Task, TaskStatus


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str


class ChatRequest(BaseModel):
    """Chat message request."""

    message: str = Field(min_length=1)
    conversation_id: str | None = None


class ChatResponse(BaseModel):
    """Chat message response."""

    id: str
    content: str
    role: str
    conversation_id: str


class SummaryResponse(BaseModel):
    """Daily digest."""

    content: str


class ErrorResponse(BaseModel):
    """Body of every 4xx/5xx raised from a TomatoError."""

    error: str
    detail: str


# ─────────────────────────────────────────────────────────
# PROJECTS & TASKS
# ─────────────────────────────────────────────────────────


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    deadline: Optional[date] = None


class ProjectResponse(BaseModel):
    id: str
    name: str
    description: str
    deadline: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, project: Project) -> "ProjectResponse":
        return cls(**project.to_dict())


class ProjectDeleteResponse(BaseModel):
    id: str
    deleted_tasks: int


class TaskCreate(BaseModel):
    project_id: str
    title: str = Field(min_length=1)
    description: str = ""
    estimated_minutes: Optional[int] = Field(default=None, gt=0)
    deadline: Optional[date] = None


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskResponse(BaseModel):
    id: str
    project_id: str
    title: str
    description: str
    status: str
    estimated_minutes: int
    deadline: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_record(cls, task: Task) -> "TaskResponse":
        return cls(**task.to_dict())


# ─────────────────────────────────────────────────────────
# RESOLUTION
# ─────────────────────────────────────────────────────────


class CandidateResponse(BaseModel):
    id: str
    name: str
    score: float
    project_name: str

    @classmethod
    def from_candidate(cls, candidate: Candidate) -> "CandidateResponse":
        return cls(
            id=candidate.entity.id,
            name=candidate.display_name,
            score=round(candidate.score, 4),
            project_name=candidate.project_name,
        )


class ResolveResponse(BaseModel):
    outcome: str
    match: str
    score: float
    reason: str
    id: Optional[str] = None
    name: Optional[str] = None
    candidates: list[CandidateResponse] = []

    @classmethod
    def from_resolution(cls, resolved: ResolvedReference) -> "ResolveResponse":
        entity = resolved.entity
        return cls(
            outcome=resolved.outcome.value,
            match=resolved.match.value,
            score=round(resolved.score, 4),
            reason=resolved.reason,
            id=entity.id if entity else None,
            name=entity.display_name if entity else None,
            candidates=[CandidateResponse.from_candidate(c) for c in resolved.candidates],
        )


# ─────────────────────────────────────────────────────────
# SESSIONS
# ─────────────────────────────────────────────────────────


class SessionStart(BaseModel):
    task_id: str
    work_minutes: int = Field(default=DEFAULT_WORK_MINUTES, gt=0)
    break_minutes: int = Field(default=DEFAULT_BREAK_MINUTES, gt=0)


class SessionResponse(BaseModel):
    id: str
    task_id: str
    work_minutes: int
    break_minutes: int
    status: str
    start_time: str
    remaining_work_minutes: int
    pause_time: Optional[str]
    completed_at: Optional[str]
    remaining_minutes: int  # live, for active sessions

    @classmethod
    def from_record(cls, session: Session, remaining_minutes: int) -> "SessionResponse":
        return cls(**session.to_dict(), remaining_minutes=remaining_minutes)


class BatchFailure(BaseModel):
    session_id: str
    error: str


class BatchReportResponse(BaseModel):
    action: str
    succeeded: list[str]
    failed: list[BatchFailure]
    succeeded_count: int
    failed_count: int


class DailyStatsResponse(BaseModel):
    day: date
    completed_sessions: int
    total_work_minutes: int


class SuccessResponse(BaseModel):
    """Generic success response."""

    success: bool
    message: Optional[str] = None
