"""Pomodoro session API routes."""

from datetime import date
from typing import Optional

from fastapi import APIRouter

from tomato.api.orchestrator_store import get_orchestrator
from tomato.api.schemas import (
    BatchReportResponse,
    DailyStatsResponse,
    SessionResponse,
    SessionStart,
    SuccessResponse,
)
from tomato.store.models import Session, SessionStatus

router = APIRouter(prefix="/sessions", tags=["sessions"])


async def _respond(session: Session) -> SessionResponse:
    orch = await get_orchestrator()
    return SessionResponse.from_record(session, orch.engine.remaining_minutes(session))


@router.post("", response_model=SessionResponse, status_code=201)
async def start_session(request: SessionStart):
    """Start a pomodoro on a task and arm its phase timers."""
    orch = await get_orchestrator()
    session = orch.start_session(request.task_id, request.work_minutes, request.break_minutes)
    return await _respond(session)


@router.get("", response_model=list[SessionResponse])
async def list_sessions(status: Optional[SessionStatus] = None, task_id: Optional[str] = None):
    """Sessions by start time, newest first."""
    orch = await get_orchestrator()
    sessions = orch.store.list_sessions(status=status, task_id=task_id)
    return [SessionResponse.from_record(s, orch.engine.remaining_minutes(s)) for s in sessions]


@router.get("/stats", response_model=DailyStatsResponse)
async def daily_stats(day: Optional[date] = None):
    orch = await get_orchestrator()
    stats = orch.engine.daily_stats(day)
    return DailyStatsResponse(
        day=stats.day,
        completed_sessions=stats.completed_sessions,
        total_work_minutes=stats.total_work_minutes,
    )


# ─────────────────────────────────────────────────────────
# BATCH
# ─────────────────────────────────────────────────────────


@router.post("/pause-all", response_model=BatchReportResponse)
async def pause_all():
    """Pause every active session. Partial failures are reported, not rolled back."""
    orch = await get_orchestrator()
    return orch.pause_all().to_dict()


@router.post("/resume-all", response_model=BatchReportResponse)
async def resume_all():
    orch = await get_orchestrator()
    return orch.resume_all().to_dict()


# ─────────────────────────────────────────────────────────
# SINGLE SESSION
# ─────────────────────────────────────────────────────────


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str):
    orch = await get_orchestrator()
    return await _respond(orch.engine.get(session_id))


@router.post("/{session_id}/pause", response_model=SessionResponse)
async def pause_session(session_id: str):
    orch = await get_orchestrator()
    return await _respond(orch.pause_session(session_id))


@router.post("/{session_id}/resume", response_model=SessionResponse)
async def resume_session(session_id: str):
    orch = await get_orchestrator()
    return await _respond(orch.resume_session(session_id))


@router.post("/{session_id}/complete", response_model=SessionResponse)
async def complete_session(session_id: str):
    orch = await get_orchestrator()
    return await _respond(orch.complete_session(session_id))


@router.delete("/{session_id}", response_model=SuccessResponse)
async def delete_session(session_id: str):
    orch = await get_orchestrator()
    orch.delete_session(session_id)
    return SuccessResponse(success=True, message=f"Deleted session {session_id}")
