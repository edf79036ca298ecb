"""
Pomodoro session lifecycle: start, pause, resume, complete.

The engine owns no timers and keeps no session state between calls.
Every operation re-reads the row, checks the transition, and writes the
changed columns back through the session port.

Time accounting:
- remaining_work_minutes is the work budget of the current active interval
- pausing charges whole elapsed minutes against it (floored, clamped at 0)
- resuming only re-bases start_time; the budget carries forward
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from tomato.errors import InvalidStateError, NotFoundError, TomatoError, ValidationFailure
from tomato.store.base import WorkStore
from tomato.store.models import Session, SessionStatus
from tomato.utils.logging import logger

# Allowed source states per action. COMPLETED appears in none: it is terminal.
VALID_TRANSITIONS: dict[str, tuple[SessionStatus, ...]] = {
    "pause": (SessionStatus.ACTIVE,),
    "resume": (SessionStatus.PAUSED,),
    "complete": (SessionStatus.ACTIVE, SessionStatus.PAUSED),
}


@dataclass
class BatchReport:
    """Per-session outcome of pause_all / resume_all. Not transactional."""
    action: str
    succeeded: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)  # (session_id, error)

    @property
    def succeeded_count(self) -> int:
        return len(self.succeeded)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def total(self) -> int:
        return self.succeeded_count + self.failed_count

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "succeeded": self.succeeded,
            "failed": [{"session_id": sid, "error": err} for sid, err in self.failed],
            "succeeded_count": self.succeeded_count,
            "failed_count": self.failed_count,
        }


@dataclass
class PhasePlan:
    """Delays an external scheduler should arm for an active session."""
    session_id: str
    work_elapsed_after: float  # seconds
    break_elapsed_after: float  # seconds


@dataclass
class DailyStats:
    """Completed pomodoros for one day."""
    day: date
    completed_sessions: int
    total_work_minutes: int


def _validate_minutes(name: str, value) -> None:
    # bool is an int subclass; True minutes is a bug, not a duration
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationFailure(name, f"must be a positive integer, got {value!r}")


class SessionLifecycleEngine:
    """
    State machine for pomodoro sessions.

    States: active -> paused -> active ... -> completed (terminal).
    Multiple concurrent active sessions are allowed; any single-session
    policy belongs to the caller.
    """

    def __init__(
        self,
        store: WorkStore,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.clock = clock or datetime.now

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def start(self, task_id: str, work_minutes: int, break_minutes: int) -> str:
        """
        Start a new active session on a task.

        Defaults (25/5) are the caller's business; both values must be
        positive integers.

        Returns:
            The new session ID
        """
        _validate_minutes("work_minutes", work_minutes)
        _validate_minutes("break_minutes", break_minutes)
        if not task_id:
            raise ValidationFailure("task_id", "a task is required to start a session")

        if self.store.find_task_by_id(task_id) is None:
            raise NotFoundError("task", task_id)

        session = Session.create(task_id, work_minutes, break_minutes, now=self.clock())
        self.store.insert_session(session)
        logger.info(
            f"Started session {session.id} on task {task_id} "
            f"({work_minutes}m work / {break_minutes}m break)"
        )
        return session.id

    def pause(self, session_id: str) -> Session:
        """Pause an active session, snapshotting its remaining work minutes."""
        session = self._load_for(session_id, "pause")
        return self._pause(session)

    def resume(self, session_id: str) -> Session:
        """Resume a paused session. remaining_work_minutes is left untouched."""
        session = self._load_for(session_id, "resume")
        return self._resume(session)

    def complete(self, session_id: str) -> Session:
        """Complete an active or paused session. Terminal."""
        session = self._load_for(session_id, "complete")
        now = self.clock()
        self.store.update_session_fields(session.id, {
            "status": SessionStatus.COMPLETED,
            "completed_at": now,
        })
        session.status = SessionStatus.COMPLETED
        session.completed_at = now
        logger.info(f"Completed session {session.id}")
        return session

    def delete(self, session_id: str) -> None:
        """Remove a session outright. Not a state transition; cannot be undone."""
        self.store.delete_session(session_id)
        logger.warning(f"Deleted session {session_id}")

    def pause_all(self) -> BatchReport:
        """Pause every active session independently; failures do not roll back others."""
        report = BatchReport(action="pause")
        for session in self.store.list_sessions(status=SessionStatus.ACTIVE):
            try:
                self._pause(session)
                report.succeeded.append(session.id)
            except TomatoError as e:
                logger.warning(f"Failed to pause session {session.id}: {e}")
                report.failed.append((session.id, str(e)))
        logger.info(f"Paused {report.succeeded_count}/{report.total} active sessions")
        return report

    def resume_all(self) -> BatchReport:
        """Resume every paused session independently."""
        report = BatchReport(action="resume")
        for session in self.store.list_sessions(status=SessionStatus.PAUSED):
            try:
                self._resume(session)
                report.succeeded.append(session.id)
            except TomatoError as e:
                logger.warning(f"Failed to resume session {session.id}: {e}")
                report.failed.append((session.id, str(e)))
        logger.info(f"Resumed {report.succeeded_count}/{report.total} paused sessions")
        return report

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get(self, session_id: str) -> Session:
        session = self.store.find_session_by_id(session_id)
        if session is None:
            raise NotFoundError("session", session_id)
        return session

    def list_active(self) -> list[Session]:
        """Active sessions, most recently started first."""
        return self.store.list_sessions(status=SessionStatus.ACTIVE)

    def list_paused(self) -> list[Session]:
        """Paused sessions, most recently paused first."""
        sessions = self.store.list_sessions(status=SessionStatus.PAUSED)
        return sorted(sessions, key=lambda s: s.pause_time or s.start_time, reverse=True)

    def list_for_task(self, task_id: str) -> list[Session]:
        """All sessions of a task, most recently started first."""
        return self.store.list_sessions(task_id=task_id)

    def remaining_minutes(self, session: Session) -> int:
        """Live work budget left: floored and clamped for active sessions."""
        if session.status == SessionStatus.COMPLETED:
            return 0
        if session.status == SessionStatus.PAUSED:
            return session.remaining_work_minutes
        return self._remaining_at(session, self.clock())

    def phase_plan(self, session: Session) -> PhasePlan:
        """
        When the work and break phases of an active session end.

        Measured from the session's current start_time, so a resumed
        session gets a plan for its carried-forward budget.
        """
        elapsed = (self.clock() - session.start_time).total_seconds()
        work = session.remaining_work_minutes * 60 - elapsed
        return PhasePlan(
            session_id=session.id,
            work_elapsed_after=max(0.0, work),
            break_elapsed_after=max(0.0, work + session.break_minutes * 60),
        )

    def daily_stats(self, day: Optional[date] = None) -> DailyStats:
        """Completed session count and configured work minutes for one day."""
        day = day or self.clock().date()
        done = [
            s for s in self.store.list_sessions(status=SessionStatus.COMPLETED)
            if s.completed_at and s.completed_at.date() == day
        ]
        return DailyStats(
            day=day,
            completed_sessions=len(done),
            total_work_minutes=sum(s.work_minutes for s in done),
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _load_for(self, session_id: str, action: str) -> Session:
        session = self.get(session_id)
        if session.status not in VALID_TRANSITIONS[action]:
            raise InvalidStateError(session.id, session.status.value, action)
        return session

    @staticmethod
    def _remaining_at(session: Session, now: datetime) -> int:
        elapsed_minutes = max(0, (now - session.start_time) // timedelta(minutes=1))
        return max(0, session.remaining_work_minutes - elapsed_minutes)

    def _pause(self, session: Session) -> Session:
        if session.status != SessionStatus.ACTIVE:
            raise InvalidStateError(session.id, session.status.value, "pause")
        now = self.clock()
        remaining = self._remaining_at(session, now)
        self.store.update_session_fields(session.id, {
            "status": SessionStatus.PAUSED,
            "pause_time": now,
            "remaining_work_minutes": remaining,
        })
        session.status = SessionStatus.PAUSED
        session.pause_time = now
        session.remaining_work_minutes = remaining
        logger.info(f"Paused session {session.id} with {remaining}m of work left")
        return session

    def _resume(self, session: Session) -> Session:
        if session.status != SessionStatus.PAUSED:
            raise InvalidStateError(session.id, session.status.value, "resume")
        now = self.clock()
        self.store.update_session_fields(session.id, {
            "status": SessionStatus.ACTIVE,
            "start_time": now,
            "pause_time": None,
        })
        session.status = SessionStatus.ACTIVE
        session.start_time = now
        session.pause_time = None
        logger.info(f"Resumed session {session.id} with {session.remaining_work_minutes}m of work left")
        return session
