"""
Unit tests for the pomodoro session lifecycle engine.

Tests cover:
- Start validation
- Pause/resume/complete transitions and invalid ones
- Remaining-time accounting across pauses
- Batch pause/resume with partial failures
- Phase plans and daily stats
"""

import pytest

from tomato.engine.lifecycle import SessionLifecycleEngine
from tomato.errors import InvalidStateError, NotFoundError, StoreFailure, ValidationFailure
from tomato.services.tasks import TaskService
from tomato.store.models import SessionStatus
from tomato.store.sqlite import SQLiteStore


class FlakyStore(SQLiteStore):
    """Store whose session updates fail for one chosen session."""

    def __init__(self, db_path: str):
        super().__init__(db_path=db_path)
        self.fail_on = None

    def update_session_fields(self, session_id, fields):
        if session_id == self.fail_on:
            raise StoreFailure("update_session_fields", "disk I/O error")
        super().update_session_fields(session_id, fields)


@pytest.fixture
def task(store, clock):
    service = TaskService(store, clock=clock)
    project = service.create_project("Website relaunch")
    return service.create_task(project.id, "Design doc")


@pytest.fixture
def engine(store, clock):
    return SessionLifecycleEngine(store, clock=clock)


class TestStart:
    """Starting sessions."""

    def test_start(self, engine, task, clock):
        session_id = engine.start(task.id, 25, 5)
        session = engine.get(session_id)

        assert session.status == SessionStatus.ACTIVE
        assert session.task_id == task.id
        assert session.remaining_work_minutes == 25
        assert session.start_time == clock.now

    @pytest.mark.parametrize("work,brk", [(0, 5), (25, 0), (-5, 5), (True, 5), (25.5, 5)])
    def test_invalid_minutes(self, engine, task, work, brk):
        with pytest.raises(ValidationFailure):
            engine.start(task.id, work, brk)

    def test_missing_task(self, engine):
        with pytest.raises(NotFoundError):
            engine.start("no-such-task", 25, 5)

    def test_empty_task(self, engine):
        with pytest.raises(ValidationFailure):
            engine.start("", 25, 5)

    def test_concurrent_sessions_allowed(self, engine, task):
        first = engine.start(task.id, 25, 5)
        second = engine.start(task.id, 25, 5)

        assert {s.id for s in engine.list_active()} == {first, second}


class TestTransitions:
    """Pause, resume and complete."""

    def test_pause_after_ten_minutes(self, engine, task, clock):
        session_id = engine.start(task.id, 25, 5)
        clock.advance(minutes=10)

        paused = engine.pause(session_id)

        assert paused.status == SessionStatus.PAUSED
        assert paused.remaining_work_minutes == 15
        assert paused.pause_time == clock.now
        assert engine.get(session_id).remaining_work_minutes == 15

    def test_second_pause_is_invalid(self, engine, task, clock):
        session_id = engine.start(task.id, 25, 5)
        clock.advance(minutes=10)
        engine.pause(session_id)

        with pytest.raises(InvalidStateError) as exc:
            engine.pause(session_id)

        assert exc.value.current == "paused"
        assert exc.value.action == "pause"

    def test_partial_minutes_are_floored(self, engine, task, clock):
        session_id = engine.start(task.id, 25, 5)
        clock.advance(minutes=10, seconds=59)

        assert engine.pause(session_id).remaining_work_minutes == 15

    def test_overrun_clamps_at_zero(self, engine, task, clock):
        session_id = engine.start(task.id, 25, 5)
        clock.advance(minutes=40)

        assert engine.pause(session_id).remaining_work_minutes == 0

    def test_resume_only_from_paused(self, engine, task):
        session_id = engine.start(task.id, 25, 5)

        with pytest.raises(InvalidStateError):
            engine.resume(session_id)

    def test_full_cycle_then_terminal(self, engine, task, clock):
        session_id = engine.start(task.id, 25, 5)
        clock.advance(minutes=5)
        engine.pause(session_id)
        clock.advance(minutes=5)
        engine.resume(session_id)
        completed = engine.complete(session_id)

        assert completed.status == SessionStatus.COMPLETED
        assert completed.completed_at == clock.now
        for action in (engine.pause, engine.resume, engine.complete):
            with pytest.raises(InvalidStateError):
                action(session_id)

    def test_complete_from_paused(self, engine, task):
        session_id = engine.start(task.id, 25, 5)
        engine.pause(session_id)

        assert engine.complete(session_id).status == SessionStatus.COMPLETED

    def test_remaining_carries_forward(self, engine, task, clock):
        """pause at 10, resume 5 later, pause 5 after that: 10 minutes left."""
        session_id = engine.start(task.id, 25, 5)
        clock.advance(minutes=10)
        engine.pause(session_id)
        clock.advance(minutes=5)
        resumed = engine.resume(session_id)

        assert resumed.remaining_work_minutes == 15
        assert resumed.start_time == clock.now
        assert resumed.pause_time is None

        clock.advance(minutes=5)
        assert engine.pause(session_id).remaining_work_minutes == 10

    def test_missing_session(self, engine):
        with pytest.raises(NotFoundError):
            engine.pause("nope")

    def test_delete(self, engine, task):
        session_id = engine.start(task.id, 25, 5)
        engine.delete(session_id)

        with pytest.raises(NotFoundError):
            engine.get(session_id)


class TestBatch:
    """pause_all / resume_all report per-session outcomes."""

    def test_pause_all_with_failure(self, temp_db, clock):
        store = FlakyStore(temp_db)
        service = TaskService(store, clock=clock)
        project = service.create_project("Website relaunch")
        task = service.create_task(project.id, "Design doc")
        engine = SessionLifecycleEngine(store, clock=clock)

        first = engine.start(task.id, 25, 5)
        clock.advance(minutes=1)
        second = engine.start(task.id, 25, 5)
        clock.advance(minutes=1)
        third = engine.start(task.id, 25, 5)
        clock.advance(minutes=1)

        # Newest first: third, second, first. The second one processed fails.
        store.fail_on = second
        report = engine.pause_all()

        assert report.succeeded_count == 2
        assert report.failed_count == 1
        assert set(report.succeeded) == {first, third}
        assert report.failed[0][0] == second
        assert "disk I/O error" in report.failed[0][1]
        assert engine.get(first).status == SessionStatus.PAUSED
        assert engine.get(second).status == SessionStatus.ACTIVE
        assert engine.get(third).status == SessionStatus.PAUSED

    def test_resume_all(self, engine, task, clock):
        ids = [engine.start(task.id, 25, 5) for _ in range(2)]
        engine.pause_all()
        clock.advance(minutes=3)

        report = engine.resume_all()

        assert set(report.succeeded) == set(ids)
        assert report.failed == []
        assert all(engine.get(i).status == SessionStatus.ACTIVE for i in ids)

    def test_empty_batch(self, engine):
        report = engine.pause_all()

        assert report.total == 0
        assert report.to_dict()["succeeded"] == []

    def test_completed_sessions_untouched(self, engine, task):
        done = engine.start(task.id, 25, 5)
        engine.complete(done)

        report = engine.pause_all()

        assert report.total == 0
        assert engine.get(done).status == SessionStatus.COMPLETED


class TestQueries:
    """Plans, live remaining time and stats."""

    def test_phase_plan_for_resumed_session(self, engine, task, clock):
        session_id = engine.start(task.id, 25, 5)
        clock.advance(minutes=10)
        engine.pause(session_id)
        clock.advance(minutes=30)
        session = engine.resume(session_id)

        plan = engine.phase_plan(session)

        assert plan.work_elapsed_after == 15 * 60
        assert plan.break_elapsed_after == 20 * 60

    def test_live_remaining(self, engine, task, clock):
        session_id = engine.start(task.id, 25, 5)
        clock.advance(minutes=7, seconds=30)

        assert engine.remaining_minutes(engine.get(session_id)) == 18

    def test_list_paused_most_recent_first(self, engine, task, clock):
        older = engine.start(task.id, 25, 5)
        newer = engine.start(task.id, 25, 5)
        engine.pause(newer)
        clock.advance(minutes=1)
        engine.pause(older)

        assert [s.id for s in engine.list_paused()] == [older, newer]

    def test_daily_stats(self, engine, task, clock):
        for work in (25, 50):
            engine.complete(engine.start(task.id, work, 5))
        engine.start(task.id, 25, 5)

        stats = engine.daily_stats()

        assert stats.day == clock.now.date()
        assert stats.completed_sessions == 2
        assert stats.total_work_minutes == 75
