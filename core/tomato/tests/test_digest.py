"""Tests for the daily digest text."""

from datetime import date, datetime

import pytest

from tomato.engine.lifecycle import DailyStats
from tomato.services.digest import build_digest
from tomato.store.models import Task, TaskStatus

NOW = datetime(2026, 3, 2, 9, 0)


@pytest.fixture
def stats():
    return DailyStats(day=date(2026, 3, 2), completed_sessions=3, total_work_minutes=75)


def _task(title, project_id="p1", **kwargs):
    return Task.create(project_id, title, now=NOW, **kwargs)


class TestBuildDigest:
    """build_digest()"""

    def test_in_progress_tasks_listed(self, stats):
        task = _task("Design doc", description="First draft", deadline=date(2026, 3, 5))
        task.status = TaskStatus.IN_PROGRESS

        text = build_digest([task], [_task("Other")], stats, project_names={"p1": "Website"})

        assert "In progress:" in text
        assert "- Design doc" in text
        assert "First draft" in text
        assert "due 2026-03-05, project: Website" in text
        assert "Suggested" not in text
        assert "Other" not in text

    def test_priority_when_nothing_in_progress(self, stats):
        text = build_digest([], [_task("Write copy")], stats)

        assert "Suggested next tasks:" in text
        assert "- Write copy" in text
        assert "no deadline" in text

    def test_no_tasks(self, stats):
        assert "No open tasks." in build_digest([], [], stats)

    def test_stats(self, stats):
        text = build_digest([], [], stats, daily_goal=8)

        assert "Today (2026-03-02):" in text
        assert "Completed pomodoros: 3/8" in text
        assert "Total work time: 75 min" in text

    @pytest.mark.parametrize("time_of_day,greeting", [
        ("morning", "Good morning!"),
        ("Evening", "Nice work today!"),
    ])
    def test_greetings(self, stats, time_of_day, greeting):
        assert build_digest([], [], stats, time_of_day=time_of_day).startswith(greeting)

    @pytest.mark.parametrize("time_of_day", [None, "noon"])
    def test_no_greeting(self, stats, time_of_day):
        assert build_digest([], [], stats, time_of_day=time_of_day).startswith("Suggested")
