"""Tests for validating classifier payloads into intent variants."""

from datetime import date

import pytest

from tomato.engine.intents import (
    ComingBack,
    CreateProjects,
    CreateTask,
    GoingOut,
    ListTasks,
    ShowSummary,
    StartPomodoro,
    Unknown,
    parse_intent,
)
from tomato.errors import ValidationFailure
from tomato.store.models import TaskStatus


class TestParseIntent:
    """parse_intent()"""

    def test_nested_entities_with_camel_case(self):
        intent = parse_intent({
            "intent": "start_pomodoro",
            "entities": {"taskId": "Design doc", "workMinutes": 50},
        })

        assert isinstance(intent, StartPomodoro)
        assert intent.task == "Design doc"
        assert intent.work_minutes == 50
        assert intent.break_minutes is None

    def test_flat_payload(self):
        intent = parse_intent({"intent": "start_pomodoro", "task": "Design doc"})

        assert isinstance(intent, StartPomodoro)
        assert intent.task == "Design doc"

    def test_start_without_task(self):
        """No task means "the one we're talking about"."""
        intent = parse_intent({"intent": "start_pomodoro", "entities": {}})

        assert intent.task is None

    def test_create_task(self):
        intent = parse_intent({
            "intent": "create_task",
            "entities": {
                "projectId": "Website",
                "title": "Write copy",
                "estimatedMinutes": "50",
                "deadline": "2026-03-10",
            },
        })

        assert isinstance(intent, CreateTask)
        assert intent.project == "Website"
        assert intent.estimated_minutes == 50
        assert intent.deadline == date(2026, 3, 10)

    def test_blank_deadline_is_none(self):
        intent = parse_intent({
            "intent": "create_task",
            "entities": {"title": "Write copy", "deadline": ""},
        })

        assert intent.deadline is None

    def test_missing_title_names_the_field(self):
        with pytest.raises(ValidationFailure) as exc:
            parse_intent({"intent": "create_task", "entities": {"project": "Website"}})

        assert exc.value.field == "title"

    @pytest.mark.parametrize("minutes", [0, -5])
    def test_non_positive_minutes(self, minutes):
        with pytest.raises(ValidationFailure):
            parse_intent({"intent": "start_pomodoro", "entities": {"work_minutes": minutes}})

    def test_create_projects_needs_at_least_one(self):
        with pytest.raises(ValidationFailure):
            parse_intent({"intent": "create_projects", "entities": {"projects": []}})

    def test_create_projects(self):
        intent = parse_intent({
            "intent": "create_projects",
            "entities": {"projects": [{"name": "Website"}, {"name": "Thesis", "deadline": "2026-06-30"}]},
        })

        assert isinstance(intent, CreateProjects)
        assert [p.name for p in intent.projects] == ["Website", "Thesis"]
        assert intent.projects[1].deadline == date(2026, 6, 30)

    def test_list_tasks_status(self):
        intent = parse_intent({"intent": "list_tasks", "entities": {"status": "in_progress"}})

        assert isinstance(intent, ListTasks)
        assert intent.status == TaskStatus.IN_PROGRESS

    def test_going_out_and_coming_back(self):
        out = parse_intent({"intent": "going_out", "entities": {"reason": "lunch", "duration": 45}})
        back = parse_intent({"intent": "coming_back"})

        assert isinstance(out, GoingOut)
        assert out.duration == 45
        assert isinstance(back, ComingBack)

    @pytest.mark.parametrize("payload", [
        {"intent": "order_pizza"},
        {"intent": None},
        {},
    ])
    def test_unrecognized_labels(self, payload):
        assert isinstance(parse_intent(payload), Unknown)

    def test_legacy_label(self):
        assert isinstance(parse_intent({"intent": "check_status"}), ShowSummary)

    def test_label_is_normalized(self):
        assert isinstance(parse_intent({"intent": " Coming_Back "}), ComingBack)
