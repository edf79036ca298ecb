"""
Intent variants produced by the classifier.

The classifier returns an intent label and a loose bag of entities. The
bag is validated here into exactly one typed variant, so handlers never
see missing or mistyped fields.
"""

from datetime import date
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PositiveInt,
    TypeAdapter,
    ValidationError,
)

from tomato.errors import ValidationFailure
from tomato.store.models import TaskStatus


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


Deadline = Annotated[Optional[date], BeforeValidator(_blank_to_none)]
Reference = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
Minutes = Annotated[Optional[PositiveInt], BeforeValidator(_blank_to_none)]


class _Intent(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# ─────────────────────────────────────────────────────────
# PROJECTS & TASKS
# ─────────────────────────────────────────────────────────


class ProjectSpec(_Intent):
    """One project to create."""

    name: str = Field(min_length=1)
    description: str = ""
    deadline: Deadline = None


class TaskSpec(_Intent):
    """One task to create."""

    title: str = Field(min_length=1)
    description: str = ""
    deadline: Deadline = None
    estimated_minutes: Minutes = Field(
        default=None,
        validation_alias=AliasChoices("estimated_minutes", "estimatedMinutes"),
    )


class ListTasks(_Intent):
    intent: Literal["list_tasks"]
    project: Reference = Field(default=None, validation_alias=AliasChoices("project", "projectId", "project_id"))
    status: Optional[TaskStatus] = None


class ListProjects(_Intent):
    intent: Literal["list_projects"]


class CreateProject(ProjectSpec):
    intent: Literal["create_project"]


class CreateProjects(_Intent):
    intent: Literal["create_projects"]
    projects: list[ProjectSpec] = Field(min_length=1)


class CreateTask(TaskSpec):
    intent: Literal["create_task"]
    project: Reference = Field(default=None, validation_alias=AliasChoices("project", "projectId", "project_id"))


class CreateTasks(_Intent):
    intent: Literal["create_tasks"]
    project: Reference = Field(default=None, validation_alias=AliasChoices("project", "projectId", "project_id"))
    tasks: list[TaskSpec] = Field(min_length=1)


class DeleteProject(_Intent):
    intent: Literal["delete_project"]
    project: Reference = Field(default=None, validation_alias=AliasChoices("project", "projectId", "project_id"))


# ─────────────────────────────────────────────────────────
# POMODORO
# ─────────────────────────────────────────────────────────


class StartPomodoro(_Intent):
    intent: Literal["start_pomodoro"]
    task: Reference = Field(default=None, validation_alias=AliasChoices("task", "taskId", "task_id"))
    work_minutes: Minutes = Field(default=None, validation_alias=AliasChoices("work_minutes", "workMinutes"))
    break_minutes: Minutes = Field(default=None, validation_alias=AliasChoices("break_minutes", "breakMinutes"))


class _SessionTarget(_Intent):
    session_id: Reference = Field(default=None, validation_alias=AliasChoices("session_id", "sessionId"))
    task: Reference = Field(default=None, validation_alias=AliasChoices("task", "taskId", "task_id"))


class PausePomodoro(_SessionTarget):
    intent: Literal["pause_pomodoro"]


class ResumePomodoro(_SessionTarget):
    intent: Literal["resume_pomodoro"]


class CompletePomodoro(_SessionTarget):
    intent: Literal["complete_pomodoro"]


class SessionStatusQuery(_Intent):
    intent: Literal["session_status"]


class GoingOut(_Intent):
    intent: Literal["going_out"]
    reason: Optional[str] = None
    duration: Minutes = None


class ComingBack(_Intent):
    intent: Literal["coming_back"]


# ─────────────────────────────────────────────────────────
# MISC
# ─────────────────────────────────────────────────────────


class ShowSummary(_Intent):
    intent: Literal["show_summary"]


class Help(_Intent):
    intent: Literal["help"]


class Unknown(_Intent):
    intent: Literal["unknown"]


Intent = Annotated[
    Union[
        ListTasks,
        ListProjects,
        CreateProject,
        CreateProjects,
        CreateTask,
        CreateTasks,
        DeleteProject,
        StartPomodoro,
        PausePomodoro,
        ResumePomodoro,
        CompletePomodoro,
        SessionStatusQuery,
        GoingOut,
        ComingBack,
        ShowSummary,
        Help,
        Unknown,
    ],
    Field(discriminator="intent"),
]

_intent_adapter = TypeAdapter(Intent)

INTENT_LABELS = frozenset({
    "list_tasks", "list_projects", "create_project", "create_projects",
    "create_task", "create_tasks", "delete_project", "start_pomodoro",
    "pause_pomodoro", "resume_pomodoro", "complete_pomodoro", "session_status",
    "going_out", "coming_back", "show_summary", "help", "unknown",
})

# Labels older classifier prompts still emit
INTENT_ALIASES = {
    "check_status": "show_summary",
    "status": "session_status",
    "stop_pomodoro": "complete_pomodoro",
}


def parse_intent(payload: dict) -> Intent:
    """
    Validate a raw classifier payload into an intent variant.

    Accepts both {"intent": ..., "entities": {...}} and flat payloads.
    Unrecognized labels become Unknown.

    Raises:
        ValidationFailure: a known intent is missing or mistyping a field
    """
    label = str(payload.get("intent") or "unknown").strip().lower()
    label = INTENT_ALIASES.get(label, label)
    if label not in INTENT_LABELS:
        return Unknown(intent="unknown")

    entities = payload.get("entities")
    data = dict(entities) if isinstance(entities, dict) else {
        k: v for k, v in payload.items() if k != "entities"
    }
    data["intent"] = label

    try:
        return _intent_adapter.validate_python(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(p) for p in first["loc"][1:]) or label
        raise ValidationFailure(field, first["msg"]) from e
