"""
Response formatter to keep chat replies clean and readable.

Outputs plain human-readable text: no JSON dumps, no IDs unless the user
needs one to disambiguate.
"""

from typing import Optional, TYPE_CHECKING

from tomato.store.models import Project, Session, SessionStatus, Task

if TYPE_CHECKING:
    from tomato.context.resolver import Candidate, EntityKind
    from tomato.engine.lifecycle import BatchReport
    from tomato.errors import InvalidStateError, NotFoundError, ValidationFailure


STATUS_LABELS = {
    "pending": "to do",
    "in_progress": "in progress",
    "completed": "done",
}

HELP_TEXT = """Here's what I can do:
- "new project Website relaunch" creates a project
- "add task Write copy to Website relaunch" adds a task
- "list projects" / "list tasks in Website relaunch"
- "start a pomodoro on Write copy" starts a 25/5 session
- "pause", "resume", "done" control the current session
- "time left?" shows the running sessions
- "going out" pauses everything, "I'm back" resumes it
- "summary" shows today's digest
- "delete project Website relaunch" removes it (I'll ask first)"""


class ResponseFormatter:
    """Turns domain results into chat-friendly strings."""

    MAX_LIST_ITEMS = 10

    # ─────────────────────────────────────────────────────────
    # Projects & tasks
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def format_project_list(projects: list[Project]) -> str:
        if not projects:
            return "You don't have any projects yet. Try \"new project <name>\"."

        lines = [f"You have {len(projects)} project(s):"]
        for i, p in enumerate(projects[: ResponseFormatter.MAX_LIST_ITEMS], 1):
            due = f" (due {p.deadline.isoformat()})" if p.deadline else ""
            lines.append(f"{i}) {p.name}{due}")
        if len(projects) > ResponseFormatter.MAX_LIST_ITEMS:
            lines.append(f"...and {len(projects) - ResponseFormatter.MAX_LIST_ITEMS} more")
        return "\n".join(lines)

    @staticmethod
    def format_task_list(tasks: list[Task], project: Optional[Project] = None) -> str:
        where = f" in {project.name}" if project else ""
        if not tasks:
            return f"No tasks{where}."

        lines = [f"{len(tasks)} task(s){where}:"]
        for i, t in enumerate(tasks[: ResponseFormatter.MAX_LIST_ITEMS], 1):
            status = STATUS_LABELS.get(t.status.value, t.status.value)
            lines.append(f"{i}) {t.title} [{status}, {t.estimated_minutes} min]")
        if len(tasks) > ResponseFormatter.MAX_LIST_ITEMS:
            lines.append(f"...and {len(tasks) - ResponseFormatter.MAX_LIST_ITEMS} more")
        return "\n".join(lines)

    @staticmethod
    def format_projects_created(projects: list[Project]) -> str:
        if len(projects) == 1:
            return f"Created project {projects[0].name}."
        names = ", ".join(p.name for p in projects)
        return f"Created {len(projects)} projects: {names}."

    @staticmethod
    def format_tasks_created(tasks: list[Task], project: Project) -> str:
        if len(tasks) == 1:
            t = tasks[0]
            return f"Added {t.title} to {project.name} ({t.estimated_minutes} min)."
        lines = [f"Added {len(tasks)} tasks to {project.name}:"]
        lines.extend(f"- {t.title} ({t.estimated_minutes} min)" for t in tasks)
        return "\n".join(lines)

    # ─────────────────────────────────────────────────────────
    # Sessions
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def format_session_started(session: Session, task: Task) -> str:
        return (
            f"Started a pomodoro on {task.title}: "
            f"{session.work_minutes} min work, then a {session.break_minutes} min break."
        )

    @staticmethod
    def format_session_changed(session: Session, task: Optional[Task]) -> str:
        name = task.title if task else "your session"
        if session.status == SessionStatus.PAUSED:
            return f"Paused {name} with {session.remaining_work_minutes} min of work left."
        if session.status == SessionStatus.ACTIVE:
            return f"Resumed {name}: {session.remaining_work_minutes} min of work to go."
        return f"Completed the pomodoro on {name}. Nice!"

    @staticmethod
    def format_session_status(entries: list[tuple[Session, Optional[Task], int]]) -> str:
        """entries: (session, task, live remaining minutes)"""
        if not entries:
            return "No pomodoro is running right now."

        lines = []
        for session, task, remaining in entries:
            name = task.title if task else "(deleted task)"
            state = "running" if session.status == SessionStatus.ACTIVE else "paused"
            lines.append(f"- {name}: {state}, {remaining} min of work left")
        return "\n".join(lines)

    @staticmethod
    def format_batch_report(report: "BatchReport") -> str:
        verb = "Paused" if report.action == "pause" else "Resumed"
        if report.total == 0:
            noun = "running" if report.action == "pause" else "paused"
            return f"There were no {noun} sessions."

        text = f"{verb} {report.succeeded_count} session(s)."
        if report.failed:
            text += f" {report.failed_count} could not be {verb.lower()}."
        return text

    @staticmethod
    def format_no_session(task: Task, action: str) -> str:
        return f"No active pomodoro for {task.title}, so there's nothing to {action}."

    @staticmethod
    def format_going_out(
        report: "BatchReport",
        reason: Optional[str] = None,
        duration: Optional[int] = None,
    ) -> str:
        """e.g. "Stepping away for lunch, back in 30 minutes. Paused 1 session(s)." """
        text = f"Stepping away for {reason or 'a bit'}"
        if duration:
            text += f", back in {duration} minutes"
        return f"{text}. {ResponseFormatter.format_batch_report(report)}"

    @staticmethod
    def format_coming_back(report: "BatchReport") -> str:
        return f"Welcome back! {ResponseFormatter.format_batch_report(report)}"

    @staticmethod
    def format_phase_elapsed(phase: str, task: Optional[Task]) -> str:
        name = task.title if task else "your task"
        if phase == "work":
            return f"Time's up on {name}! Take a break."
        return f"Break's over. Pomodoro on {name} completed."

    # ─────────────────────────────────────────────────────────
    # Confirmation & resolution
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def format_confirmation_request(project: Project, task_count: int) -> str:
        """Clean, direct question before a destructive delete."""
        return (
            f"Delete project {project.name} and its {task_count} task(s)? "
            "This can't be undone. (yes/no)"
        )

    @staticmethod
    def format_project_deleted(name: str, task_count: int) -> str:
        return f"Deleted project {name} and {task_count} task(s)."

    @staticmethod
    def format_not_found(
        reference: str,
        kind: "EntityKind",
        suggestions: list["Candidate"],
    ) -> str:
        text = f"I couldn't find a {kind.value} called \"{reference}\"."
        if suggestions:
            names = ", ".join(c.display_name for c in suggestions)
            text += f" Maybe one of these: {names}?"
        return text

    @staticmethod
    def format_missing(error: "NotFoundError") -> str:
        return f"That {error.kind} doesn't exist anymore."

    @staticmethod
    def format_no_active(kind: "EntityKind") -> str:
        return f"Which {kind.value} do you mean? Tell me its name."

    # ─────────────────────────────────────────────────────────
    # Errors & misc
    # ─────────────────────────────────────────────────────────

    @staticmethod
    def format_invalid_state(error: "InvalidStateError") -> str:
        return f"Can't {error.action} that session: it's already {error.current}."

    @staticmethod
    def format_validation_failure(error: "ValidationFailure") -> str:
        field = error.field.replace("_", " ")
        return f"I need a valid {field} for that ({error.reason})."

    @staticmethod
    def format_store_failure() -> str:
        return "Something went wrong saving your data. Please try again in a moment."

    @staticmethod
    def format_help() -> str:
        return HELP_TEXT

    @staticmethod
    def format_unknown() -> str:
        return "Sorry, I didn't get that. Say \"help\" to see what I can do."
