"""
Daily digest text: what is in progress (or what to pick up next) and
how many pomodoros got done today.

Pure formatting over data the caller already fetched.
"""

from typing import Optional

from tomato.config import DAILY_GOAL
from tomato.engine.lifecycle import DailyStats
from tomato.store.models import Task

GREETINGS = {
    "morning": "Good morning!",
    "evening": "Nice work today!",
}


def _task_lines(task: Task, project_names: dict[str, str]) -> list[str]:
    deadline = f"due {task.deadline.isoformat()}" if task.deadline else "no deadline"
    lines = [f"- {task.title}"]
    if task.description:
        lines.append(f"    {task.description}")
    project = project_names.get(task.project_id)
    lines.append(f"    {deadline}" + (f", project: {project}" if project else ""))
    return lines


def build_digest(
    in_progress: list[Task],
    priority: list[Task],
    stats: DailyStats,
    time_of_day: Optional[str] = None,
    project_names: Optional[dict[str, str]] = None,
    daily_goal: int = DAILY_GOAL,
) -> str:
    """
    Render the digest.

    Args:
        in_progress: Tasks currently in progress
        priority: Suggested next tasks, used only when nothing is in progress
        stats: Today's completed pomodoros
        time_of_day: "morning" or "evening" adds a greeting; anything else none
        project_names: project_id -> name, for labelling tasks
        daily_goal: Pomodoros per day the user is aiming for
    """
    project_names = project_names or {}
    lines: list[str] = []

    greeting = GREETINGS.get((time_of_day or "").lower())
    if greeting:
        lines.append(greeting)

    if in_progress:
        lines.append("In progress:")
        for task in in_progress:
            lines.extend(_task_lines(task, project_names))
    else:
        lines.append("Suggested next tasks:")
        if priority:
            for task in priority:
                lines.extend(_task_lines(task, project_names))
        else:
            lines.append("No open tasks.")

    lines.append("")
    lines.append(f"Today ({stats.day.isoformat()}):")
    lines.append(f"- Completed pomodoros: {stats.completed_sessions}/{daily_goal}")
    lines.append(f"- Total work time: {stats.total_work_minutes} min")
    return "\n".join(lines)
