"""
The orchestrator turns chat messages into task and pomodoro operations.

Per message it loads the conversation's context from the store, asks the
classifier for an intent, validates it, and dispatches to a handler.
Nothing is kept in memory between messages.
"""

import re
import uuid
from datetime import datetime
from typing import Awaitable, Callable, Optional

from tomato.config import (
    DAILY_GOAL,
    DEFAULT_BREAK_MINUTES,
    DEFAULT_WORK_MINUTES,
    PROMPT_HISTORY_MESSAGES,
    SUGGESTION_LIMIT,
)
from tomato.context.conversation import ConversationContext, PendingAction
from tomato.context.resolver import EntityKind, EntityResolver, MatchKind, ResolvedReference
from tomato.engine.classifier import IntentClassifier
from tomato.engine.intents import (
    ComingBack,
    CompletePomodoro,
    CreateProject,
    CreateProjects,
    CreateTask,
    CreateTasks,
    DeleteProject,
    GoingOut,
    ListTasks,
    PausePomodoro,
    ResumePomodoro,
    StartPomodoro,
    parse_intent,
)
from tomato.engine.lifecycle import BatchReport, SessionLifecycleEngine
from tomato.errors import (
    InvalidStateError,
    NotFoundError,
    StoreFailure,
    ValidationFailure,
)
from tomato.runtime.scheduler import Phase, PhaseScheduler
from tomato.services.digest import build_digest
from tomato.services.tasks import TaskService
from tomato.store.models import Session, SessionStatus, Task, TaskStatus
from tomato.store.sqlite import SQLiteStore
from tomato.utils.logging import logger
from tomato.utils.response_formatter import ResponseFormatter

Notifier = Callable[[str], Awaitable[None]]

# Session states each action may target when no session is named
TARGET_STATES = {
    "pause": (SessionStatus.ACTIVE,),
    "resume": (SessionStatus.PAUSED,),
    "complete": (SessionStatus.ACTIVE, SessionStatus.PAUSED),
}


class TomatoOrchestrator:
    """
    Main chat entry point.

    Handles:
    - Intent classification and validation
    - Project/task CRUD through TaskService
    - Pomodoro sessions through SessionLifecycleEngine
    - Confirmation before destructive actions
    - Phase-elapsed signals from the scheduler
    """

    def __init__(
        self,
        store: SQLiteStore,
        classifier: IntentClassifier,
        scheduler: Optional[PhaseScheduler] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.classifier = classifier
        self.scheduler = scheduler
        self.notifier = notifier
        self.clock = clock or datetime.now

        self.resolver = EntityResolver(store)
        self.tasks = TaskService(store, clock=self.clock)
        self.engine = SessionLifecycleEngine(store, clock=self.clock)

        self._handlers = {
            "list_projects": self._list_projects,
            "list_tasks": self._list_tasks,
            "create_project": self._create_project,
            "create_projects": self._create_projects,
            "create_task": self._create_task,
            "create_tasks": self._create_tasks,
            "delete_project": self._delete_project,
            "start_pomodoro": self._start_pomodoro,
            "pause_pomodoro": self._pause_pomodoro,
            "resume_pomodoro": self._resume_pomodoro,
            "complete_pomodoro": self._complete_pomodoro,
            "session_status": self._session_status,
            "going_out": self._going_out,
            "coming_back": self._coming_back,
            "show_summary": self._show_summary,
            "help": self._help,
            "unknown": self._unknown,
        }

    def context_for(self, conversation_id: Optional[str] = None) -> ConversationContext:
        return ConversationContext(
            conversation_id or str(uuid.uuid4()),
            store=self.store,
            resolver=self.resolver,
        )

    async def handle_message(self, message: str, conversation_id: Optional[str] = None) -> str:
        """
        Process one user message.

        Args:
            message: The user's message
            conversation_id: Conversation whose context to use

        Returns:
            The reply text
        """
        context = self.context_for(conversation_id)

        try:
            context.next_turn()
            reply = await self._reply(context, message)
        except InvalidStateError as e:
            reply = ResponseFormatter.format_invalid_state(e)
        except NotFoundError as e:
            reply = ResponseFormatter.format_missing(e)
        except ValidationFailure as e:
            reply = ResponseFormatter.format_validation_failure(e)
        except StoreFailure as e:
            logger.error(f"[{context.conversation_id}] store failure: {e}")
            return ResponseFormatter.format_store_failure()

        try:
            context.record_exchange(message, reply)
        except StoreFailure as e:
            # The reply is still valid; only the history entry is lost
            logger.error(f"[{context.conversation_id}] could not record history: {e}")
        return reply

    async def _reply(self, context: ConversationContext, message: str) -> str:
        # Check for pending confirmation first
        pending_response = await self._handle_pending_action(context, message)
        if pending_response is not None:
            return pending_response

        payload = await self.classifier.classify(message, self._context_prompt(context))
        intent = parse_intent(payload)
        logger.info(f"[{context.conversation_id}] intent: {intent.intent}")

        return await self._handlers[intent.intent](context, intent)

    def digest(self, time_of_day: Optional[str] = None) -> str:
        """Today's digest: tasks in progress (or up next) and completed pomodoros."""
        return build_digest(
            in_progress=self.tasks.list_tasks(status=TaskStatus.IN_PROGRESS),
            priority=self.tasks.priority_tasks(5),
            stats=self.engine.daily_stats(),
            time_of_day=time_of_day,
            project_names={p.id: p.name for p in self.tasks.list_projects()},
        )

    async def on_phase_elapsed(self, session_id: str, phase: Phase) -> None:
        """
        Scheduler callback.

        Signals may be late or duplicated, so the session is re-read and
        anything that is no longer active is ignored.
        """
        session = self.store.find_session_by_id(session_id)
        if session is None or session.status != SessionStatus.ACTIVE:
            logger.debug(f"Ignoring {phase.value} signal for session {session_id}")
            return

        task = self.store.find_task_by_id(session.task_id)
        if phase == Phase.BREAK:
            self.engine.complete(session_id)
        await self._notify(ResponseFormatter.format_phase_elapsed(phase.value, task))

    async def shutdown(self) -> None:
        await self.classifier.aclose()

    # ─────────────────────────────────────────────────────────
    # Session operations (keep the scheduler in sync)
    # ─────────────────────────────────────────────────────────

    def start_session(
        self,
        task_id: str,
        work_minutes: int = DEFAULT_WORK_MINUTES,
        break_minutes: int = DEFAULT_BREAK_MINUTES,
    ) -> Session:
        session = self.engine.get(self.engine.start(task_id, work_minutes, break_minutes))
        self._arm(session)
        return session

    def pause_session(self, session_id: str) -> Session:
        session = self.engine.pause(session_id)
        self._disarm(session_id)
        return session

    def resume_session(self, session_id: str) -> Session:
        session = self.engine.resume(session_id)
        self._arm(session)
        return session

    def complete_session(self, session_id: str) -> Session:
        session = self.engine.complete(session_id)
        self._disarm(session_id)
        return session

    def delete_session(self, session_id: str) -> None:
        self.engine.delete(session_id)
        self._disarm(session_id)

    def pause_all(self) -> BatchReport:
        report = self.engine.pause_all()
        for session_id in report.succeeded:
            self._disarm(session_id)
        return report

    def resume_all(self) -> BatchReport:
        report = self.engine.resume_all()
        for session_id in report.succeeded:
            self._arm(self.engine.get(session_id))
        return report

    # ─────────────────────────────────────────────────────────
    # Confirmation flow
    # ─────────────────────────────────────────────────────────

    async def _handle_pending_action(
        self,
        context: ConversationContext,
        message: str,
    ) -> Optional[str]:
        """Handle confirmation, selection or cancellation of a pending action."""
        pending = context.get_pending_action()
        if not pending:
            return None

        if context.is_confirmation(message):
            context.clear_pending_action()
            return self._execute_pending(context, pending, choice=0)

        if context.is_cancellation(message):
            context.clear_pending_action()
            return "Action cancelled."

        # Numbered reply to a "which one did you mean?" list
        choice = self._parse_ordinal_selection(message)
        if choice is not None and choice < len(pending.params.get("candidates", [])):
            context.clear_pending_action()
            return self._execute_pending(context, pending, choice=choice)

        # Anything else drops the question and is handled as a new message
        context.clear_pending_action()
        return None

    def _execute_pending(
        self,
        context: ConversationContext,
        pending: PendingAction,
        choice: int,
    ) -> str:
        params = pending.params
        logger.info(f"[{context.conversation_id}] confirmed {pending.action}")

        if pending.action == "delete_project":
            deleted = self.tasks.delete_project(params["project_id"])
            context.forget_project(params["project_id"])
            return ResponseFormatter.format_project_deleted(params["project_name"], deleted)

        if pending.action == "start_pomodoro":
            task = self.tasks.get_task(params["candidates"][choice])
            return self._start(context, task, params.get("work_minutes"), params.get("break_minutes"))

        logger.warning(f"Unknown pending action: {pending.action}")
        return ResponseFormatter.format_unknown()

    @staticmethod
    def _parse_ordinal_selection(message: str) -> Optional[int]:
        """Parse "2" or "#2" into a zero-based index."""
        match = re.fullmatch(r"#?\s*(\d{1,2})[.)]?", message.strip())
        if not match:
            return None
        index = int(match.group(1)) - 1
        return index if index >= 0 else None

    # ─────────────────────────────────────────────────────────
    # Projects & tasks
    # ─────────────────────────────────────────────────────────

    async def _list_projects(self, context, intent) -> str:
        return ResponseFormatter.format_project_list(self.tasks.list_projects())

    async def _list_tasks(self, context: ConversationContext, intent: ListTasks) -> str:
        project = None
        if intent.project:
            project, reply = self._resolve_or_reply(context, EntityKind.PROJECT, intent.project)
            if reply:
                return reply
            context.set_active_project(project)

        tasks = self.tasks.list_tasks(
            project_id=project.id if project else None,
            status=intent.status,
        )
        return ResponseFormatter.format_task_list(tasks, project)

    async def _create_project(self, context: ConversationContext, intent: CreateProject) -> str:
        project = self.tasks.create_project(intent.name, intent.description, intent.deadline)
        context.set_active_project(project)
        return ResponseFormatter.format_projects_created([project])

    async def _create_projects(self, context: ConversationContext, intent: CreateProjects) -> str:
        projects = self.tasks.create_projects([p.model_dump() for p in intent.projects])
        context.set_active_project(projects[-1])
        return ResponseFormatter.format_projects_created(projects)

    async def _create_task(self, context: ConversationContext, intent: CreateTask) -> str:
        project, reply = self._resolve_or_reply(context, EntityKind.PROJECT, intent.project)
        if reply:
            return reply

        task = self.tasks.create_task(
            project.id,
            intent.title,
            intent.description,
            intent.estimated_minutes,
            intent.deadline,
        )
        context.set_active_task(task)
        return ResponseFormatter.format_tasks_created([task], project)

    async def _create_tasks(self, context: ConversationContext, intent: CreateTasks) -> str:
        project, reply = self._resolve_or_reply(context, EntityKind.PROJECT, intent.project)
        if reply:
            return reply

        tasks = self.tasks.create_tasks(project.id, [t.model_dump() for t in intent.tasks])
        context.set_active_project(project)
        return ResponseFormatter.format_tasks_created(tasks, project)

    async def _delete_project(self, context: ConversationContext, intent: DeleteProject) -> str:
        project, reply = self._resolve_or_reply(context, EntityKind.PROJECT, intent.project)
        if reply:
            return reply

        task_count = len(self.tasks.list_tasks(project_id=project.id))
        context.set_pending_action(
            "delete_project",
            {"project_id": project.id, "project_name": project.name},
            reason="Deleting a project removes its tasks and sessions",
        )
        return ResponseFormatter.format_confirmation_request(project, task_count)

    # ─────────────────────────────────────────────────────────
    # Pomodoro
    # ─────────────────────────────────────────────────────────

    async def _start_pomodoro(self, context: ConversationContext, intent: StartPomodoro) -> str:
        try:
            resolved = context.resolve_task(intent.task, accept_fuzzy=False)
        except ValidationFailure:
            return ResponseFormatter.format_no_active(EntityKind.TASK)

        if self._guessed_from_pronoun(intent.task, resolved):
            return ResponseFormatter.format_no_active(EntityKind.TASK)

        if resolved.is_ambiguous:
            # Typo-level match: ask before starting on the wrong task
            context.set_pending_action(
                "start_pomodoro",
                {
                    "candidates": [c.entity.id for c in resolved.candidates],
                    "work_minutes": intent.work_minutes,
                    "break_minutes": intent.break_minutes,
                },
                reason=resolved.reason,
            )
            return resolved.format_disambiguation(EntityKind.TASK)

        if not resolved.is_found:
            return self._not_found_reply(context, EntityKind.TASK, intent.task)

        return self._start(context, resolved.entity, intent.work_minutes, intent.break_minutes)

    def _start(
        self,
        context: ConversationContext,
        task: Task,
        work_minutes: Optional[int],
        break_minutes: Optional[int],
    ) -> str:
        session = self.start_session(
            task.id,
            work_minutes or DEFAULT_WORK_MINUTES,
            break_minutes or DEFAULT_BREAK_MINUTES,
        )
        context.set_active_task(task)
        return ResponseFormatter.format_session_started(session, task)

    async def _pause_pomodoro(self, context: ConversationContext, intent: PausePomodoro) -> str:
        session, reply = self._target_session(context, intent, "pause")
        if reply:
            return reply
        session = self.pause_session(session.id)
        return ResponseFormatter.format_session_changed(session, self.store.find_task_by_id(session.task_id))

    async def _resume_pomodoro(self, context: ConversationContext, intent: ResumePomodoro) -> str:
        session, reply = self._target_session(context, intent, "resume")
        if reply:
            return reply
        session = self.resume_session(session.id)
        return ResponseFormatter.format_session_changed(session, self.store.find_task_by_id(session.task_id))

    async def _complete_pomodoro(self, context: ConversationContext, intent: CompletePomodoro) -> str:
        session, reply = self._target_session(context, intent, "complete")
        if reply:
            return reply
        session = self.complete_session(session.id)
        return ResponseFormatter.format_session_changed(session, self.store.find_task_by_id(session.task_id))

    async def _session_status(self, context, intent) -> str:
        sessions = self.engine.list_active() + self.engine.list_paused()
        entries = [
            (s, self.store.find_task_by_id(s.task_id), self.engine.remaining_minutes(s))
            for s in sessions
        ]
        return ResponseFormatter.format_session_status(entries)

    async def _going_out(self, context: ConversationContext, intent: GoingOut) -> str:
        report = self.pause_all()
        return ResponseFormatter.format_going_out(report, intent.reason, intent.duration)

    async def _coming_back(self, context: ConversationContext, intent: ComingBack) -> str:
        return ResponseFormatter.format_coming_back(self.resume_all())

    # ─────────────────────────────────────────────────────────
    # Misc
    # ─────────────────────────────────────────────────────────

    async def _show_summary(self, context, intent) -> str:
        return self.digest()

    async def _help(self, context, intent) -> str:
        return ResponseFormatter.format_help()

    async def _unknown(self, context, intent) -> str:
        return ResponseFormatter.format_unknown()

    # ─────────────────────────────────────────────────────────
    # Helpers
    # ─────────────────────────────────────────────────────────

    def _resolve_or_reply(
        self,
        context: ConversationContext,
        kind: EntityKind,
        reference: Optional[str],
    ):
        """Resolve a reference, or return the reply explaining why not."""
        try:
            resolved = context.resolver.resolve(kind, reference, context.snapshot())
        except ValidationFailure:
            return None, ResponseFormatter.format_no_active(kind)

        if self._guessed_from_pronoun(reference, resolved):
            return None, ResponseFormatter.format_no_active(kind)
        if resolved.is_found:
            return resolved.entity, None
        if resolved.is_ambiguous:
            return None, resolved.format_disambiguation(kind)
        return None, self._not_found_reply(context, kind, reference)

    def _guessed_from_pronoun(self, reference: Optional[str], resolved: ResolvedReference) -> bool:
        """A pronoun without usable context that only matched part of a name."""
        if not reference or not self.resolver.CONTEXT_PRONOUNS.match(reference.strip()):
            return False
        return resolved.match not in (MatchKind.CONTEXT, MatchKind.ID, MatchKind.EXACT)

    def _not_found_reply(
        self,
        context: ConversationContext,
        kind: EntityKind,
        reference: Optional[str],
    ) -> str:
        if not reference or context.resolver.CONTEXT_PRONOUNS.match(reference.strip()):
            return ResponseFormatter.format_no_active(kind)
        suggestions = [
            c for c in context.suggest(reference, SUGGESTION_LIMIT, kind) if c.score > 0
        ]
        return ResponseFormatter.format_not_found(reference, kind, suggestions)

    def _target_session(self, context: ConversationContext, intent, action: str):
        """
        Pick the session a pause/resume/complete applies to.

        Order: the named session; for a named task, its latest matching
        session or else its latest session (never another task's); for the
        active task, its latest matching session; then the latest matching
        session overall, then the latest session of any state.
        """
        if intent.session_id:
            return self.engine.get(intent.session_id), None

        states = TARGET_STATES[action]

        if intent.task:
            task, reply = self._resolve_or_reply(context, EntityKind.TASK, intent.task)
            if reply:
                return None, reply
            context.set_active_task(task)
            # A named task never falls back to another task's session
            sessions = self.engine.list_for_task(task.id)
            for session in sessions:
                if session.status in states:
                    return session, None
            if sessions:
                return sessions[0], None
            return None, ResponseFormatter.format_no_session(task, action)

        task = context.get_active_task()
        if task:
            for session in self.engine.list_for_task(task.id):
                if session.status in states:
                    return session, None

        everything = self.store.list_sessions()
        for session in everything:
            if session.status in states:
                return session, None
        if everything:
            # Let the engine report why the latest session can't take this action
            return everything[0], None
        return None, ResponseFormatter.format_session_status([])

    def _arm(self, session: Session) -> None:
        if self.scheduler is not None:
            self.scheduler.schedule(self.engine.phase_plan(session), self.on_phase_elapsed)

    def _disarm(self, session_id: str) -> None:
        if self.scheduler is not None:
            self.scheduler.cancel(session_id)

    async def _notify(self, text: str) -> None:
        if self.notifier is None:
            logger.info(f"Notification: {text}")
            return
        await self.notifier(text)

    def _context_prompt(self, context: ConversationContext) -> str:
        """Today's progress, active project/task and the last few messages."""
        stats = self.engine.daily_stats()
        lines = [
            f"Today: {stats.day.isoformat()}",
            f"Completed pomodoros: {stats.completed_sessions}/{DAILY_GOAL}",
        ]
        project = context.get_active_project()
        if project:
            lines.append(f"Active project: {project.name}")
        task = context.get_active_task()
        if task:
            lines.append(f"Active task: {task.title}")

        recent = context.recent_messages(PROMPT_HISTORY_MESSAGES)
        if recent:
            lines.append("Recent conversation:")
            for msg in recent:
                speaker = "User" if msg["role"] == "user" else "Assistant"
                lines.append(f"{speaker}: {msg['content']}")
        return "\n".join(lines)
