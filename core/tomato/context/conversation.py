"""
Conversation context manager for chat-aware task operations.

Everything a conversation remembers (active project, active task, an
action awaiting confirmation, recent messages) lives in the store, so any
request handler can pick the conversation up where the previous one left off.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from tomato.config import HISTORY_LIMIT
from tomato.context.resolver import (
    Candidate,
    EntityKind,
    EntityResolver,
    ResolutionContext,
    ResolvedReference,
)
from tomato.store.models import Project, Task
from tomato.store.sqlite import SQLiteStore


@dataclass
class PendingAction:
    """An action waiting for user confirmation."""
    action: str
    params: dict
    reason: str  # Why confirmation is needed
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "params": self.params,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PendingAction":
        return cls(
            action=data["action"],
            params=data.get("params", {}),
            reason=data.get("reason", ""),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


class ConversationContext:
    """
    Manages the active project/task and confirmation flow of one conversation.

    The resolver never sees this object directly: each resolution call gets
    an explicit ResolutionContext snapshot built from the store.
    """

    CONFIRMATIONS = {
        "yes", "y", "ok", "okay", "sure", "do it", "proceed", "confirm", "delete it",
    }
    CANCELLATIONS = {
        "no", "n", "cancel", "stop", "abort", "nevermind", "never mind", "keep it",
    }

    def __init__(
        self,
        conversation_id: Optional[str] = None,
        store: Optional[SQLiteStore] = None,
        resolver: Optional[EntityResolver] = None,
    ):
        """
        Initialize conversation context.

        Args:
            conversation_id: Unique ID for this conversation. Generated if not provided.
            store: Store instance. Creates new one if not provided.
            resolver: Resolver to use. Built on the store if not provided.
        """
        self.conversation_id = conversation_id or str(uuid.uuid4())
        self.store = store or SQLiteStore()
        self.resolver = resolver or EntityResolver(self.store)

    @property
    def turn_index(self) -> int:
        """Current conversation turn index."""
        return self.store.get_turn_index(self.conversation_id)

    def next_turn(self) -> int:
        """Advance to next turn and return the new index."""
        return self.store.increment_turn(self.conversation_id)

    # --- Active Entities ---

    def snapshot(self) -> ResolutionContext:
        """Current active project/task as an explicit resolution context."""
        return ResolutionContext(
            active_project_id=self.store.get_active_project_id(self.conversation_id),
            active_task_id=self.store.get_active_task_id(self.conversation_id),
        )

    def set_active_task(self, task: Task) -> None:
        """Make task (and its project) what "it" refers to."""
        self.store.set_active_task(self.conversation_id, task.id)
        self.store.set_active_project(self.conversation_id, task.project_id)

    def set_active_project(self, project: Project) -> None:
        self.store.set_active_project(self.conversation_id, project.id)

    def get_active_task(self) -> Optional[Task]:
        task_id = self.store.get_active_task_id(self.conversation_id)
        return self.store.find_task_by_id(task_id) if task_id else None

    def get_active_project(self) -> Optional[Project]:
        project_id = self.store.get_active_project_id(self.conversation_id)
        return self.store.find_project_by_id(project_id) if project_id else None

    def forget_project(self, project_id: str) -> None:
        """Drop references to a deleted project and its tasks."""
        if self.store.get_active_project_id(self.conversation_id) == project_id:
            self.store.set_active_project(self.conversation_id, None)
            self.store.set_active_task(self.conversation_id, None)

    # --- Reference Resolution ---

    def resolve_task(self, reference: Optional[str], accept_fuzzy: bool = True) -> ResolvedReference:
        return self.resolver.resolve_task(reference, self.snapshot(), accept_fuzzy)

    def resolve_project(self, reference: Optional[str], accept_fuzzy: bool = True) -> ResolvedReference:
        return self.resolver.resolve_project(reference, self.snapshot(), accept_fuzzy)

    def suggest(self, reference: str, limit: int, kind: EntityKind = EntityKind.TASK) -> list[Candidate]:
        return self.resolver.suggest(reference, limit, kind)

    # --- Confirmation Flow ---

    def set_pending_action(self, action: str, params: dict, reason: str) -> PendingAction:
        """Store a pending action awaiting confirmation."""
        pending = PendingAction(action=action, params=params, reason=reason)
        self.store.set_pending_action(self.conversation_id, pending.to_dict())
        return pending

    def get_pending_action(self) -> Optional[PendingAction]:
        """Get the pending action if any."""
        data = self.store.get_pending_action(self.conversation_id)
        return PendingAction.from_dict(data) if data else None

    def clear_pending_action(self) -> Optional[PendingAction]:
        """Clear and return the pending action."""
        action = self.get_pending_action()
        self.store.set_pending_action(self.conversation_id, None)
        return action

    def is_confirmation(self, message: str) -> bool:
        """Check if message is a confirmation."""
        return message.lower().strip().rstrip("!.") in self.CONFIRMATIONS

    def is_cancellation(self, message: str) -> bool:
        """Check if message is a cancellation."""
        return message.lower().strip().rstrip("!.") in self.CANCELLATIONS

    # --- History ---

    def record_exchange(self, message: str, reply: str) -> None:
        """Remember one user message and its reply, capped at HISTORY_LIMIT."""
        self.store.append_messages(
            self.conversation_id,
            [
                {"role": "user", "content": message},
                {"role": "assistant", "content": reply},
            ],
            HISTORY_LIMIT,
        )

    def recent_messages(self, limit: Optional[int] = None) -> list[dict]:
        messages = self.store.get_messages(self.conversation_id)
        if limit is None:
            return messages
        return messages[-limit:] if limit > 0 else []

    # --- Cleanup ---

    def clear(self) -> None:
        """Clear all state for this conversation."""
        self.store.clear_conversation(self.conversation_id)
