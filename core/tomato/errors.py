"""Exception hierarchy for Tomato.

One exception per failure mode. Callers decide presentation and retry
policy; nothing in the core retries on its own.
"""


class TomatoError(Exception):
    """Base exception for all Tomato errors."""


class NotFoundError(TomatoError):
    """A referenced project, task or session does not exist."""
    def __init__(self, kind: str, reference: str):
        self.kind = kind
        self.reference = reference
        super().__init__(f"{kind.capitalize()} not found: {reference}")


class InvalidStateError(TomatoError):
    """A session transition was attempted from an incompatible state."""
    def __init__(self, session_id: str, current: str, action: str):
        self.session_id = session_id
        self.current = current
        self.action = action
        super().__init__(
            f"Cannot {action} session {session_id}: session is {current}"
        )


class StoreFailure(TomatoError):
    """The persistence layer reported an error."""
    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Store operation '{operation}' failed: {reason}")


class ValidationFailure(TomatoError):
    """Input was rejected before reaching the store."""
    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid {field}: {reason}")
