"""
Persistence for projects, tasks and pomodoro sessions.

This module provides:
- Project, Task, Session: domain records
- StoreQueryPort / SessionStorePort: the ports the core depends on
- SQLiteStore: the SQLite implementation of both ports
"""

from tomato.store.base import SESSION_UPDATABLE_FIELDS, SessionStorePort, StoreQueryPort, WorkStore
from tomato.store.models import Project, Session, SessionStatus, Task, TaskStatus
from tomato.store.sqlite import SQLiteStore

__all__ = [
    "Project",
    "Session",
    "SessionStatus",
    "Task",
    "TaskStatus",
    "StoreQueryPort",
    "SessionStorePort",
    "SESSION_UPDATABLE_FIELDS",
    "WorkStore",
    "SQLiteStore",
]
