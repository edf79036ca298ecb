"""Services module - task bookkeeping and the daily digest."""

from tomato.services.digest import build_digest
from tomato.services.tasks import TaskService

__all__ = ["TaskService", "build_digest"]
