"""
Phase timers for pomodoro sessions.

The lifecycle engine holds no timers. After a start or resume the caller
asks the engine for a PhasePlan and hands it to a PhaseScheduler, which
fires "work elapsed" and "break elapsed" callbacks. Callbacks may arrive
late, twice, or not at all; receivers re-read the session before acting.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Awaitable, Callable

from tomato.engine.lifecycle import PhasePlan
from tomato.utils.logging import logger


class Phase(str, Enum):
    """Which part of the pomodoro just ended."""
    WORK = "work"
    BREAK = "break"


PhaseCallback = Callable[[str, Phase], Awaitable[None]]


class PhaseScheduler(ABC):
    """Arms phase-elapsed signals for a session."""

    @abstractmethod
    def schedule(self, plan: PhasePlan, callback: PhaseCallback) -> None:
        """Fire callback(session_id, phase) when each phase of plan ends."""

    @abstractmethod
    def cancel(self, session_id: str) -> None:
        """Drop any pending signals for a session."""


class AsyncioPhaseScheduler(PhaseScheduler):
    """
    In-process scheduler backed by asyncio tasks.

    Only suitable when the server process outlives the session; signals
    are lost on restart, which receivers tolerate.
    """

    def __init__(self):
        self._timers: dict[str, list[asyncio.Task]] = {}

    def schedule(self, plan: PhasePlan, callback: PhaseCallback) -> None:
        # Re-arming replaces whatever was pending for this session
        self.cancel(plan.session_id)
        self._timers[plan.session_id] = [
            asyncio.create_task(self._fire(plan.session_id, Phase.WORK, plan.work_elapsed_after, callback)),
            asyncio.create_task(self._fire(plan.session_id, Phase.BREAK, plan.break_elapsed_after, callback)),
        ]
        logger.info(
            f"Scheduled session {plan.session_id}: work ends in {plan.work_elapsed_after:.0f}s, "
            f"break ends in {plan.break_elapsed_after:.0f}s"
        )

    def cancel(self, session_id: str) -> None:
        for task in self._timers.pop(session_id, []):
            if not task.done():
                task.cancel()

    def pending(self, session_id: str) -> int:
        """Number of signals still waiting to fire for a session."""
        return sum(1 for t in self._timers.get(session_id, []) if not t.done())

    async def shutdown(self) -> None:
        """Cancel every pending signal."""
        tasks = [t for timers in self._timers.values() for t in timers]
        self._timers.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _fire(
        self,
        session_id: str,
        phase: Phase,
        delay: float,
        callback: PhaseCallback,
    ) -> None:
        await asyncio.sleep(delay)
        try:
            await callback(session_id, phase)
        except Exception as e:
            # A failing notification must not kill the other timer
            logger.error(f"Phase callback for session {session_id} ({phase.value}) failed: {e}")
        finally:
            # Last signal of the plan; a re-armed plan keeps its own entry
            timers = self._timers.get(session_id, [])
            if phase == Phase.BREAK and asyncio.current_task() in timers:
                del self._timers[session_id]
