"""Runtime timers for pomodoro phase notifications."""

from tomato.runtime.scheduler import AsyncioPhaseScheduler, Phase, PhaseScheduler

__all__ = ["AsyncioPhaseScheduler", "Phase", "PhaseScheduler"]
