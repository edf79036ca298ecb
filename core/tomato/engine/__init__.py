"""Engine module - session lifecycle and intent handling.

TomatoOrchestrator is imported from tomato.engine.orchestrator directly;
it depends on tomato.runtime, which itself builds on the lifecycle engine.
"""

from tomato.engine.intents import Intent, parse_intent
from tomato.engine.lifecycle import BatchReport, DailyStats, PhasePlan, SessionLifecycleEngine

__all__ = [
    "BatchReport",
    "DailyStats",
    "Intent",
    "PhasePlan",
    "SessionLifecycleEngine",
    "parse_intent",
]
