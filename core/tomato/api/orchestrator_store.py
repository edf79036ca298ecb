"""Shared store and orchestrator instances for API routes."""

from typing import Optional

from tomato.engine.classifier import IntentClassifier
from tomato.engine.orchestrator import TomatoOrchestrator
from tomato.runtime.scheduler import AsyncioPhaseScheduler
from tomato.store.sqlite import SQLiteStore

orchestrator: Optional[TomatoOrchestrator] = None


async def get_orchestrator() -> TomatoOrchestrator:
    """Get or create the orchestrator instance."""
    global orchestrator
    if orchestrator is None:
        orchestrator = TomatoOrchestrator(
            store=SQLiteStore(),
            classifier=IntentClassifier(),
            scheduler=AsyncioPhaseScheduler(),
        )
    return orchestrator


async def shutdown() -> None:
    """Cancel pending timers and close the classifier's HTTP client."""
    global orchestrator
    if orchestrator is None:
        return
    if isinstance(orchestrator.scheduler, AsyncioPhaseScheduler):
        await orchestrator.scheduler.shutdown()
    await orchestrator.shutdown()
    orchestrator = None
