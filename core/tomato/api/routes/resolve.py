"""Reference resolution API routes, for clients that resolve names themselves."""

from fastapi import APIRouter

from tomato.api.orchestrator_store import get_orchestrator
from tomato.api.schemas import CandidateResponse, ResolveResponse
from tomato.config import SUGGESTION_LIMIT
from tomato.context.resolver import EntityKind

router = APIRouter(tags=["resolve"])


@router.get("/resolve/{kind}", response_model=ResolveResponse)
async def resolve(kind: EntityKind, q: str, fuzzy: bool = True):
    """
    Resolve a name, fragment or ID to a project or task.

    fuzzy=false reports typo-level matches as ambiguous instead of
    accepting them.
    """
    orch = await get_orchestrator()
    resolved = orch.resolver.resolve(kind, q, accept_fuzzy=fuzzy)
    return ResolveResponse.from_resolution(resolved)


@router.get("/suggest/{kind}", response_model=list[CandidateResponse])
async def suggest(kind: EntityKind, q: str, limit: int = SUGGESTION_LIMIT):
    """Every record ranked by similarity to q, best first."""
    orch = await get_orchestrator()
    return [CandidateResponse.from_candidate(c) for c in orch.resolver.suggest(q, limit, kind)]
