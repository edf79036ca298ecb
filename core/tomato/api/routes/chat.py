"""Chat API routes."""

import uuid
from typing import Optional

from fastapi import APIRouter

from tomato.api.orchestrator_store import get_orchestrator
from tomato.api.schemas import ChatRequest, ChatResponse, SuccessResponse, SummaryResponse
from tomato.utils.logging import logger

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("", response_model=ChatResponse)
async def send_message(request: ChatRequest):
    """
    Send a message to Tomato.
    Starts a new conversation when no conversation_id is given.
    """
    logger.info(f"Received message: {request.message[:50]}...")

    orch = await get_orchestrator()
    conversation_id = request.conversation_id or str(uuid.uuid4())
    response = await orch.handle_message(request.message, conversation_id)

    return ChatResponse(
        id=str(uuid.uuid4()),
        content=response,
        role="assistant",
        conversation_id=conversation_id,
    )


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(time_of_day: Optional[str] = None):
    """Today's digest. time_of_day=morning|evening adds a greeting."""
    orch = await get_orchestrator()
    return SummaryResponse(content=orch.digest(time_of_day))


@router.post("/{conversation_id}/clear", response_model=SuccessResponse)
async def clear_chat(conversation_id: str):
    """Forget the active project/task and any pending confirmation."""
    orch = await get_orchestrator()
    orch.context_for(conversation_id).clear()
    return SuccessResponse(success=True)
