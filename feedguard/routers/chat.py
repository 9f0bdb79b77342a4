# feedguard/routers/chat.py
"""
POST /chat - Pass a chat transcript straight to the completion service.

Unlike /rewrite there is no fallback: an unconfigured service is a 503 and
a failed call is a 502.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from feedguard.auth import require_shared_secret
from feedguard.config import get_settings
from feedguard.llm import ChatMessage, CompletionRequest, CompletionUnavailableError, get_completion_provider
from feedguard.schemas.moderation import ChatRequest, ChatResponse
from feedguard.services.resilience import CompletionTimeoutError, with_timeout

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"], dependencies=[Depends(require_shared_secret)])


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest) -> ChatResponse:
    if not request.messages:
        raise HTTPException(status_code=400, detail="messages is required")

    provider = get_completion_provider()
    if provider is None:
        raise HTTPException(status_code=503, detail="completion service not configured")

    settings = get_settings()
    model = request.model or provider.model_name
    completion = CompletionRequest(
        messages=[ChatMessage(role=m.role, content=m.content) for m in request.messages],
        model=model,
        temperature=settings.COMPLETION_TEMPERATURE,
        max_tokens=settings.COMPLETION_MAX_TOKENS,
        call_type="chat",
    )

    try:
        reply = await with_timeout(
            provider.complete(completion),
            settings.COMPLETION_TIMEOUT_SECONDS,
            "Chat completion timed out",
        )
    except (CompletionUnavailableError, CompletionTimeoutError) as e:
        logger.warning(f"Chat passthrough failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    return ChatResponse(reply=reply, model=model)
