# feedguard/routers/moderation.py
"""
Moderation endpoints.

POST /analyze - Classify items as keep / hide / rewrite
POST /rewrite - Rewrite items into a style, with local fallback
"""

import logging

from fastapi import APIRouter, Depends

from feedguard.auth import require_shared_secret
from feedguard.schemas.moderation import (
    AnalyzeRequest,
    AnalyzeResponse,
    ItemSuggestion,
    RewriteMeta,
    RewriteRequest,
    RewriteResponse,
)
from feedguard.services.batch_coordinator import BatchCoordinator
from feedguard.services.decision_engine import DecisionEngine
from feedguard.services.preference_store import get_preference_store
from feedguard.services.rewrite_orchestrator import get_rewrite_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["moderation"], dependencies=[Depends(require_shared_secret)])


def get_batch_coordinator() -> BatchCoordinator:
    return BatchCoordinator(
        engine=DecisionEngine(preferences=get_preference_store()),
        orchestrator=get_rewrite_orchestrator(),
    )


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze(
    request: AnalyzeRequest,
    coordinator: BatchCoordinator = Depends(get_batch_coordinator),
) -> AnalyzeResponse:
    """
    Classify a batch.

    Learned dislike tokens and heuristic hits gated by `level` win over
    like tokens. Every well-formed input id appears in `results`.
    """
    results = coordinator.classify(
        request.items,
        level=request.level,
        like_tokens=request.like_tokens,
        dislike_tokens=request.dislike_tokens,
    )
    return AnalyzeResponse(
        results={item_id: ItemSuggestion(suggest=r.suggest) for item_id, r in results.items()}
    )


@router.post("/rewrite", response_model=RewriteResponse)
async def rewrite(
    request: RewriteRequest,
    coordinator: BatchCoordinator = Depends(get_batch_coordinator),
) -> RewriteResponse:
    """
    Rewrite a batch into `style`.

    Always succeeds: items the completion service cannot serve are rewritten
    locally, and `meta.paths` records which path served each one.
    """
    batch = await coordinator.rewrite(request.items, style=request.style, strength=request.strength)
    return RewriteResponse(
        results=batch.results,
        meta=RewriteMeta(style=batch.style, paths=batch.paths, counts=batch.counts),
    )
