# feedguard/routers/preferences.py
"""
Preference learning endpoints.

POST /learn       - Union like/dislike tokens into the learned sets
GET  /learn       - Export the learned sets
POST /learn/reset - Clear both sets and persist immediately
"""

import logging

from fastapi import APIRouter, Depends

from feedguard.auth import require_shared_secret
from feedguard.schemas.moderation import LearnRequest, PreferenceExportResponse
from feedguard.services.preference_store import PreferenceStore, get_preference_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/learn", tags=["preferences"], dependencies=[Depends(require_shared_secret)])


def _export(store: PreferenceStore) -> PreferenceExportResponse:
    return PreferenceExportResponse(**store.export(), saved_at=store.saved_at)


@router.post("", response_model=PreferenceExportResponse)
def learn(
    request: LearnRequest,
    store: PreferenceStore = Depends(get_preference_store),
) -> PreferenceExportResponse:
    """Add tokens; persisted by the background flush."""
    added_like = store.add_like(request.like)
    added_dislike = store.add_dislike(request.dislike)
    if added_like or added_dislike:
        logger.info(
            f"Learned {added_like} like and {added_dislike} dislike tokens",
            extra={"event": "preferences_learned", "items_processed": added_like + added_dislike},
        )
    return _export(store)


@router.get("", response_model=PreferenceExportResponse)
def export_preferences(store: PreferenceStore = Depends(get_preference_store)) -> PreferenceExportResponse:
    return _export(store)


@router.post("/reset", response_model=PreferenceExportResponse)
def reset_preferences(store: PreferenceStore = Depends(get_preference_store)) -> PreferenceExportResponse:
    """Clear both sets. The empty record is written before responding."""
    if not store.reset():
        logger.warning("Preference reset could not be persisted; will retry on next flush")
    return _export(store)
