# feedguard/routers/dialects.py
"""
GET /dialects - Available style profiles.
"""

from fastapi import APIRouter, Depends

from feedguard.auth import require_shared_secret
from feedguard.llm.prompts import StyleProfile, list_bare_styles, list_dialects
from feedguard.schemas.moderation import DialectListResponse, StyleInfo

router = APIRouter(tags=["styles"], dependencies=[Depends(require_shared_secret)])


def _info(profile: StyleProfile) -> StyleInfo:
    return StyleInfo(
        key=profile.key,
        label=profile.label,
        description=profile.description,
        family=profile.family.value,
    )


@router.get("/dialects", response_model=DialectListResponse)
def dialects() -> DialectListResponse:
    return DialectListResponse(
        dialects=[_info(p) for p in list_dialects()],
        styles=[_info(p) for p in list_bare_styles()],
    )
