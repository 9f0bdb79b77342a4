# feedguard/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.
"""

from feedguard.schemas.moderation import (
    AnalyzeRequest,
    AnalyzeResponse,
    ChatMessageIn,
    ChatRequest,
    ChatResponse,
    DialectListResponse,
    HealthResponse,
    ItemSuggestion,
    LearnRequest,
    PreferenceExportResponse,
    RewriteMeta,
    RewriteRequest,
    RewriteResponse,
    StyleInfo,
)

__all__ = [
    "AnalyzeRequest",
    "AnalyzeResponse",
    "ItemSuggestion",
    "RewriteRequest",
    "RewriteResponse",
    "RewriteMeta",
    "LearnRequest",
    "PreferenceExportResponse",
    "DialectListResponse",
    "StyleInfo",
    "ChatMessageIn",
    "ChatRequest",
    "ChatResponse",
    "HealthResponse",
]
