# feedguard/schemas/moderation.py
"""
Schemas for the moderation endpoints.

Request fields are coerced rather than rejected: a non-list `items` becomes
an empty batch and non-string options fall back to their defaults, so a
malformed request yields an empty result instead of a 422.
"""

from typing import Any

from pydantic import BaseModel, Field, field_validator

from feedguard.llm.base import VALID_ROLES
from feedguard.services.types import RewritePath, Suggestion


def _as_list(v: Any) -> list:
    return v if isinstance(v, list) else []


def _as_optional_str(v: Any) -> str | None:
    if v is None or isinstance(v, (dict, list, bool)):
        return None
    return str(v)


# -----------------------------------------------------------------------------
# Analyze
# -----------------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    """Request to classify a batch of items."""

    items: list[Any] = Field(default_factory=list, description="Items of the form {id, text}")
    level: str | None = Field(None, description="relaxed|moderate|strict (default from config)")
    like_tokens: list[Any] = Field(default_factory=list, description="Request-scoped like tokens")
    dislike_tokens: list[Any] = Field(default_factory=list, description="Request-scoped dislike tokens")

    @field_validator("items", "like_tokens", "dislike_tokens", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> list:
        return _as_list(v)

    @field_validator("level", mode="before")
    @classmethod
    def coerce_level(cls, v: Any) -> str | None:
        return _as_optional_str(v)


class ItemSuggestion(BaseModel):
    suggest: Suggestion


class AnalyzeResponse(BaseModel):
    """Classification per item id."""

    results: dict[str, ItemSuggestion] = Field(default_factory=dict)


# -----------------------------------------------------------------------------
# Rewrite
# -----------------------------------------------------------------------------


class RewriteRequest(BaseModel):
    """Request to rewrite a batch of items into a style."""

    items: list[Any] = Field(default_factory=list, description="Items of the form {id, text}")
    style: str | None = Field("polite_clean", description="Bare style keyword or dialect:<name>")
    strength: str | None = Field(None, description="light|normal|strong")

    @field_validator("items", mode="before")
    @classmethod
    def coerce_items(cls, v: Any) -> list:
        return _as_list(v)

    @field_validator("style", "strength", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str | None:
        return _as_optional_str(v)


class RewriteMeta(BaseModel):
    """Which path served each item."""

    style: str
    paths: dict[str, RewritePath] = Field(default_factory=dict)
    counts: dict[str, int] = Field(default_factory=dict)


class RewriteResponse(BaseModel):
    results: dict[str, str] = Field(default_factory=dict)
    meta: RewriteMeta


# -----------------------------------------------------------------------------
# Learn
# -----------------------------------------------------------------------------


class LearnRequest(BaseModel):
    """Tokens to union into the learned preference sets."""

    like: list[Any] = Field(default_factory=list)
    dislike: list[Any] = Field(default_factory=list)

    @field_validator("like", "dislike", mode="before")
    @classmethod
    def coerce_list(cls, v: Any) -> list:
        return _as_list(v)


class PreferenceExportResponse(BaseModel):
    """Current learned preferences, sorted."""

    like: list[str] = Field(default_factory=list)
    dislike: list[str] = Field(default_factory=list)
    saved_at: str | None = Field(None, description="When the durable record was last written")


# -----------------------------------------------------------------------------
# Dialects
# -----------------------------------------------------------------------------


class StyleInfo(BaseModel):
    key: str
    label: str
    description: str
    family: str


class DialectListResponse(BaseModel):
    """Available dialect profiles and bare style keywords."""

    dialects: list[StyleInfo] = Field(default_factory=list)
    styles: list[StyleInfo] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Chat passthrough
# -----------------------------------------------------------------------------


class ChatMessageIn(BaseModel):
    role: str
    content: str

    @field_validator("role")
    @classmethod
    def check_role(cls, v: str) -> str:
        v = v.lower().strip()
        if v not in VALID_ROLES:
            raise ValueError(f"role must be one of {', '.join(VALID_ROLES)}")
        return v


class ChatRequest(BaseModel):
    messages: list[ChatMessageIn] = Field(default_factory=list)
    model: str | None = None


class ChatResponse(BaseModel):
    reply: str
    model: str


# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    service: str
    time: str
    completion_configured: bool
