# feedguard/llm/__init__.py
"""
Completion provider abstraction layer.

Usage:
    from feedguard.llm import get_completion_provider

    provider = get_completion_provider()  # None when unconfigured
    if provider is not None:
        text = await provider.complete(request)
"""

from __future__ import annotations

import logging
from typing import Optional

from feedguard.config import get_settings
from feedguard.llm.base import (
    ChatMessage,
    CompletionProvider,
    CompletionRequest,
    CompletionUnavailableError,
)

logger = logging.getLogger(__name__)

__all__ = [
    "ChatMessage",
    "CompletionProvider",
    "CompletionRequest",
    "CompletionUnavailableError",
    "get_completion_provider",
    "set_completion_provider",
    "reset_completion_provider",
]

_UNSET = object()

# Global singleton instance (None = no remote path)
_completion_provider: object = _UNSET


def _build_provider(provider_name: str) -> Optional[CompletionProvider]:
    settings = get_settings()

    if provider_name in ("", "none", "off"):
        return None

    if provider_name == "openai":
        if not settings.OPENAI_API_KEY:
            logger.info("OPENAI_API_KEY not set; rewrites will use the local fallback")
            return None

        from feedguard.llm.openai_provider import OpenAIProvider

        return OpenAIProvider(
            api_key=settings.OPENAI_API_KEY,
            model=settings.OPENAI_MODEL,
            timeout=settings.COMPLETION_TIMEOUT_SECONDS,
        )

    raise ValueError(f"Unknown completion provider: {provider_name}. Available: openai, none")


def get_completion_provider(provider_name: Optional[str] = None) -> Optional[CompletionProvider]:
    """
    Get or create the completion provider instance.

    Args:
        provider_name: 'openai' or 'none' (default from COMPLETION_PROVIDER)

    Returns:
        CompletionProvider singleton, or None when the remote path is unconfigured
    """
    global _completion_provider

    if _completion_provider is not _UNSET:
        return _completion_provider  # type: ignore[return-value]

    name = (provider_name or get_settings().COMPLETION_PROVIDER).lower().strip()
    _completion_provider = _build_provider(name)

    if _completion_provider is not None:
        logger.info(f"Completion provider initialized: {_completion_provider.name}")
    return _completion_provider  # type: ignore[return-value]


def set_completion_provider(provider: Optional[CompletionProvider]) -> None:
    """
    Set a custom completion provider, or None to force the fallback path (useful for testing).
    """
    global _completion_provider
    _completion_provider = provider


def reset_completion_provider() -> None:
    """
    Reset the completion provider singleton (for testing).
    """
    global _completion_provider
    _completion_provider = _UNSET
