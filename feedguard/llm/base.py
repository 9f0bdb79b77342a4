# feedguard/llm/base.py
"""
Base interface for completion providers.
Allows swapping between OpenAI or other chat-completion providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

VALID_ROLES = ("system", "user", "assistant")


@dataclass
class ChatMessage:
    """A single role-tagged chat message."""
    role: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"role": self.role, "content": self.content}


@dataclass
class CompletionRequest:
    """Payload for one chat completion call."""
    messages: List[ChatMessage]
    model: Optional[str] = None  # None = provider default
    temperature: float = 0.4
    max_tokens: int = 800
    call_type: str = "rewrite"
    metadata: Dict[str, Any] = field(default_factory=dict)


class CompletionUnavailableError(Exception):
    """
    The completion service could not produce a usable answer.

    Covers network failures, non-success statuses and empty or unparseable
    bodies. Callers on the rewrite path always recover from it locally.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class CompletionProvider(ABC):
    """Abstract base class for completion providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the provider name (e.g., 'openai')."""
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the default model (e.g., 'gpt-4o-mini')."""
        pass

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> str:
        """
        Run a chat completion.

        Args:
            request: Messages plus sampling parameters

        Returns:
            The completion text, stripped and non-empty

        Raises:
            CompletionUnavailableError: On any failure, including an empty answer
        """
        pass

    async def close(self) -> None:
        """Release network resources. Default: nothing to release."""
        return None
