# feedguard/llm/openai_provider.py
"""
OpenAI completion provider implementation.
"""

from __future__ import annotations

import logging
from typing import Optional

import openai
from openai import AsyncOpenAI
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from feedguard.llm.base import (
    CompletionProvider,
    CompletionRequest,
    CompletionUnavailableError,
)
from feedguard.logging_config import log_completion_call

logger = logging.getLogger(__name__)

# Transient errors worth one more attempt inside the caller's deadline
_RETRYABLE_ERRORS = (openai.RateLimitError, openai.InternalServerError)


class OpenAIProvider(CompletionProvider):
    """OpenAI-based completion provider."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 12.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        """
        Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key.
            model: Default model when a request does not name one.
            timeout: HTTP timeout handed to the SDK client.
            client: Pre-built client (tests inject a mock here).
        """
        if not api_key and client is None:
            raise ValueError("OpenAI API key required. Set OPENAI_API_KEY or pass api_key.")

        self._model = model
        # SDK-level retries are off: tenacity below owns the retry budget.
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def name(self) -> str:
        return "openai"

    @property
    def model_name(self) -> str:
        return self._model

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=2),
        retry=retry_if_exception_type(_RETRYABLE_ERRORS),
        reraise=True,
    )
    async def _chat_completion(self, request: CompletionRequest, model: str):
        return await self._client.chat.completions.create(
            model=model,
            messages=[m.to_dict() for m in request.messages],
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )

    async def complete(self, request: CompletionRequest) -> str:
        """Run a chat completion, mapping every failure to CompletionUnavailableError."""
        model = request.model or self._model

        try:
            with log_completion_call(self.name, model, request.call_type) as metrics:
                response = await self._chat_completion(request, model)

                usage = getattr(response, "usage", None)
                if usage is not None:
                    metrics["tokens_in"] = getattr(usage, "prompt_tokens", 0) or 0
                    metrics["tokens_out"] = getattr(usage, "completion_tokens", 0) or 0

                choices = getattr(response, "choices", None) or []
                content = choices[0].message.content if choices else None
                text = (content or "").strip()
                if not text:
                    raise CompletionUnavailableError("Empty completion from OpenAI")
                return text

        except CompletionUnavailableError:
            raise
        except openai.APIStatusError as e:
            message = _error_message(e) or f"OpenAI HTTP {e.status_code}"
            raise CompletionUnavailableError(message, status_code=e.status_code) from e
        except openai.APITimeoutError as e:
            raise CompletionUnavailableError("OpenAI request timed out") from e
        except openai.APIConnectionError as e:
            raise CompletionUnavailableError(f"OpenAI connection failed: {e}") from e
        except (AttributeError, IndexError, TypeError, ValueError) as e:
            raise CompletionUnavailableError(f"Malformed OpenAI response: {e}") from e

    async def close(self) -> None:
        await self._client.close()


def _error_message(error: openai.APIStatusError) -> Optional[str]:
    """Pull the provider's error message out of a status error body."""
    body = getattr(error, "body", None)
    if isinstance(body, dict):
        inner = body.get("error", body)
        if isinstance(inner, dict) and inner.get("message"):
            return str(inner["message"])
    return None
