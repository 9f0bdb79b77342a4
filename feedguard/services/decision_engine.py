"""
Decision engine: classify items as keep, hide or rewrite.

Per item, in priority order:
1. A dislike token (request or learned) anywhere in the text -> hide
2. Heuristic rule hits, mapped through the strictness escalation table
3. A like token (request or learned) -> rewrite
4. Otherwise keep

Token matching is a case-insensitive substring test. Dislike and heuristic
outcomes always win over like-driven rewrites.

The engine does no I/O. It reads a snapshot of the preference store once per
batch, so one batch sees one consistent set of tokens.
"""

import logging
from typing import Iterable, Optional

from feedguard.config import get_settings

from .moderation_rules import RuleMatcher, escalation_for
from .preference_store import PreferenceStore, normalize_tokens
from .types import ClassificationResult, Item, StrictnessLevel, Suggestion

logger = logging.getLogger(__name__)

REASON_DISLIKE = "dislike_token"
REASON_LIKE = "like_token"


def _first_hit(haystack: str, tokens: Iterable[str]) -> Optional[str]:
    for token in tokens:
        if token in haystack:
            return token
    return None


class DecisionEngine:
    """
    Classifies batches of items.

    Usage:
        engine = DecisionEngine(preferences=get_preference_store())
        results = engine.classify(items, level="strict")
        results["1"].suggest  # Suggestion.HIDE
    """

    def __init__(
        self,
        preferences: Optional[PreferenceStore] = None,
        matcher: Optional[RuleMatcher] = None,
        default_level: Optional[StrictnessLevel] = None,
    ):
        self._preferences = preferences
        self._matcher = matcher or RuleMatcher()
        if default_level is None:
            default_level = StrictnessLevel(get_settings().DEFAULT_STRICTNESS)
        self._default_level = default_level

    def resolve_level(self, level: Optional[str]) -> StrictnessLevel:
        resolved = StrictnessLevel.parse(level, self._default_level)
        if level and resolved.value != str(level).lower().strip():
            logger.warning(f"Unknown strictness '{level}'; using {resolved.value}")
        return resolved

    def _token_sets(
        self,
        like_tokens: Optional[Iterable[str]],
        dislike_tokens: Optional[Iterable[str]],
    ) -> tuple[list[str], list[str]]:
        like = set(normalize_tokens(like_tokens))
        dislike = set(normalize_tokens(dislike_tokens))
        if self._preferences is not None:
            snapshot = self._preferences.snapshot()
            like |= snapshot.like
            dislike |= snapshot.dislike
        # Sorted so the reported token is stable across runs
        return sorted(like), sorted(dislike)

    def classify_text(
        self,
        text: str,
        level: StrictnessLevel,
        like: list[str],
        dislike: list[str],
    ) -> ClassificationResult:
        """Classify one text against already-merged token lists."""
        lowered = (text or "").lower()

        if _first_hit(lowered, dislike) is not None:
            return ClassificationResult(suggest=Suggestion.HIDE, reason=REASON_DISLIKE)

        categories = self._matcher.match(text or "")
        suggestion, category = escalation_for(level).decide(categories)
        if category is not None:
            return ClassificationResult(
                suggest=suggestion,
                reason=f"rule:{category.value}",
                categories=categories,
            )

        if _first_hit(lowered, like) is not None:
            return ClassificationResult(
                suggest=Suggestion.REWRITE,
                reason=REASON_LIKE,
                categories=categories,
            )

        return ClassificationResult(suggest=Suggestion.KEEP, categories=categories)

    def classify(
        self,
        items: Iterable[Item],
        level: Optional[str] = None,
        like_tokens: Optional[Iterable[str]] = None,
        dislike_tokens: Optional[Iterable[str]] = None,
    ) -> dict[str, ClassificationResult]:
        """
        Classify a batch.

        Args:
            items: Items with unique ids
            level: Strictness name; unknown or missing uses the configured default
            like_tokens: Request-scoped like tokens, merged with learned ones
            dislike_tokens: Request-scoped dislike tokens, merged with learned ones

        Returns:
            Mapping of item id to ClassificationResult
        """
        strictness = self.resolve_level(level)
        like, dislike = self._token_sets(like_tokens, dislike_tokens)

        results: dict[str, ClassificationResult] = {}
        for item in items:
            results[item.id] = self.classify_text(item.text, strictness, like, dislike)
        return results
