"""
Data types shared by the decision engine, rewrite orchestrator and batch coordinator.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Suggestion(str, Enum):
    """What the client should do with an item."""
    KEEP = "keep"
    HIDE = "hide"
    REWRITE = "rewrite"


class StrictnessLevel(str, Enum):
    """How aggressively heuristic hits escalate to hiding."""
    RELAXED = "relaxed"
    MODERATE = "moderate"
    STRICT = "strict"

    @classmethod
    def parse(cls, value: Optional[str], default: "StrictnessLevel") -> "StrictnessLevel":
        """Parse a level name, returning `default` for missing or unknown values."""
        if not value:
            return default
        try:
            return cls(str(value).lower().strip())
        except ValueError:
            return default


class RuleCategory(str, Enum):
    """Built-in heuristic categories."""
    PROFANITY = "profanity"
    SEXUAL = "sexual"
    NOISE = "noise"
    EMPTY_REPLY = "empty_reply"


class RewritePath(str, Enum):
    """Which path produced a rewrite."""
    REMOTE = "remote"
    LOCAL_FALLBACK = "local_fallback"
    PASSTHROUGH = "passthrough"


@dataclass(frozen=True)
class Item:
    """One unit of text to classify or rewrite."""
    id: str
    text: str


@dataclass
class ClassificationResult:
    """
    Classification of a single item.

    Attributes:
        suggest: The action for the client
        reason: What decided it: "dislike_token", "rule:<category>", "like_token", or None
        categories: Every heuristic category that matched, in table order
    """
    suggest: Suggestion
    reason: Optional[str] = None
    categories: list[RuleCategory] = field(default_factory=list)


@dataclass
class ItemRewrite:
    """Rewrite of a single item and the path that served it."""
    text: str
    path: RewritePath
    error: Optional[str] = None


@dataclass
class RewriteBatchResult:
    """Result from rewriting a batch, keyed by item id."""
    results: dict[str, str]
    paths: dict[str, RewritePath]
    style: str = ""

    @property
    def counts(self) -> dict[str, int]:
        counts = {path.value: 0 for path in RewritePath}
        for path in self.paths.values():
            counts[path.value] += 1
        return counts
