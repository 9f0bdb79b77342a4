"""
Batch coordinator: turns a raw request item list into well-formed items,
dispatches them, and guarantees every input id appears in the output once.
"""

import logging
import uuid
from typing import Any, Optional

from .decision_engine import DecisionEngine
from .rewrite_orchestrator import RewriteOrchestrator
from .types import ClassificationResult, Item, RewriteBatchResult, RewritePath, Suggestion

logger = logging.getLogger(__name__)


def normalize_items(raw_items: Any) -> list[Item]:
    """
    Validate and normalize raw request items.

    - A non-list yields an empty batch
    - Non-mapping entries are skipped
    - A missing, null or empty id gets a generated uuid4 (caller contract violation)
    - Non-string ids and texts are stringified; null text becomes ""
    - Duplicate ids keep the first occurrence
    """
    if not isinstance(raw_items, list):
        if raw_items is not None:
            logger.warning(f"Ignoring non-list items payload of type {type(raw_items).__name__}")
        return []

    items: list[Item] = []
    seen: set[str] = set()
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            logger.warning(f"Skipping item {index}: expected an object, got {type(raw).__name__}")
            continue

        raw_id = raw.get("id")
        if raw_id is None or raw_id == "":
            item_id = str(uuid.uuid4())
            logger.warning(f"Item {index} has no id; assigned {item_id}")
        else:
            item_id = str(raw_id)

        if item_id in seen:
            logger.warning(f"Skipping duplicate item id {item_id!r} at position {index}")
            continue
        seen.add(item_id)

        raw_text = raw.get("text")
        text = "" if raw_text is None else str(raw_text)
        items.append(Item(id=item_id, text=text))

    return items


class BatchCoordinator:
    """Dispatches normalized batches to the decision engine or rewrite orchestrator."""

    def __init__(self, engine: DecisionEngine, orchestrator: Optional[RewriteOrchestrator] = None):
        self._engine = engine
        self._orchestrator = orchestrator

    def classify(
        self,
        raw_items: Any,
        level: Optional[str] = None,
        like_tokens: Optional[list[str]] = None,
        dislike_tokens: Optional[list[str]] = None,
    ) -> dict[str, ClassificationResult]:
        items = normalize_items(raw_items)
        results = self._engine.classify(items, level, like_tokens, dislike_tokens)

        for item in items:
            if item.id not in results:
                logger.error(f"No classification produced for {item.id}; defaulting to keep")
                results[item.id] = ClassificationResult(suggest=Suggestion.KEEP)
        return results

    async def rewrite(
        self,
        raw_items: Any,
        style: Optional[str] = None,
        strength: Optional[str] = None,
    ) -> RewriteBatchResult:
        if self._orchestrator is None:
            raise RuntimeError("BatchCoordinator was built without a rewrite orchestrator")

        items = normalize_items(raw_items)
        batch = await self._orchestrator.rewrite(items, style, strength)

        for item in items:
            if item.id not in batch.results:
                logger.error(f"No rewrite produced for {item.id}; returning the original text")
                batch.results[item.id] = item.text
                batch.paths[item.id] = RewritePath.PASSTHROUGH
        return batch
