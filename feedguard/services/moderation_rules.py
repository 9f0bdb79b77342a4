"""
Moderation rules: built-in heuristic categories and strictness escalation.

The rule table is declarative. Each category maps to a list of regex
patterns; a category matches when any of its patterns is found in the text.
Patterns are compiled once at import. Empty-reply detection is a predicate
(a linear token scan) rather than a pattern.

Escalation is a separate table: per strictness level, which categories
hide an item and which suggest a rewrite. A category absent from both sets
is ignored at that level.

Japanese lexicon entries that are also prefixes of harmless words carry a
negative lookahead (バカンス, カスタム, 裸足).
"""

import re
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .types import RuleCategory, StrictnessLevel, Suggestion


RULE_PATTERNS: dict[RuleCategory, list[str]] = {
    RuleCategory.PROFANITY: [
        r"死ね",
        r"ぶっ殺",
        r"殺す",
        r"バカ(?!ンス)",
        r"ばか",
        r"馬鹿",
        r"アホ",
        r"くそ",
        r"クソ",
        r"きもい",
        r"キモ(?!ノ|チ)",
        r"カス(?!タ|テ|ケ|ト)",
        r"黙れ",
        r"ゴミ",
        r"うざ",
        r"消えろ",
        r"\bfuck\w*",
        r"\bshit\w*",
        r"\bidiot\w*",
        r"\bstupid\b",
        r"\bkill\s+yourself\b",
        r"\bkys\b",
        r"\bmoron\w*",
        r"\bbitch\w*",
    ],
    RuleCategory.SEXUAL: [
        r"エロ",
        r"セックス",
        r"えっち",
        r"エッチ",
        r"おっぱい",
        r"ちんこ",
        r"ちんぽ",
        r"まんこ",
        r"裸(?!足)",
        r"パパ活",
        r"\bporn\w*",
        r"\bnude\w*",
        r"\bnsfw\b",
        r"\bsex\b",
        r"\bxxx\b",
    ],
    RuleCategory.NOISE: [
        # Any single character repeated 7+ times
        r"(\S)\1{6,}",
        # A 2-4 character unit repeated 7+ times
        r"(\S{2,4})\1{6,}",
    ],
}

ENTITY_PATTERN = re.compile(r"[@＠][\w.]+|[#＃][^\s#＃]+|https?://\S+", re.IGNORECASE)
WORD_CHAR = re.compile(r"\w")


def is_empty_reply(text: str) -> bool:
    """
    True when `text` holds at least one mention, hashtag or URL and nothing
    else but whitespace and punctuation.

    Scans each whitespace token left to right, consuming one entity or one
    punctuation character per step, so the cost stays linear in the input.
    """
    found = False
    for token in text.split():
        pos = 0
        while pos < len(token):
            m = ENTITY_PATTERN.match(token, pos)
            if m:
                found = True
                pos = m.end()
            elif WORD_CHAR.match(token, pos):
                return False
            else:
                pos += 1
    return found


# Categories checked by a function rather than a pattern list
RULE_PREDICATES: dict[RuleCategory, Callable[[str], bool]] = {
    RuleCategory.EMPTY_REPLY: is_empty_reply,
}


@dataclass(frozen=True)
class Escalation:
    """Which categories hide and which suggest a rewrite at one strictness level."""
    hide: frozenset[RuleCategory]
    rewrite: frozenset[RuleCategory]

    def decide(self, categories: Iterable[RuleCategory]) -> tuple[Suggestion, Optional[RuleCategory]]:
        """
        Apply this level to matched categories.

        Hide wins over rewrite. Among categories with the same outcome, the
        first one in table order is reported as the deciding category.
        """
        categories = list(categories)
        for category in categories:
            if category in self.hide:
                return Suggestion.HIDE, category
        for category in categories:
            if category in self.rewrite:
                return Suggestion.REWRITE, category
        return Suggestion.KEEP, None


ESCALATION_POLICY: dict[StrictnessLevel, Escalation] = {
    StrictnessLevel.STRICT: Escalation(
        hide=frozenset({
            RuleCategory.PROFANITY,
            RuleCategory.SEXUAL,
            RuleCategory.NOISE,
            RuleCategory.EMPTY_REPLY,
        }),
        rewrite=frozenset(),
    ),
    StrictnessLevel.MODERATE: Escalation(
        hide=frozenset({RuleCategory.PROFANITY, RuleCategory.SEXUAL, RuleCategory.EMPTY_REPLY}),
        rewrite=frozenset({RuleCategory.NOISE}),
    ),
    StrictnessLevel.RELAXED: Escalation(
        hide=frozenset({RuleCategory.PROFANITY, RuleCategory.SEXUAL}),
        rewrite=frozenset({RuleCategory.NOISE, RuleCategory.EMPTY_REPLY}),
    ),
}


class RuleMatcher:
    """
    Matches text against the compiled rule table.

    Stateless after construction, so one instance is shared across threads.
    """

    def __init__(
        self,
        patterns: Optional[dict[RuleCategory, list[str]]] = None,
        predicates: Optional[dict[RuleCategory, Callable[[str], bool]]] = None,
    ):
        source = RULE_PATTERNS if patterns is None else patterns
        self._compiled: list[tuple[RuleCategory, list[re.Pattern]]] = [
            (category, [re.compile(p, re.IGNORECASE) for p in pattern_list])
            for category, pattern_list in source.items()
        ]
        self._predicates = dict(RULE_PREDICATES if predicates is None else predicates)

    def match(self, text: str) -> list[RuleCategory]:
        """Return every category with at least one hit, in table order."""
        if not text or not text.strip():
            return []
        hits = {
            category
            for category, patterns in self._compiled
            if any(p.search(text) for p in patterns)
        }
        hits.update(category for category, check in self._predicates.items() if check(text))
        return [category for category in RuleCategory if category in hits]


def escalation_for(level: StrictnessLevel) -> Escalation:
    return ESCALATION_POLICY[level]
