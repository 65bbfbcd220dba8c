"""
Ingredient state resolver.

Deterministic, rule-based classification of an ingredient key into the
state its quantity refers to. Generated hints are advisory; this is the
authority the pipeline records on every item.
"""

from __future__ import annotations

import re
from collections import Counter
from typing import Any, Iterable, Optional

from mealguard.domain.resolution.models import (
    CookingMethod,
    IngredientCategory,
    IngredientState,
    RuleMatch,
    StateResolution,
    StateRule,
)
from mealguard.domain.resolution.rules import COOKING_KEYWORDS, STATE_RULES
from mealguard.domain.shared.value_objects import Confidence

INVALID_KEY_RULE_ID = "ERROR_INVALID_KEY"


def prepare_key(key: str) -> str:
    """Lowercase, turn underscores into spaces and collapse whitespace."""
    return " ".join(key.replace("_", " ").lower().split())


def word_pattern(name: str) -> re.Pattern[str]:
    """Match ``name`` as whole words, allowing a plural "s" or "es"."""
    return re.compile(rf"\b{re.escape(name)}(?:e?s)?\b", re.IGNORECASE)


def _keyword_rule_id(keyword: str) -> str:
    return "COOKING_KEYWORD_" + re.sub(r"[^A-Z]", "_", keyword.upper())


class StateResolver:
    """Resolve ingredient keys against an ordered rule table.

    The table is sorted once at construction; resolution is total and
    never raises.

    Example:
        >>> resolver = StateResolver()
        >>> resolver.resolve("grilled salmon").state
        <IngredientState.COOKED: 'cooked'>
        >>> resolver.resolve("goat milk").rule_id
        'COMPOUND_GOAT_MILK'
    """

    def __init__(self, rules: Optional[Iterable[StateRule]] = None) -> None:
        """Initialize resolver.

        Args:
            rules: Custom rule table (defaults to the built-in table)
        """
        self.rules: tuple[StateRule, ...] = tuple(
            sorted(rules if rules is not None else STATE_RULES, key=lambda r: r.priority)
        )
        self._compiled = [(rule, re.compile(rule.pattern, re.IGNORECASE)) for rule in self.rules]
        self._keywords = [
            (keyword, method, re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE))
            for keyword, method in COOKING_KEYWORDS
        ]

    def detect_cooking_keyword(self, key: str) -> Optional[tuple[str, Optional[CookingMethod]]]:
        """Return ``(keyword, method)`` for the first cooking keyword in ``key``."""
        prepared = prepare_key(key)
        for keyword, method, regex in self._keywords:
            if regex.search(prepared):
                return keyword, method
        return None

    def resolve(self, key: Any) -> StateResolution:
        """Resolve the state of one ingredient key.

        Args:
            key: Ingredient key as written in the proposal

        Returns:
            StateResolution (cooking keywords first, then first matching rule)
        """
        if not isinstance(key, str) or not key.strip():
            return StateResolution(
                state=IngredientState.AS_PACK,
                confidence=Confidence.LOW,
                rule_id=INVALID_KEY_RULE_ID,
            )

        prepared = prepare_key(key)

        cooking = self.detect_cooking_keyword(prepared)
        if cooking is not None:
            keyword, method = cooking
            return StateResolution(
                state=IngredientState.COOKED,
                method=method,
                confidence=Confidence.HIGH,
                rule_id=_keyword_rule_id(keyword),
                category=IngredientCategory.PREPARED,
            )

        for rule, regex in self._compiled:
            if regex.search(prepared):
                return StateResolution(
                    state=rule.state,
                    method=rule.method,
                    confidence=rule.confidence,
                    rule_id=rule.id,
                    category=rule.category,
                )

        # Only reachable with a custom table lacking a catch-all
        return StateResolution(
            state=IngredientState.AS_PACK,
            confidence=Confidence.LOW,
            rule_id="FALLBACK_UNREACHABLE",
            category=IngredientCategory.PACKAGED,
        )

    def find_matching_rules(self, key: str) -> list[RuleMatch]:
        """List every rule matching ``key``, marking the one that wins.

        Cooking keywords are not listed; when one matches, no rule wins.
        """
        prepared = prepare_key(key)
        keyword_wins = self.detect_cooking_keyword(prepared) is not None
        matches: list[RuleMatch] = []
        for rule, regex in self._compiled:
            if regex.search(prepared):
                matches.append(
                    RuleMatch(
                        rule_id=rule.id,
                        priority=rule.priority,
                        category=rule.category,
                        state=rule.state,
                        method=rule.method,
                        is_winner=not keyword_wins and not matches,
                    )
                )
        return matches

    def rules_for_category(self, category: IngredientCategory) -> list[StateRule]:
        return [rule for rule in self.rules if rule.category == category]

    def rule_statistics(self) -> dict[str, Any]:
        """Count rules by category and confidence."""
        return {
            "total_rules": len(self.rules),
            "by_category": dict(Counter(rule.category.value for rule in self.rules)),
            "by_confidence": dict(Counter(rule.confidence.value for rule in self.rules)),
        }


def is_valid_state(value: Any) -> bool:
    return value in {state.value for state in IngredientState}


def is_valid_method(value: Any) -> bool:
    return value in {method.value for method in CookingMethod}
