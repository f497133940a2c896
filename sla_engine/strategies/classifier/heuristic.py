"""Keyword heuristic package classifier.

Scores a quote against every category profile using whole-word keyword
counts over the free text, item-pattern counts over the line items, and
how well the quote's value and item count fit the category's typical
ranges.
"""

import logging
import math
import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from sla_engine.core.errors import DataValidationError
from sla_engine.interfaces.classifier import (
    BasePackageClassifier,
    ClassificationResult,
    PackageType,
    PackageValidation,
)
from sla_engine.strategies.classifier.patterns import (
    CATEGORY_PROFILES,
    ITEM_PATTERN_WEIGHT,
    CategoryProfile,
)

logger = logging.getLogger(__name__)

DEFAULT_TYPE = PackageType.GENERAL_WEBSITE
CONFIDENCE_BOOST = 20
CONFIDENCE_CAP = 95
CLEAR_WINNER_RATIO = 1.5
MIN_SCORE_GAP = 2
MIN_TOP_SCORE = 3
MIN_SUGGESTION_SCORE = 2
MAX_SUGGESTIONS = 2


@dataclass(frozen=True)
class ClassificationInput:
    """Classifier arguments assembled from a quote."""

    free_text: tuple[str, ...]
    item_descriptions: tuple[str, ...]
    total_value: float
    item_count: int


def classification_input_from_quote(
    quote: Mapping[str, Any],
    client: Mapping[str, Any],
    extra: Mapping[str, Any] | None = None,
) -> ClassificationInput:
    """Read a quote the way the classifier expects it.

    Item descriptions are part of the free text twice so that line-item
    wording outweighs incidental mentions in terms and notes.
    """
    items = quote.get("items") or []
    descriptions = tuple(str(item.get("description") or "") for item in items)

    free_text = (
        str(quote.get("terms_text") or ""),
        str(quote.get("notes") or ""),
        str(quote.get("quote_number") or ""),
        str(client.get("name") or ""),
        str(client.get("company") or ""),
        *descriptions,
        *(str(value) for value in (extra or {}).values()),
        *descriptions,
    )

    return ClassificationInput(
        free_text=free_text,
        item_descriptions=descriptions,
        total_value=float(quote.get("total_incl_vat") or 0),
        item_count=len(items),
    )


@lru_cache(maxsize=512)
def _word_pattern(phrase: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(phrase.lower())}\b")


def count_occurrences(haystack: str, phrase: str) -> int:
    """Whole-word occurrences of phrase in an already lower-cased haystack."""
    return len(_word_pattern(phrase).findall(haystack))


class HeuristicPackageClassifier(BasePackageClassifier):
    """Weighted keyword classifier over the static category profiles."""

    def __init__(
        self,
        currency_symbol: str = "R",
        min_valid_confidence: int = 60,
        profiles: Mapping[PackageType, CategoryProfile] | None = None,
    ) -> None:
        self._currency_symbol = currency_symbol
        self._min_valid_confidence = min_valid_confidence
        self._profiles = dict(profiles or CATEGORY_PROFILES)

    def classify(
        self,
        free_text: Sequence[str],
        item_descriptions: Sequence[str],
        total_value: float,
        item_count: int,
    ) -> ClassificationResult:
        try:
            self._check_inputs(free_text, item_descriptions, total_value, item_count)
            scores, reasoning = self._score(free_text, item_descriptions, total_value, item_count)
        except Exception as e:
            logger.warning(f"Package type classification fell back to {DEFAULT_TYPE.value}: {e}")
            return self._fallback_result()

        detected = self._select(scores)
        confidence = self._confidence(scores, detected)

        logger.info(
            f"Package type detected: {detected.value} ({confidence}% confidence), "
            f"scores={ {t.value: s for t, s in scores.items()} }"
        )

        return ClassificationResult(
            package_type=detected,
            confidence_percent=confidence,
            scores_by_type=scores,
            reasoning=reasoning,
        )

    def validate(
        self,
        detected_type: PackageType,
        free_text: Sequence[str],
        item_descriptions: Sequence[str],
        total_value: float,
        item_count: int,
    ) -> PackageValidation:
        try:
            self._check_inputs(free_text, item_descriptions, total_value, item_count)
            scores, _ = self._score(free_text, item_descriptions, total_value, item_count)
            profile = self._profiles[PackageType(detected_type)]
        except Exception as e:
            logger.warning(f"Package type validation failed for {detected_type}: {e}")
            return PackageValidation(
                is_valid=False,
                confidence_percent=0,
                warnings=["Validation failed due to invalid input"],
                suggestions=[DEFAULT_TYPE],
            )

        detected_type = PackageType(detected_type)
        ranked = sorted(scores.items(), key=lambda kv: kv[1], reverse=True)
        alternates = [(t, s) for t, s in ranked if t is not detected_type]
        top_score, second_score = ranked[0][1], ranked[1][1]

        warnings: list[str] = []
        candidates: list[PackageType] = []

        if top_score - second_score < MIN_SCORE_GAP:
            warnings.append("Low confidence in package type detection")
            candidates.append(alternates[0][0])

        if top_score < MIN_TOP_SCORE:
            warnings.append("Very weak keyword matches found")

        low, high = profile.value_range
        if not low <= total_value <= high:
            warnings.append(
                f"Project value ({self._amount(total_value)}) is outside typical range "
                f"for {detected_type.label}"
            )

        low_count, high_count = profile.item_count_range
        if not low_count <= item_count <= high_count:
            warnings.append(
                f"Item count ({item_count}) is outside typical range for {detected_type.label}"
            )

        candidates.extend(t for t, s in alternates[:MAX_SUGGESTIONS] if s >= MIN_SUGGESTION_SCORE)
        suggestions = list(dict.fromkeys(candidates))[:MAX_SUGGESTIONS]

        confidence = self._confidence(scores, detected_type)
        is_valid = confidence >= self._min_valid_confidence and not warnings

        logger.info(
            f"Package type {detected_type.value} validated: valid={is_valid}, "
            f"confidence={confidence}%, warnings={len(warnings)}"
        )

        return PackageValidation(
            is_valid=is_valid,
            confidence_percent=confidence,
            warnings=warnings,
            suggestions=suggestions,
        )

    def _score(
        self,
        free_text: Sequence[str],
        item_descriptions: Sequence[str],
        total_value: float,
        item_count: int,
    ) -> tuple[dict[PackageType, float], dict[PackageType, list[str]]]:
        """Score every category; reasoning is collected in the same pass."""
        text = " ".join(free_text).lower()
        items_text = " ".join(item_descriptions).lower()

        scores: dict[PackageType, float] = {}
        reasoning: dict[PackageType, list[str]] = {}

        for package_type, profile in self._profiles.items():
            score = 0.0
            reasons: list[str] = []

            for keyword in profile.keywords:
                occurrences = count_occurrences(text, keyword)
                if occurrences:
                    weight = profile.weight_for(keyword)
                    score += occurrences * weight
                    strength = "high weight" if weight > 1 else "normal weight"
                    reasons.append(f'Found keyword: "{keyword}" ({strength})')

            for pattern in profile.item_patterns:
                occurrences = count_occurrences(items_text, pattern)
                if occurrences:
                    score += occurrences * ITEM_PATTERN_WEIGHT
                    reasons.append(f'Found item pattern: "{pattern}"')

            value_score = self._value_fit(total_value, profile)
            if value_score:
                score += value_score
                fit = "aligns with" if value_score == 2 else "is close to"
                reasons.append(f"Project value ({self._amount(total_value)}) {fit} typical range")

            count_score = self._item_count_fit(item_count, profile)
            if count_score:
                score += count_score
                fit = "aligns with" if count_score == 1.5 else "is close to"
                reasons.append(f"Item count ({item_count}) {fit} typical range")

            scores[package_type] = round(score, 2)
            reasoning[package_type] = reasons

        return scores, reasoning

    @staticmethod
    def _value_fit(value: float, profile: CategoryProfile) -> float:
        low, high = profile.value_range
        if low <= value <= high:
            return 2.0
        if value < low and value * 1.5 >= low:
            return 1.0
        if value > high and value * 0.7 <= high:
            return 1.0
        return 0.0

    @staticmethod
    def _item_count_fit(count: int, profile: CategoryProfile) -> float:
        low, high = profile.item_count_range
        if low <= count <= high:
            return 1.5
        if count < low and count * 2 >= low:
            return 0.5
        return 0.0

    @staticmethod
    def _select(scores: Mapping[PackageType, float]) -> PackageType:
        """Unique maximum wins; a shared maximum or all-zero scores fall back."""
        top = max(scores.values(), default=0.0)
        if top <= 0:
            return DEFAULT_TYPE
        leaders = [t for t, s in scores.items() if s == top]
        return leaders[0] if len(leaders) == 1 else DEFAULT_TYPE

    @staticmethod
    def _confidence(scores: Mapping[PackageType, float], detected: PackageType) -> int:
        total = sum(scores.values())
        if total <= 0:
            return 0

        # Round half up
        base = math.floor(scores[detected] / total * 100 + 0.5)

        ranked = sorted(scores.values(), reverse=True)
        if len(ranked) >= 2 and ranked[0] > ranked[1] * CLEAR_WINNER_RATIO:
            return min(base + CONFIDENCE_BOOST, CONFIDENCE_CAP)
        return base

    @staticmethod
    def _check_inputs(
        free_text: Sequence[str],
        item_descriptions: Sequence[str],
        total_value: float,
        item_count: int,
    ) -> None:
        if isinstance(total_value, bool) or not isinstance(total_value, (int, float)):
            raise DataValidationError(f"total_value must be a number, got {total_value!r}")
        if not math.isfinite(total_value):
            raise DataValidationError(f"total_value must be finite, got {total_value!r}")
        if total_value < 0:
            raise DataValidationError(f"total_value must not be negative, got {total_value!r}")
        if isinstance(item_count, bool) or not isinstance(item_count, int) or item_count < 0:
            raise DataValidationError(f"item_count must be a non-negative integer, got {item_count!r}")
        for field_name, texts in (("free_text", free_text), ("item_descriptions", item_descriptions)):
            if isinstance(texts, str) or not all(isinstance(t, str) for t in texts):
                raise DataValidationError(f"{field_name} must be a sequence of strings")

    def _fallback_result(self) -> ClassificationResult:
        return ClassificationResult(
            package_type=DEFAULT_TYPE,
            confidence_percent=0,
            scores_by_type={t: 0.0 for t in self._profiles},
            reasoning={t: [] for t in self._profiles},
        )

    def _amount(self, value: float) -> str:
        if float(value).is_integer():
            return f"{self._currency_symbol}{int(value):,}"
        return f"{self._currency_symbol}{value:,.2f}"
