"""
Weighted Score Aggregation.

Combines named component scores into one bounded score (0-100) and a
category. This is the single aggregation primitive shared by location
analysis and lead scoring.

Aggregation Algorithm:
- Only components that were actually supplied take part
- score = sum(score_i * weight_i) / sum(weight_i) over supplied components
- Weights for components that were not supplied are ignored
- Nothing supplied (or zero total weight): neutral score 50
- Rounded half-up to an integer, then clamped to 0-100
"""

import logging
import math
from dataclasses import dataclass
from typing import Iterable, Mapping, Optional, Tuple

from ..exceptions import InvalidWeights
from ..models import LeadCategory, OpportunityLevel
from ..utils.common import NEUTRAL_SCORE, clamp_score

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CategoryScale:
    """
    Monotonic score thresholds mapped to labels.

    Attributes:
        thresholds: (minimum score, label) pairs, highest minimum first
        floor: label for scores below every threshold
    """
    thresholds: Tuple[Tuple[int, str], ...]
    floor: str

    def categorize(self, score: int) -> str:
        for minimum, label in self.thresholds:
            if score >= minimum:
                return label
        return self.floor


LEAD_CATEGORIES = CategoryScale(
    thresholds=((80, LeadCategory.HOT.value), (50, LeadCategory.WARM.value)),
    floor=LeadCategory.COLD.value,
)

OPPORTUNITY_LEVELS = CategoryScale(
    thresholds=(
        (85, OpportunityLevel.EXCELLENT.value),
        (70, OpportunityLevel.GOOD.value),
        (50, OpportunityLevel.MODERATE.value),
        (30, OpportunityLevel.FAIR.value),
    ),
    floor=OpportunityLevel.POOR.value,
)


@dataclass(frozen=True)
class AggregateScore:
    """Result of an aggregation."""
    score: int
    category: Optional[str]
    total_weight: float


def validate_weights(weights: Mapping[str, float], allowed: Iterable[str]) -> dict:
    """
    Validate a weight map against the set of known component names.

    Args:
        weights: Mapping of component name to weight
        allowed: Names that have a scorer/analyzer behind them

    Returns:
        A plain dict copy of the weights (float values)

    Raises:
        InvalidWeights: For negative or non-finite weights, or names
            without a scorer
    """
    allowed = set(allowed)
    unknown = sorted(set(weights) - allowed)
    if unknown:
        raise InvalidWeights(
            f"Weights reference unknown components: {', '.join(unknown)}",
            {"unknown": unknown, "allowed": sorted(allowed)},
        )

    validated = {}
    for name, weight in weights.items():
        try:
            value = float(weight)
        except (TypeError, ValueError):
            raise InvalidWeights(f"Weight for '{name}' is not a number", {"component": name})
        if not math.isfinite(value) or value < 0:
            raise InvalidWeights(
                f"Weight for '{name}' must be a non-negative number",
                {"component": name, "weight": weight},
            )
        validated[name] = value

    return validated


class ScoreEngine:
    """
    Pure weighted-aggregation primitive.

    Stateless: the same inputs always give the same output, regardless of
    the order in which components are supplied.
    """

    def weighted_average(
        self,
        scores: Mapping[str, float],
        weights: Mapping[str, float],
    ) -> Tuple[Optional[float], float]:
        """
        Unrounded weighted average over supplied components.

        Components are summed in sorted-name order so float addition is
        identical for every permutation of the input.

        Returns:
            (average or None when nothing contributes, total weight)
        """
        weighted_sum = 0.0
        total_weight = 0.0

        for name in sorted(scores):
            weight = float(weights.get(name, 0.0))
            if weight <= 0:
                continue
            weighted_sum += float(scores[name]) * weight
            total_weight += weight

        if total_weight <= 0:
            return None, 0.0

        return weighted_sum / total_weight, total_weight

    def aggregate(
        self,
        scores: Mapping[str, float],
        weights: Mapping[str, float],
        scale: Optional[CategoryScale] = None,
    ) -> AggregateScore:
        """
        Combine component scores into one bounded score.

        Args:
            scores: Component name to raw score (0-100)
            weights: Component name to non-negative weight
            scale: Category thresholds to apply (optional)

        Returns:
            AggregateScore with integer score in [0, 100]
        """
        average, total_weight = self.weighted_average(scores, weights)

        if average is None:
            logger.debug("No weighted components supplied, using neutral score")
            score = NEUTRAL_SCORE
        else:
            score = clamp_score(average)

        category = scale.categorize(score) if scale else None
        return AggregateScore(score=score, category=category, total_weight=total_weight)

    def contributions(
        self,
        scores: Mapping[str, float],
        weights: Mapping[str, float],
    ) -> dict:
        """
        Per-component share of the final (unrounded) score.

        The contributions of all supplied components sum to the weighted
        average produced by aggregate() before rounding.
        """
        _, total_weight = self.weighted_average(scores, weights)
        if total_weight <= 0:
            return {name: 0.0 for name in scores}

        return {
            name: float(scores[name]) * float(weights.get(name, 0.0)) / total_weight
            for name in scores
        }
