"""
Property value trend analysis.

Blends the one-year change with the annualized three-year change
(60/40) and maps it to a score around the neutral midpoint:

    score = 50 + 5 * blended_change_pct, clamped to 0-100

forecast: "increasing" at >= +3 %/yr, "decreasing" at <= -1 %/yr, else "stable".
"""

import logging

from ..models import Coordinates, Factor, FactorResult
from ..utils.common import round_half_up

from .base import FactorAnalyzer

logger = logging.getLogger(__name__)

POINTS_PER_PERCENT = 5
INCREASING_THRESHOLD = 3.0
DECREASING_THRESHOLD = -1.0


def blended_change(one_year: float, three_year: float) -> float:
    """Annual percentage change weighted 60% last year, 40% three-year average."""
    return 0.6 * one_year + 0.4 * (three_year / 3.0)


def forecast_for(change: float) -> str:
    if change >= INCREASING_THRESHOLD:
        return "increasing"
    if change <= DECREASING_THRESHOLD:
        return "decreasing"
    return "stable"


class PropertyValuesAnalyzer(FactorAnalyzer):
    """Median value level and trend around a point."""

    factor = Factor.PROPERTY_VALUES

    async def _analyze(self, coordinates: Coordinates, radius_meters: float) -> FactorResult:
        data = await self._provider.fetch_values(coordinates, radius_meters)

        median_value = float(data.get("median_value") or 0)
        if median_value <= 0:
            return self.neutral("no property value data")

        change = data.get("value_change", {})
        one_year = float(change.get("one_year") or 0)
        three_year = float(change.get("three_year") or 0)

        blended = blended_change(one_year, three_year)
        score = 50.0 + POINTS_PER_PERCENT * blended
        forecast = forecast_for(blended)

        logger.info(f"Property value score {score:.1f} (blended change {blended:.2f}%/yr, {forecast})")

        return FactorResult(
            factor=self.factor,
            score=score,
            confidence=1.0,
            detail={
                "value_score": round_half_up(max(0.0, min(100.0, score))),
                "median_value": median_value,
                "value_change": {
                    "one_year": one_year,
                    "three_year": three_year,
                    "five_year": float(change.get("five_year") or 0),
                },
                "annualized_change": round(blended, 2),
                "forecast": forecast,
            },
        )
