"""
Development activity analysis.

Building permits within the radius are split into the recent and the
prior half of the lookback window.

Scoring Algorithm:
- activity: 100 * permits / PERMIT_SATURATION, capped at 100
- momentum: 50 + 50 * (recent - prior) / (recent + prior); 50 with no permits
- score = average of activity and momentum
- investment_level: "increasing" when recent >= 1.2x prior (and at least
  MIN_TREND_DELTA more), "decreasing" when recent <= 0.8x prior (and at
  least MIN_TREND_DELTA fewer), otherwise "stable"
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from ..clients.base import RecordProvider
from ..models import Coordinates, Factor, FactorResult

from .base import FactorAnalyzer

logger = logging.getLogger(__name__)

PERMIT_SATURATION = 50
MIN_TREND_DELTA = 2

PERMIT_KIND_KEYWORDS = {
    "commercial": ["commercial", "retail", "office", "industrial"],
    "infrastructure": ["demolition", "sewer", "street", "utility", "plumbing", "electric", "sign"],
    "residential": ["residential", "dwelling", "new building", "new construction", "alteration", "renovation"],
}


def classify_permit(permit_type: str) -> str:
    """Categorize a permit type into residential / commercial / infrastructure / other."""
    permit_type = (permit_type or "").lower()

    for kind, keywords in PERMIT_KIND_KEYWORDS.items():
        for keyword in keywords:
            if keyword in permit_type:
                return kind

    return "other"


def parse_socrata_date(value: Optional[str]) -> Optional[datetime]:
    """Parse a Socrata floating timestamp (YYYY-MM-DDTHH:MM:SS.fff) as UTC."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value[:19]).replace(tzinfo=timezone.utc)
    except ValueError:
        return None


class DevelopmentAnalyzer(FactorAnalyzer):
    """Permit activity and its direction around a point."""

    factor = Factor.DEVELOPMENT

    def __init__(
        self,
        provider: Optional[RecordProvider],
        date_column: str = "issue_date",
        type_column: str = "permit_type",
        lookback_days: int = 730,
    ):
        super().__init__(provider)
        self._date_column = date_column
        self._type_column = type_column
        self._lookback_days = lookback_days

    @staticmethod
    def investment_level(recent: int, prior: int) -> str:
        if recent >= prior * 1.2 and recent - prior >= MIN_TREND_DELTA:
            return "increasing"
        if recent <= prior * 0.8 and prior - recent >= MIN_TREND_DELTA:
            return "decreasing"
        return "stable"

    async def _analyze(self, coordinates: Coordinates, radius_meters: float) -> FactorResult:
        records = await self._provider.fetch_records(coordinates, radius_meters, self._lookback_days)

        midpoint = datetime.now(timezone.utc) - timedelta(days=self._lookback_days / 2)
        permits = {"residential": 0, "commercial": 0, "infrastructure": 0, "other": 0}
        recent = prior = 0

        for record in records:
            permits[classify_permit(record.get(self._type_column, ""))] += 1

            issued = parse_socrata_date(record.get(self._date_column))
            if issued is None:
                continue
            if issued >= midpoint:
                recent += 1
            else:
                prior += 1

        total = len(records)
        activity = min(100.0, 100.0 * total / PERMIT_SATURATION)
        momentum = 50.0 + 50.0 * (recent - prior) / (recent + prior) if recent + prior else 50.0
        score = (activity + momentum) / 2

        if total >= PERMIT_SATURATION:
            growth = "high"
        elif total >= PERMIT_SATURATION / 5:
            growth = "moderate"
        else:
            growth = "low"

        level = self.investment_level(recent, prior)
        logger.info(f"Development score {score:.1f}: {total} permits, investment {level}")

        return FactorResult(
            factor=self.factor,
            score=score,
            confidence=1.0,
            detail={
                "permit_count": total,
                "permits": permits,
                "recent_permits": recent,
                "prior_permits": prior,
                "growth": growth,
                "investment_level": level,
            },
        )
