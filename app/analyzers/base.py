"""
Factor analyzer base class.

Every analyzer turns provider data for a coordinate into a FactorResult
and never raises for provider problems: a missing provider or a failed
call yields the factor's neutral default (score 50, confidence 0).
"""

import logging
from typing import Any, Optional

from ..exceptions import ProviderUnavailable
from ..models import Coordinates, Factor, FactorResult

logger = logging.getLogger(__name__)


class FactorAnalyzer:
    """Base class for the six location factor analyzers."""

    factor: Factor

    def __init__(self, provider: Optional[Any] = None):
        self._provider = provider

    @property
    def is_configured(self) -> bool:
        return self._provider is not None

    def providers(self) -> list:
        """Provider clients this analyzer holds (for shutdown)."""
        return [self._provider] if self._provider is not None else []

    def neutral(self, reason: str) -> FactorResult:
        """This analyzer's neutral default."""
        return FactorResult.neutral(self.factor, reason)

    async def analyze(self, coordinates: Coordinates, radius_meters: float) -> FactorResult:
        """
        Analyze one factor around a point.

        Args:
            coordinates: Center point
            radius_meters: Analysis radius in meters

        Returns:
            FactorResult (neutral default if the provider is missing or fails)
        """
        if not self.is_configured:
            logger.debug(f"No provider configured for {self.factor.value}")
            return self.neutral("no provider configured")

        try:
            return await self._analyze(coordinates, radius_meters)
        except Exception as e:
            error = ProviderUnavailable(self.factor.value, str(e) or type(e).__name__)
            logger.error(f"{self.factor.value} analysis failed: {error.message}")
            return self.neutral(f"provider unavailable: {error.message}")

    async def _analyze(self, coordinates: Coordinates, radius_meters: float) -> FactorResult:
        raise NotImplementedError
