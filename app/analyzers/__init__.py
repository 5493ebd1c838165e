"""
Location Factor Analyzers.

One analyzer per scoring factor, all sharing the FactorAnalyzer contract:
analyze(coordinates, radius_meters) -> FactorResult, never raising for
provider problems.
"""

from .base import FactorAnalyzer
from .proximity import ProximityAnalyzer
from .schools import SchoolsAnalyzer
from .transit import TransitAnalyzer
from .crime import CrimeAnalyzer
from .development import DevelopmentAnalyzer
from .property_values import PropertyValuesAnalyzer

__all__ = [
    "FactorAnalyzer",
    "ProximityAnalyzer",
    "SchoolsAnalyzer",
    "TransitAnalyzer",
    "CrimeAnalyzer",
    "DevelopmentAnalyzer",
    "PropertyValuesAnalyzer",
]
