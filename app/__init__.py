"""Lead qualification scoring and geospatial analytics service."""

__version__ = "1.0.0"
