"""
API Routes Module.

Contains all FastAPI router definitions:
- v1_router: Location analysis, geocoding and lead scoring endpoints
"""

from .v1 import router as v1_router

__all__ = ["v1_router"]
