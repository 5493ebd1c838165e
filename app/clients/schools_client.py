"""
School Ratings Client.

Queries a configurable school-ratings endpoint (GreatSchools-style JSON)
for schools near a coordinate.

Expected response shape:
    {"schools": [{"name": str, "rating": 0-10, "lat": float, "lon": float}, ...]}
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..models import Coordinates
from .base import HTTPProviderClient

logger = logging.getLogger(__name__)


class SchoolsClient(HTTPProviderClient):
    """Client for a school-ratings JSON API."""

    def __init__(
        self,
        endpoint: str,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self._endpoint = endpoint
        self._api_key = api_key

    async def find_schools(self, coordinates: Coordinates, radius_meters: float) -> List[Dict[str, Any]]:
        params = {
            "lat": coordinates.latitude,
            "lon": coordinates.longitude,
            "radius": round(radius_meters),
        }
        headers = {"X-API-Key": self._api_key} if self._api_key else {}

        data = await self._get_json(self._endpoint, params=params, headers=headers)
        schools = data.get("schools", []) if isinstance(data, dict) else data

        logger.info(f"Found {len(schools)} schools near {coordinates.as_pair()}")
        return [s for s in schools if s.get("rating") is not None]
