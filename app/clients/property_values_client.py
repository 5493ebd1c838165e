"""
Property Values Client.

Queries a configurable property-value endpoint (ATTOM/Zillow-style JSON)
for the median value and value change around a coordinate.

Expected response shape:
    {"median_value": float,
     "value_change": {"one_year": %, "three_year": %, "five_year": %}}
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..models import Coordinates
from .base import HTTPProviderClient

logger = logging.getLogger(__name__)


class PropertyValuesClient(HTTPProviderClient):
    """Client for an area property-value JSON API."""

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

    async def fetch_values(self, coordinates: Coordinates, radius_meters: float) -> Dict[str, Any]:
        params = {
            "lat": coordinates.latitude,
            "lon": coordinates.longitude,
            "radius": round(radius_meters),
        }
        headers = {"X-API-Key": self._api_key} if self._api_key else {}

        data = await self._get_json(self._endpoint, params=params, headers=headers)
        change = data.get("value_change", {})

        return {
            "median_value": float(data.get("median_value") or 0),
            "value_change": {
                "one_year": float(change.get("one_year") or 0),
                "three_year": float(change.get("three_year") or 0),
                "five_year": float(change.get("five_year") or 0),
            },
        }
