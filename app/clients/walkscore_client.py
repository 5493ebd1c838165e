"""
Walk Score API Client.

Only consulted when local amenity data is too sparse to estimate a walk
score on our own.
"""

import logging
from typing import Optional

import httpx

from ..models import Coordinates
from .base import HTTPProviderClient

logger = logging.getLogger(__name__)

WALKSCORE_BASE_URL = "https://api.walkscore.com/score"


class WalkScoreClient(HTTPProviderClient):
    """Client for the Walk Score API."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = WALKSCORE_BASE_URL,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self._api_key = api_key
        self._endpoint = endpoint

    async def score(self, coordinates: Coordinates) -> Optional[int]:
        """Return the official walk score, or None if the API has none."""
        data = await self._get_json(
            self._endpoint,
            params={
                "format": "json",
                "lat": coordinates.latitude,
                "lon": coordinates.longitude,
                "transit": 1,
                "bike": 1,
                "wsapikey": self._api_key,
            },
        )
        walkscore = data.get("walkscore") if isinstance(data, dict) else None
        if walkscore is None:
            return None
        return int(walkscore)
