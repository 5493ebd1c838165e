"""
OpenStreetMap Nominatim Geocoding Client.

Public geocoder (no key required) used when Mapbox is not configured.
"""

import logging
from typing import List, Optional

import httpx

from .base import HTTPProviderClient

logger = logging.getLogger(__name__)

NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org/search"


class NominatimClient(HTTPProviderClient):
    """Geocoder for free-form addresses using Nominatim."""

    name = "nominatim"

    def __init__(
        self,
        endpoint: str = NOMINATIM_BASE_URL,
        user_agent: str = "LeadVerifyPro/1.0",
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self._endpoint = endpoint
        self._user_agent = user_agent

    async def geocode(self, address: str) -> Optional[List[float]]:
        """
        Geocode an address.

        Args:
            address: Free-form address

        Returns:
            [longitude, latitude] of the best match, or None if no match
        """
        logger.info(f"Geocoding address with Nominatim: {address}")

        # Nominatim usage policy requires an identifying User-Agent
        results = await self._get_json(
            self._endpoint,
            params={"q": address, "format": "json", "limit": 1},
            headers={"User-Agent": self._user_agent},
        )

        if not results:
            logger.warning(f"No geocoding results for: {address}")
            return None

        best = results[0]
        return [float(best["lon"]), float(best["lat"])]
