"""
Provider interfaces and the shared async HTTP client base.

Analyzers depend only on the Protocols below; concrete clients in this
package implement them against real services, and tests substitute fakes.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from ..models import Amenity, Coordinates

logger = logging.getLogger(__name__)


class GeoDataProvider(Protocol):
    async def find_amenities(self, coordinates: Coordinates, radius_meters: float) -> List[Amenity]:
        ...


class TransitDataProvider(Protocol):
    async def find_transit_stations(self, coordinates: Coordinates, radius_meters: float) -> List[Amenity]:
        ...


class GeocodingProvider(Protocol):
    name: str

    async def geocode(self, address: str) -> Optional[List[float]]:
        """Return [longitude, latitude] or None when nothing matched."""
        ...


class WalkScoreProvider(Protocol):
    async def score(self, coordinates: Coordinates) -> Optional[int]:
        ...


class SchoolDataProvider(Protocol):
    async def find_schools(self, coordinates: Coordinates, radius_meters: float) -> List[Dict[str, Any]]:
        """Schools as dicts with name, rating (0-10), lat, lon."""
        ...


class RecordProvider(Protocol):
    async def fetch_records(
        self,
        coordinates: Coordinates,
        radius_meters: float,
        lookback_days: int,
    ) -> List[Dict[str, Any]]:
        ...


class PropertyValueProvider(Protocol):
    async def fetch_values(self, coordinates: Coordinates, radius_meters: float) -> Dict[str, Any]:
        """Median value and percentage changes (one_year, three_year, five_year)."""
        ...


class HTTPProviderClient:
    """Base for providers reached over HTTP with a lazily created httpx client."""

    def __init__(self, timeout: float = 15.0, client: Optional[httpx.AsyncClient] = None):
        self._timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def _get_json(self, url: str, **kwargs) -> Any:
        client = await self._get_client()
        response = await client.get(url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def _post_json(self, url: str, **kwargs) -> Any:
        client = await self._get_client()
        response = await client.post(url, **kwargs)
        response.raise_for_status()
        return response.json()

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
