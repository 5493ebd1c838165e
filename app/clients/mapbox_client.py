"""
Mapbox Places API Client.

Provides amenity search (one request per amenity category, issued
concurrently) and forward geocoding. Selected as the primary provider whenever a Mapbox key is set.
"""

import asyncio
import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from ..models import Amenity, AmenityType, Coordinates
from ..utils.common import haversine_meters
from .base import HTTPProviderClient

logger = logging.getLogger(__name__)

MAPBOX_BASE_URL = "https://api.mapbox.com/geocoding/v5/mapbox.places"

# Mapbox search term per canonical amenity type
MAPBOX_CATEGORIES = {
    AmenityType.SCHOOL: "school",
    AmenityType.HOSPITAL: "hospital",
    AmenityType.PARK: "park",
    AmenityType.GROCERY: "supermarket",
    AmenityType.RESTAURANT: "restaurant",
    AmenityType.SHOPPING_MALL: "mall",
    AmenityType.TRANSIT_STATION: "bus station",
    AmenityType.POLICE: "police",
    AmenityType.FIRE_STATION: "fire station",
}

TRANSIT_SEARCHES = (("bus station", "bus"), ("train station", "rail"), ("subway station", "rail"))


class MapboxClient(HTTPProviderClient):
    """Client for the Mapbox Places (geocoding v5) API."""

    name = "mapbox"

    def __init__(
        self,
        api_key: str,
        base_url: str = MAPBOX_BASE_URL,
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")

    async def _search(self, text: str, **params) -> List[dict]:
        url = f"{self._base_url}/{quote(text)}.json"
        data = await self._get_json(url, params={"access_token": self._api_key, **params})
        return data.get("features", [])

    async def _nearby(
        self,
        term: str,
        amenity_type: AmenityType,
        coordinates: Coordinates,
        radius_meters: float,
        subtype: Optional[str] = None,
    ) -> List[Amenity]:
        """One category search, keeping only features inside the radius."""
        proximity = f"{coordinates.longitude},{coordinates.latitude}"
        found: List[Amenity] = []

        for feature in await self._search(term, limit=10, proximity=proximity):
            lon, lat = feature["center"]
            if haversine_meters(coordinates.as_pair(), [lon, lat]) <= radius_meters:
                found.append(
                    Amenity(
                        id=feature.get("id"),
                        type=amenity_type,
                        name=feature.get("text"),
                        subtype=subtype,
                        lat=lat,
                        lon=lon,
                    )
                )

        return found

    async def find_amenities(self, coordinates: Coordinates, radius_meters: float) -> List[Amenity]:
        """
        Search every amenity category near the point and keep hits inside the radius.

        The category searches run concurrently; any failed search fails the call.

        Args:
            coordinates: Center point
            radius_meters: Search radius in meters

        Returns:
            List of Amenity objects, grouped in category order
        """
        results = await asyncio.gather(
            *(
                self._nearby(category, amenity_type, coordinates, radius_meters)
                for amenity_type, category in MAPBOX_CATEGORIES.items()
            )
        )
        amenities = [amenity for found in results for amenity in found]

        logger.info(f"Found {len(amenities)} Mapbox amenities within {radius_meters:.0f}m")
        return amenities

    async def find_transit_stations(self, coordinates: Coordinates, radius_meters: float) -> List[Amenity]:
        """Transit stations only."""
        results = await asyncio.gather(
            *(
                self._nearby(term, AmenityType.TRANSIT_STATION, coordinates, radius_meters, subtype=mode)
                for term, mode in TRANSIT_SEARCHES
            )
        )
        return [station for found in results for station in found]
    async def geocode(self, address: str) -> Optional[List[float]]:
        """
        Geocode an address.

        Returns:
            [longitude, latitude] of the best match, or None if no match
        """
        logger.info(f"Geocoding address with Mapbox: {address}")
        features = await self._search(address, limit=1)
        if not features:
            return None
        lon, lat = features[0]["center"]
        return [float(lon), float(lat)]
