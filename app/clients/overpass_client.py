"""
OpenStreetMap Overpass API Client.

Fetches nearby points of interest and transit stops around a coordinate.
Used as the geodata provider whenever no Mapbox key is configured.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..models import Amenity, AmenityType, Coordinates
from .base import HTTPProviderClient

logger = logging.getLogger(__name__)

GROCERY_SHOPS = frozenset(("supermarket", "convenience", "greengrocer"))
TRANSIT_AMENITIES = frozenset(("bus_station", "ferry_terminal"))


def classify_osm_tags(tags: Dict[str, str]) -> AmenityType:
    """
    Map raw OSM tags to a canonical amenity type.

    Args:
        tags: OSM element tags

    Returns:
        AmenityType (OTHER when no rule matches)
    """
    amenity = tags.get("amenity")
    shop = tags.get("shop")

    if amenity == "school" or tags.get("education"):
        return AmenityType.SCHOOL
    if amenity == "hospital":
        return AmenityType.HOSPITAL
    if tags.get("leisure") == "park":
        return AmenityType.PARK
    if shop in GROCERY_SHOPS:
        return AmenityType.GROCERY
    if amenity == "restaurant":
        return AmenityType.RESTAURANT
    if shop == "mall":
        return AmenityType.SHOPPING_MALL
    if amenity in TRANSIT_AMENITIES or tags.get("public_transport") or tags.get("railway") == "station":
        return AmenityType.TRANSIT_STATION
    if amenity == "police":
        return AmenityType.POLICE
    if amenity == "fire_station":
        return AmenityType.FIRE_STATION

    return AmenityType.OTHER


def transit_mode(tags: Dict[str, str]) -> str:
    """Rough transit mode for a stop element."""
    if tags.get("railway") in ("station", "halt", "tram_stop") or tags.get("subway") == "yes" or tags.get("train") == "yes":
        return "rail"
    if tags.get("amenity") == "ferry_terminal" or tags.get("ferry") == "yes":
        return "ferry"
    return "bus"


class OverpassClient(HTTPProviderClient):
    """Client for OpenStreetMap Overpass API."""

    def __init__(
        self,
        endpoint: str = "https://overpass-api.de/api/interpreter",
        user_agent: str = "LeadVerifyPro/1.0",
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        super().__init__(timeout=timeout, client=client)
        self._endpoint = endpoint
        self._user_agent = user_agent

    async def _query(self, query: str) -> List[Dict[str, Any]]:
        data = await self._post_json(
            self._endpoint,
            data={"data": query},
            headers={"User-Agent": self._user_agent},
        )
        return [e for e in data.get("elements", []) if "lat" in e and "lon" in e]

    async def find_amenities(self, coordinates: Coordinates, radius_meters: float) -> List[Amenity]:
        """
        Fetch amenity, shop, leisure and education nodes within the radius.

        Args:
            coordinates: Center point
            radius_meters: Search radius in meters

        Returns:
            List of classified Amenity objects
        """
        around = f"around:{radius_meters:.0f},{coordinates.latitude},{coordinates.longitude}"
        query = (
            "[out:json][timeout:25];"
            "("
            f'node["amenity"]({around});'
            f'node["shop"]({around});'
            f'node["leisure"]({around});'
            f'node["education"]({around});'
            ");"
            "out body;"
        )

        logger.info(f"Fetching OSM amenities around {coordinates.as_pair()} ({radius_meters:.0f}m)")
        elements = await self._query(query)
        logger.info(f"Found {len(elements)} OSM elements")

        return [
            Amenity(
                id=str(element.get("id")),
                type=classify_osm_tags(element.get("tags", {})),
                name=element.get("tags", {}).get("name"),
                lat=element["lat"],
                lon=element["lon"],
            )
            for element in elements
        ]

    async def find_transit_stations(self, coordinates: Coordinates, radius_meters: float) -> List[Amenity]:
        """Fetch public transport stops and stations within the radius."""
        around = f"around:{radius_meters:.0f},{coordinates.latitude},{coordinates.longitude}"
        query = (
            "[out:json][timeout:25];"
            "("
            f'node["public_transport"~"station|stop_position|platform"]({around});'
            f'node["railway"="station"]({around});'
            f'node["highway"="bus_stop"]({around});'
            f'node["amenity"~"bus_station|ferry_terminal"]({around});'
            ");"
            "out body;"
        )

        logger.info(f"Fetching OSM transit stops around {coordinates.as_pair()}")
        elements = await self._query(query)

        return [
            Amenity(
                id=str(element.get("id")),
                type=AmenityType.TRANSIT_STATION,
                name=element.get("tags", {}).get("name"),
                subtype=transit_mode(element.get("tags", {})),
                lat=element["lat"],
                lon=element["lon"],
            )
            for element in elements
        ]
