"""
Geocoder Service.

Converts free-form addresses to [longitude, latitude] pairs. The provider
is selected from configuration: Mapbox when an API key is set, otherwise
the public Nominatim service. This is a selection, not a retry chain, so a
failure of the selected provider is a geocoding failure.
"""

import logging
from typing import List, Optional

import httpx

from ..clients.base import GeocodingProvider
from ..clients.mapbox_client import MapboxClient
from ..clients.nominatim_client import NominatimClient
from ..config import Settings
from ..exceptions import GeocodingFailed

logger = logging.getLogger(__name__)


def select_geocoding_provider(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
) -> GeocodingProvider:
    """Pick the configured geocoding provider."""
    if settings.mapbox_api_key:
        return MapboxClient(
            api_key=settings.mapbox_api_key,
            base_url=settings.mapbox_base_url,
            timeout=settings.http_timeout_seconds,
            client=client,
        )

    logger.info("No Mapbox key configured, geocoding with Nominatim")
    return NominatimClient(
        endpoint=settings.nominatim_endpoint,
        user_agent=settings.osm_user_agent,
        timeout=settings.http_timeout_seconds,
        client=client,
    )


class Geocoder:
    """Address to coordinate lookup over a single selected provider."""

    def __init__(self, provider: GeocodingProvider):
        self._provider = provider

    @property
    def provider_name(self) -> str:
        return getattr(self._provider, "name", type(self._provider).__name__)

    async def geocode(self, address: str) -> List[float]:
        """
        Geocode an address.

        Args:
            address: Free-form address

        Returns:
            [longitude, latitude]

        Raises:
            GeocodingFailed: If the provider errors or finds no match
        """
        address = (address or "").strip()
        if not address:
            raise GeocodingFailed("Address is empty")

        try:
            result = await self._provider.geocode(address)

        except httpx.HTTPStatusError as e:
            logger.error(f"Geocoding HTTP error from {self.provider_name}: {e}")
            raise GeocodingFailed(
                f"Geocoding provider returned HTTP {e.response.status_code}",
                {"provider": self.provider_name, "address": address},
            ) from e

        except Exception as e:
            logger.error(f"Geocoding error from {self.provider_name}: {e}")
            raise GeocodingFailed(
                f"Geocoding provider failed: {e}",
                {"provider": self.provider_name, "address": address},
            ) from e

        if not result:
            logger.warning(f"No geocoding results for: {address}")
            raise GeocodingFailed(
                "Address not found",
                {"provider": self.provider_name, "address": address},
            )

        logger.info(f"Geocoded '{address}' to {result} via {self.provider_name}")
        return [float(result[0]), float(result[1])]

    async def close(self) -> None:
        close = getattr(self._provider, "close", None)
        if close is not None:
            await close()
