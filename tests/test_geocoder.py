"""
Tests for geocoding provider selection and failure handling.
"""

import httpx
import pytest

from app.clients.mapbox_client import MapboxClient
from app.clients.nominatim_client import NominatimClient
from app.config import Settings
from app.exceptions import GeocodingFailed
from app.services.geocoder import Geocoder, select_geocoding_provider

WACKER = "233 S Wacker Dr, Chicago, IL"
WACKER_PAIR = [-87.6359, 41.8789]


def nominatim_handler(request: httpx.Request) -> httpx.Response:
    assert request.headers["User-Agent"] == "LeadVerifyPro/1.0"
    if request.url.params["q"] == WACKER:
        return httpx.Response(200, json=[{"lon": "-87.6359", "lat": "41.8789", "display_name": "Willis Tower"}])
    return httpx.Response(200, json=[])


def mapbox_handler(request: httpx.Request) -> httpx.Response:
    assert request.url.params["access_token"] == "pk.test"
    return httpx.Response(200, json={"features": [{"center": [-87.6359, 41.8789], "text": "Willis Tower"}]})


def settings(**overrides) -> Settings:
    return Settings(_env_file=None, **{"mapbox_api_key": None, **overrides})


class TestProviderSelection:

    def test_nominatim_when_mapbox_unconfigured(self):
        assert isinstance(select_geocoding_provider(settings()), NominatimClient)

    def test_mapbox_when_key_configured(self):
        assert isinstance(select_geocoding_provider(settings(mapbox_api_key="pk.test")), MapboxClient)


class TestGeocoder:

    @pytest.mark.asyncio
    async def test_falls_back_to_nominatim(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(nominatim_handler))
        geocoder = Geocoder(select_geocoding_provider(settings(), client=client))

        pair = await geocoder.geocode(WACKER)

        assert pair == WACKER_PAIR
        assert geocoder.provider_name == "nominatim"
        await geocoder.close()

    @pytest.mark.asyncio
    async def test_mapbox(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(mapbox_handler))
        geocoder = Geocoder(select_geocoding_provider(settings(mapbox_api_key="pk.test"), client=client))

        assert await geocoder.geocode(WACKER) == WACKER_PAIR
        assert geocoder.provider_name == "mapbox"
        await geocoder.close()

    @pytest.mark.asyncio
    async def test_no_match_raises(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(nominatim_handler))
        geocoder = Geocoder(NominatimClient(client=client))

        with pytest.raises(GeocodingFailed) as exc_info:
            await geocoder.geocode("1 Nowhere Lane, Atlantis")

        assert exc_info.value.status_code == 422
        assert exc_info.value.details["provider"] == "nominatim"

    @pytest.mark.asyncio
    async def test_http_error_raises(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        geocoder = Geocoder(NominatimClient(client=client))

        with pytest.raises(GeocodingFailed, match="HTTP 503"):
            await geocoder.geocode(WACKER)

    @pytest.mark.asyncio
    async def test_network_error_raises(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        geocoder = Geocoder(NominatimClient(client=client))

        with pytest.raises(GeocodingFailed):
            await geocoder.geocode(WACKER)

    @pytest.mark.asyncio
    async def test_empty_address(self):
        geocoder = Geocoder(NominatimClient())
        with pytest.raises(GeocodingFailed):
            await geocoder.geocode("   ")
