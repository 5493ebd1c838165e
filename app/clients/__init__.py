"""
External Data Clients Module.

Async clients for the providers behind each analyzer:
- OverpassClient / MapboxClient: nearby amenities and transit stops
- NominatimClient / MapboxClient: address geocoding
- WalkScoreClient: official walk score (optional)
- SchoolsClient: school ratings (optional)
- PropertyValuesClient: area median values and trends (optional)
- SocrataRecordsClient: crime incidents and building permits from city open data
"""

from .base import (
    GeoDataProvider,
    TransitDataProvider,
    GeocodingProvider,
    WalkScoreProvider,
    SchoolDataProvider,
    RecordProvider,
    PropertyValueProvider,
)
from .overpass_client import OverpassClient, classify_osm_tags
from .mapbox_client import MapboxClient
from .nominatim_client import NominatimClient
from .walkscore_client import WalkScoreClient
from .schools_client import SchoolsClient
from .property_values_client import PropertyValuesClient
from .socrata_client import SocrataRecordsClient

__all__ = [
    "GeoDataProvider",
    "TransitDataProvider",
    "GeocodingProvider",
    "WalkScoreProvider",
    "SchoolDataProvider",
    "RecordProvider",
    "PropertyValueProvider",
    "OverpassClient",
    "classify_osm_tags",
    "MapboxClient",
    "NominatimClient",
    "WalkScoreClient",
    "SchoolsClient",
    "PropertyValuesClient",
    "SocrataRecordsClient",
]
