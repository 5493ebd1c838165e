"""
Socrata Open Data Records Client.

Fetches point records (crime incidents, building permits) within a radius
of a coordinate from any Socrata-hosted city dataset, e.g. Chicago crimes
(data.cityofchicago.org / ijzp-q8t2) or a city building-permits dataset.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from sodapy import Socrata

from ..models import Coordinates

logger = logging.getLogger(__name__)


class SocrataRecordsClient:
    """
    Client for geo-located records in a Socrata dataset.

    Uses the SoQL within_circle() function on the dataset's location column
    and a lower bound on its date column. Only numeric values and configured
    column names are interpolated into the query.
    """

    def __init__(
        self,
        domain: str,
        dataset_id: str,
        location_column: str,
        date_column: str,
        select_columns: Sequence[str] = (),
        app_token: Optional[str] = None,
        timeout: int = 30,
        limit: int = 5000,
    ):
        self._domain = domain
        self._dataset_id = dataset_id
        self._location_column = location_column
        self._date_column = date_column
        self._select_columns = tuple(select_columns)
        self._app_token = app_token
        self._timeout = timeout
        self._limit = limit
        self._client: Optional[Socrata] = None

    def _get_client(self) -> Socrata:
        """Get or create Socrata client with configured timeout."""
        if self._client is None:
            self._client = Socrata(self._domain, self._app_token, timeout=self._timeout)
        return self._client

    def _build_where(self, coordinates: Coordinates, radius_meters: float, lookback_days: int) -> str:
        since = datetime.now(timezone.utc) - timedelta(days=lookback_days)
        since_str = since.strftime("%Y-%m-%dT00:00:00.000")
        return (
            f"within_circle({self._location_column}, "
            f"{coordinates.latitude:.6f}, {coordinates.longitude:.6f}, {radius_meters:.0f}) "
            f"AND {self._date_column} > '{since_str}'"
        )

    async def fetch_records(
        self,
        coordinates: Coordinates,
        radius_meters: float,
        lookback_days: int,
    ) -> List[Dict[str, Any]]:
        """
        Fetch records around a point.

        Args:
            coordinates: Center point
            radius_meters: Search radius in meters
            lookback_days: Only records newer than this many days

        Returns:
            Raw Socrata rows (dicts)
        """
        where_clause = self._build_where(coordinates, radius_meters, lookback_days)
        select = ", ".join((self._date_column,) + self._select_columns)

        logger.info(f"Fetching {self._domain}/{self._dataset_id} records: {where_clause}")

        # Run blocking Socrata call in thread pool
        loop = asyncio.get_running_loop()
        results = await loop.run_in_executor(
            None,
            lambda: self._get_client().get(
                self._dataset_id,
                select=select,
                where=where_clause,
                limit=self._limit,
            ),
        )

        logger.info(f"Found {len(results)} records in {self._dataset_id}")
        return results

    def close(self) -> None:
        """Close the Socrata client and release resources."""
        if self._client:
            self._client.close()
            self._client = None
