"""
usgs_client.py — Async client for the USGS earthquake feeds.

Three request shapes are used:

    Named window   GET {feed_base}/all_day.geojson | all_week.geojson
                   (no query parameters)
    Date range     GET {query_url}?format=geojson&starttime=…&endtime=…
                       &minmagnitude=…&maxmagnitude=…&limit=…
    Regional       GET {query_url}?format=geojson&latitude=…&longitude=…
                       &maxradiuskm=…&limit=…&orderby=time

All three return a GeoJSON FeatureCollection. An empty (or missing)
``features`` array is a valid answer, not an error.

Failure contract: a non-2xx status, a transport error, or an unreadable
body raises ``FetchFailure``. Nothing is retried here; the caller decides
whether to try again.

USGS API Reference:
    https://earthquake.usgs.gov/fdsnws/event/1/
    https://earthquake.usgs.gov/earthquakes/feed/v1.0/geojson.php
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from backend.quakescope.core.errors import FetchFailure
from backend.quakescope.seismic.models import Event, TimeWindow, parse_feature

logger = logging.getLogger(__name__)

USGS_FEED_BASE = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary"
USGS_QUERY_URL = "https://earthquake.usgs.gov/fdsnws/event/1/query"

SERVICE_NAME = "usgs"


class USGSClient:
    """
    Thin async wrapper over the USGS endpoints.

    Usage:
        client = USGSClient()
        events = await client.fetch_window(TimeWindow.DAY)
        events = await client.fetch_range(date(2024, 1, 1), date(2024, 1, 15),
                                          min_magnitude=0, max_magnitude=2.0)
        await client.close()

    An ``httpx.AsyncClient`` may be injected (tests pass one built on
    ``httpx.MockTransport``); otherwise one is created lazily.
    """

    def __init__(
        self,
        feed_base: str = USGS_FEED_BASE,
        query_url: str = USGS_QUERY_URL,
        timeout: float = 30.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.feed_base = feed_base.rstrip("/")
        self.query_url = query_url
        self.timeout = timeout
        self._http_client = http_client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None or self._http_client.is_closed:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Accept": "application/json"},
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client and not self._http_client.is_closed:
            await self._http_client.aclose()

    # ------------------------------------------------------------------
    # Request shapes
    # ------------------------------------------------------------------

    async def fetch_window(self, window: TimeWindow) -> List[Event]:
        """Fetch the fixed summary feed for a named window."""
        url = f"{self.feed_base}/{window.feed_name}"
        return await self._get_events(url, None)

    async def fetch_range(
        self,
        start: date,
        end: date,
        *,
        min_magnitude: float,
        max_magnitude: float,
        limit: int = 10000,
    ) -> List[Event]:
        """Fetch events between two calendar dates with server-side magnitude bounds."""
        params: Dict[str, Any] = {
            "format": "geojson",
            "starttime": start.isoformat(),
            "endtime": end.isoformat(),
            "minmagnitude": min_magnitude,
            "maxmagnitude": max_magnitude,
            "limit": limit,
        }
        return await self._get_events(self.query_url, params)

    async def fetch_regional(
        self,
        latitude: float,
        longitude: float,
        *,
        radius_km: float = 500.0,
        limit: int = 200,
        order_by: str = "time",
    ) -> List[Event]:
        """Fetch events within ``radius_km`` of a point, most recent first."""
        params: Dict[str, Any] = {
            "format": "geojson",
            "latitude": latitude,
            "longitude": longitude,
            "maxradiuskm": radius_km,
            "limit": limit,
            "orderby": order_by,
        }
        return await self._get_events(self.query_url, params)

    async def ping(self) -> int:
        """HEAD the hourly summary feed and return its status code."""
        url = f"{self.feed_base}/all_hour.geojson"
        client = await self._get_client()
        try:
            response = await client.head(url)
        except httpx.HTTPError as exc:
            raise FetchFailure(SERVICE_NAME, f"{type(exc).__name__}: {exc}", url=url) from exc
        return response.status_code

    # ------------------------------------------------------------------
    # HTTP layer
    # ------------------------------------------------------------------

    async def _get_events(self, url: str, params: Optional[Dict[str, Any]]) -> List[Event]:
        start = time.monotonic()
        client = await self._get_client()

        try:
            response = await client.get(url, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise FetchFailure(SERVICE_NAME, f"HTTP {status}", url=url, status_code=status) from exc
        except httpx.HTTPError as exc:
            raise FetchFailure(SERVICE_NAME, f"{type(exc).__name__}: {exc}", url=url) from exc
        except ValueError as exc:
            raise FetchFailure(SERVICE_NAME, f"invalid JSON body: {exc}", url=url) from exc

        features = data.get("features") if isinstance(data, dict) else None
        events: List[Event] = []
        for feature in features or []:
            event = parse_feature(feature)
            if event is not None:
                events.append(event)

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.debug(
            "GET %s → %d events (%.1fms)", url, len(events), elapsed_ms,
            extra={"url": url, "event_count": len(events), "duration_ms": elapsed_ms},
        )
        return events
