"""
Integration tests for the earthquake API, driven through FastAPI's
TestClient with a session wired to an in-memory USGS client.
"""

from __future__ import annotations

import logging
from datetime import date

import pytest
from fastapi.testclient import TestClient

from backend.quakescope.core.errors import FetchFailure
from backend.quakescope.core.logging_config import get_request_context
from backend.quakescope.main import create_app
from backend.quakescope.seismic.models import Event, TimeWindow
from backend.quakescope.seismic.orchestrator import ChunkedFetchOrchestrator
from backend.quakescope.seismic.session import QuakeSession

JAN_1 = 1704067200000

EVENTS = [
    Event("us1", 1.2, 8.0, JAN_1, 35.0, -117.0, "Ridgecrest, CA"),
    Event("us2", 1.8, 12.0, JAN_1 + 86_400_000, 35.5, -117.5, "Trona, CA"),
    Event("us3", 4.9, 40.0, JAN_1 + 86_400_000, 36.0, -118.0, "Lone Pine, CA"),
]


class InMemoryUSGS:
    def __init__(self):
        self.calls: list = []
        self.fail = False
        self.fail_regional = False
        self.regional: list = []

    async def fetch_window(self, window: TimeWindow):
        self.calls.append(("window", window))
        if self.fail:
            raise FetchFailure("usgs", "HTTP 503", status_code=503)
        return list(EVENTS)

    async def fetch_range(self, start, end, *, min_magnitude, max_magnitude, limit):
        self.calls.append(("range", start, end, min_magnitude, max_magnitude))
        if self.fail:
            raise FetchFailure("usgs", "HTTP 503", status_code=503)
        return [e for e in EVENTS if min_magnitude <= e.magnitude <= max_magnitude]

    async def fetch_regional(self, latitude, longitude, *, radius_km, limit, order_by):
        self.calls.append(("regional", latitude, longitude))
        if self.fail_regional:
            raise FetchFailure("usgs", "ReadTimeout")
        return list(self.regional)

    async def ping(self) -> int:
        return 200

    async def close(self) -> None:
        pass


@pytest.fixture
def usgs():
    return InMemoryUSGS()


@pytest.fixture
def client(usgs):
    session = QuakeSession(ChunkedFetchOrchestrator(usgs, pacing_seconds=0), usgs)
    with TestClient(create_app(session=session)) as c:
        yield c


class TestListEarthquakes:
    def test_named_window_default_slider(self, client, usgs):
        resp = client.get("/api/v1/earthquakes", params={"window": "week"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["outcome"]["state"] == "succeeded"
        # slider 2.0 without explicit range keeps magnitudes in [0, 2.0]
        assert [e["event_id"] for e in body["events"]] == ["us1", "us2"]
        assert usgs.calls == [("window", TimeWindow.WEEK)]

    def test_explicit_magnitude_range(self, client):
        resp = client.get("/api/v1/earthquakes", params={"mag_min": 4, "mag_max": 6})
        assert [e["event_id"] for e in resp.json()["events"]] == ["us3"]

    def test_max_count(self, client):
        resp = client.get(
            "/api/v1/earthquakes",
            params={"mag_min": 0, "mag_max": 10, "max_count": 1},
        )
        assert resp.json()["count"] == 1

    def test_custom_range_chunked(self, client, usgs):
        resp = client.get(
            "/api/v1/earthquakes",
            params={"start": "2024-01-01", "end": "2024-04-10"},
        )
        assert resp.status_code == 200
        ranges = [c for c in usgs.calls if c[0] == "range"]
        assert [c[1] for c in ranges] == [
            date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1),
        ]
        assert all((c[3], c[4]) == (0.0, 2.0) for c in ranges)
        assert resp.json()["outcome"]["request"]["mode"] == "custom_range"

    def test_custom_range_clamped(self, client, usgs):
        client.get(
            "/api/v1/earthquakes",
            params={"start": "2024-01-01", "end": "2024-12-31"},
        )
        ranges = [c for c in usgs.calls if c[0] == "range"]
        assert ranges[-1][2] == date(2024, 5, 31)

    def test_start_after_end_rejected(self, client):
        resp = client.get(
            "/api/v1/earthquakes",
            params={"start": "2024-03-01", "end": "2024-01-01"},
        )
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_half_magnitude_pair_rejected(self, client):
        resp = client.get("/api/v1/earthquakes", params={"mag_min": 3})
        assert resp.status_code == 422
        assert resp.json()["error"]["details"]["field"] == "magnitude_range"

    def test_fetch_failure_is_502(self, client, usgs):
        usgs.fail = True
        resp = client.get("/api/v1/earthquakes")
        assert resp.status_code == 502
        error = resp.json()["error"]
        assert error["code"] == "FETCH_FAILURE"
        assert error["details"]["status_code"] == 503

        status = client.get("/api/v1/earthquakes/status").json()
        assert status["state"] == "failed"
        assert "HTTP 503" in status["error"]


class TestStatusAndHistograms:
    def test_status_idle_before_first_fetch(self, client):
        body = client.get("/api/v1/earthquakes/status").json()
        assert body["state"] == "idle"
        assert body["generation"] == 0

    def test_histograms(self, client):
        client.get("/api/v1/earthquakes", params={"mag_min": 0, "mag_max": 10})
        body = client.get("/api/v1/earthquakes/histograms").json()
        assert body["total"] == 3
        assert [b["label"] for b in body["by_day"]] == ["2024-01-01", "2024-01-02"]
        assert [b["count"] for b in body["by_magnitude"]] == [2, 0, 1, 0]

    def test_histograms_empty(self, client):
        body = client.get("/api/v1/earthquakes/histograms").json()
        assert body["total"] == 0
        assert len(body["by_magnitude"]) == 4


class TestNearest:
    def test_unknown_event_404(self, client):
        client.get("/api/v1/earthquakes")
        resp = client.get("/api/v1/earthquakes/missing/nearest")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    def test_local_ranking(self, client):
        client.get("/api/v1/earthquakes", params={"mag_min": 0, "mag_max": 10})
        body = client.get(
            "/api/v1/earthquakes/us1/nearest", params={"regional": "false"}
        ).json()
        assert body["source"] == "working_set"
        assert [n["event_id"] for n in body["nearest"]] == ["us1", "us2", "us3"]
        assert body["nearest"][0]["distance_km"] == 0.0
        assert body["nearest"][0]["distance_label"] == "0 m"

    def test_regional_fallback(self, client, usgs):
        client.get("/api/v1/earthquakes", params={"mag_min": 0, "mag_max": 10})
        usgs.fail_regional = True
        body = client.get("/api/v1/earthquakes/us3/nearest").json()
        assert body["source"] == "working_set"
        assert "ReadTimeout" in body["error"]
        assert body["nearest"][0]["event_id"] == "us3"


class TestHealth:
    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_health_report(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json()["status"] == "healthy"

    def test_request_id_header(self, client):
        resp = client.get("/", headers={"X-Request-ID": "abc123"})
        assert resp.headers["X-Request-ID"] == "abc123"


class _ContextCapture(logging.Handler):
    """Snapshots the request context at the moment each record is emitted."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.contexts: list = []

    def emit(self, record: logging.LogRecord) -> None:
        self.contexts.append((record.getMessage(), dict(get_request_context())))


class TestRequestLogging:
    def test_access_log_carries_request_context(self, client):
        mw_logger = logging.getLogger("backend.quakescope.core.middleware")
        capture = _ContextCapture()
        previous_level = mw_logger.level
        mw_logger.addHandler(capture)
        mw_logger.setLevel(logging.INFO)
        try:
            client.get("/", headers={"X-Request-ID": "req-42"})
        finally:
            mw_logger.removeHandler(capture)
            mw_logger.setLevel(previous_level)

        access = [ctx for msg, ctx in capture.contexts if msg.startswith("GET / ")]
        assert access, capture.contexts
        assert access[0]["request_id"] == "req-42"
        assert access[0]["endpoint"] == "/"
