"""
Tests for nearest-neighbour ranking and the regional fallback.
"""

from __future__ import annotations

import pytest

from backend.quakescope.core.errors import FetchFailure
from backend.quakescope.seismic.models import Event
from backend.quakescope.seismic.ranker import (
    SOURCE_REGIONAL,
    SOURCE_WORKING_SET,
    rank_nearest,
    rank_regional,
)


def _event(eid: str, lat: float, lon: float) -> Event:
    return Event(eid, 3.0, 10.0, 1704067200000, lat, lon)


REFERENCE = _event("ref", 0.0, 0.0)


class FakeRegionalClient:
    def __init__(self, events=None, fail: bool = False):
        self.events = events or []
        self.fail = fail
        self.calls: list = []

    async def fetch_regional(self, latitude, longitude, *, radius_km, limit, order_by):
        self.calls.append((latitude, longitude, radius_km, limit, order_by))
        if self.fail:
            raise FetchFailure("usgs", "HTTP 500")
        return list(self.events)


class TestRankNearest:
    def test_equidistant_tie_keeps_arrival_order(self):
        east = _event("east", 0.0, 1.0)
        north = _event("north", 1.0, 0.0)

        ranked = rank_nearest(REFERENCE, [east, north])
        assert [r.event.event_id for r in ranked] == ["east", "north"]
        assert ranked[0].distance_km == pytest.approx(ranked[1].distance_km)
        assert ranked[0].distance_km == pytest.approx(111.2, abs=0.1)

        ranked = rank_nearest(REFERENCE, [north, east])
        assert [r.event.event_id for r in ranked] == ["north", "east"]

    def test_reference_included_at_zero(self):
        ranked = rank_nearest(REFERENCE, [_event("far", 10, 10), REFERENCE])
        assert ranked[0].event is REFERENCE
        assert ranked[0].distance_km == 0.0

    def test_sorted_and_limited_to_ten(self):
        candidates = [_event(f"e{i}", 0.0, (i * 7) % 25) for i in range(25)]
        ranked = rank_nearest(REFERENCE, candidates)
        assert len(ranked) == 10
        distances = [r.distance_km for r in ranked]
        assert distances == sorted(distances)

    def test_fewer_than_ten(self):
        ranked = rank_nearest(REFERENCE, [_event("a", 1, 1), _event("b", 2, 2)])
        assert len(ranked) == 2

    def test_empty_candidates(self):
        assert rank_nearest(REFERENCE, []) == []

    def test_custom_limit(self):
        candidates = [_event(f"e{i}", 0.0, i) for i in range(5)]
        assert len(rank_nearest(REFERENCE, candidates, limit=3)) == 3


class TestRankRegional:
    @pytest.mark.asyncio
    async def test_uses_regional_candidates(self):
        client = FakeRegionalClient(events=[_event("r1", 0, 2), _event("r2", 0, 1)])
        working_set = [_event("w1", 0, 0.5)]

        result = await rank_regional(REFERENCE, working_set, client)

        assert result.source == SOURCE_REGIONAL
        assert not result.degraded
        assert [r.event.event_id for r in result.ranked] == ["r2", "r1"]
        assert client.calls == [(0.0, 0.0, 500.0, 200, "time")]

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_working_set(self):
        client = FakeRegionalClient(fail=True)
        working_set = [_event("w2", 0, 3), _event("w1", 0, 0.5)]

        result = await rank_regional(REFERENCE, working_set, client)

        assert result.source == SOURCE_WORKING_SET
        assert result.degraded
        assert "HTTP 500" in result.error
        assert [r.event.event_id for r in result.ranked] == ["w1", "w2"]

    @pytest.mark.asyncio
    async def test_empty_regional_result_is_not_fallback(self):
        client = FakeRegionalClient(events=[])
        result = await rank_regional(REFERENCE, [_event("w1", 0, 1)], client)
        assert result.source == SOURCE_REGIONAL
        assert result.ranked == []

    @pytest.mark.asyncio
    async def test_to_dict(self):
        client = FakeRegionalClient(events=[_event("r1", 0, 1)])
        d = (await rank_regional(REFERENCE, [], client)).to_dict()
        assert d["source"] == "regional"
        assert d["count"] == 1
        assert d["nearest"][0]["event_id"] == "r1"
        assert d["nearest"][0]["distance_km"] == pytest.approx(111.19, abs=0.01)
        assert d["nearest"][0]["distance_label"] == "111 km"
        assert "error" not in d
