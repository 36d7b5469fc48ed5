"""
Nearest-neighbour ranking around a selected event.

A bounded linear scan: compute the haversine distance from the reference
to every candidate, stable-sort ascending, keep the first ``limit``.
At the working-set sizes involved (tens of thousands at most) there is no
spatial index.

The reference event is not excluded; when it is among the candidates it
ranks first at 0 km. Equal distances keep the candidates' arrival order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from backend.quakescope.core.errors import FetchFailure
from backend.quakescope.seismic.models import Event, RankedEvent
from backend.quakescope.spatial.geodesic import distance_km

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 10
REGIONAL_RADIUS_KM = 500.0
REGIONAL_LIMIT = 200

SOURCE_REGIONAL = "regional"
SOURCE_WORKING_SET = "working_set"


def rank_nearest(
    reference: Event,
    candidates: Iterable[Event],
    limit: int = DEFAULT_LIMIT,
) -> List[RankedEvent]:
    ranked = [
        RankedEvent(
            event=c,
            distance_km=distance_km(
                reference.latitude, reference.longitude, c.latitude, c.longitude
            ),
        )
        for c in candidates
    ]
    # list.sort is stable: ties stay in arrival order
    ranked.sort(key=lambda r: r.distance_km)
    return ranked[:limit]


@dataclass
class RegionalRanking:
    """Ranked neighbours plus where the candidates came from."""
    reference: Event
    ranked: List[RankedEvent] = field(default_factory=list)
    source: str = SOURCE_REGIONAL
    error: str = ""

    @property
    def degraded(self) -> bool:
        return self.source != SOURCE_REGIONAL

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "reference": self.reference.to_dict(),
            "source": self.source,
            "count": len(self.ranked),
            "nearest": [r.to_dict() for r in self.ranked],
        }
        if self.error:
            d["error"] = self.error
        return d


async def rank_regional(
    reference: Event,
    fallback: Iterable[Event],
    client,
    *,
    radius_km: float = REGIONAL_RADIUS_KM,
    regional_limit: int = REGIONAL_LIMIT,
    limit: int = DEFAULT_LIMIT,
) -> RegionalRanking:
    """
    Rank against a fresh regional query around ``reference``.

    If that query fails, rank within ``fallback`` (normally the current
    working set) instead of propagating the failure.
    """
    try:
        candidates = await client.fetch_regional(
            reference.latitude,
            reference.longitude,
            radius_km=radius_km,
            limit=regional_limit,
            order_by="time",
        )
    except FetchFailure as exc:
        logger.warning(
            "Regional query around %s failed, ranking within working set: %s",
            reference.event_id, exc.message,
        )
        return RegionalRanking(
            reference=reference,
            ranked=rank_nearest(reference, fallback, limit),
            source=SOURCE_WORKING_SET,
            error=exc.message,
        )

    return RegionalRanking(
        reference=reference,
        ranked=rank_nearest(reference, candidates, limit),
        source=SOURCE_REGIONAL,
    )
