"""
QuakeSession — owner of the current working set and its fetch state.

A refresh bumps a monotonically increasing generation token before it
starts. When the orchestration finishes, its result is committed only if
no newer refresh has started in the meantime; otherwise it is dropped.
The transport is never cancelled; stale answers are just ignored.

State machine exposed to callers:

    IDLE ──refresh──▶ LOADING ──ok──▶ SUCCEEDED (count = N)
                         │
                         └──FetchFailure──▶ FAILED (error = message)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from backend.quakescope.core.errors import FetchFailure, NotFoundError
from backend.quakescope.seismic.aggregator import Aggregation, aggregate
from backend.quakescope.seismic.models import Event, FetchRequest
from backend.quakescope.seismic.orchestrator import ChunkedFetchOrchestrator
from backend.quakescope.seismic.pipeline import WorkingSet, apply_filters
from backend.quakescope.seismic.ranker import (
    DEFAULT_LIMIT,
    REGIONAL_LIMIT,
    REGIONAL_RADIUS_KM,
    RegionalRanking,
    SOURCE_WORKING_SET,
    rank_nearest,
    rank_regional,
)

logger = logging.getLogger(__name__)


class FetchState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchOutcome:
    """Snapshot of the session's result contract."""
    state: FetchState
    generation: int
    count: int = 0
    error: Optional[str] = None
    request: Optional[FetchRequest] = None
    last_updated: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "generation": self.generation,
            "count": self.count,
            "error": self.error,
            "request": self.request.to_dict() if self.request else None,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }


class StaleResult(Exception):
    """Raised to the caller of a refresh that a newer refresh superseded."""

    def __init__(self, generation: int, current: int):
        super().__init__(f"generation {generation} superseded by {current}")
        self.generation = generation
        self.current = current


class QuakeSession:
    """
    Usage:
        session = QuakeSession(ChunkedFetchOrchestrator(client), client)
        outcome = await session.refresh(FetchRequest.named("week"))
        ranking = await session.nearest("us7000abcd")
        charts = session.histograms()
    """

    def __init__(
        self,
        orchestrator: ChunkedFetchOrchestrator,
        client=None,
        *,
        regional_radius_km: float = REGIONAL_RADIUS_KM,
        regional_limit: int = REGIONAL_LIMIT,
        nearest_limit: int = DEFAULT_LIMIT,
    ):
        self.orchestrator = orchestrator
        self.client = client if client is not None else orchestrator.client
        self.regional_radius_km = regional_radius_km
        self.regional_limit = regional_limit
        self.nearest_limit = nearest_limit

        self._generation = 0
        self._working_set = WorkingSet()
        self._outcome = FetchOutcome(state=FetchState.IDLE, generation=0)

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def working_set(self) -> WorkingSet:
        return self._working_set

    @property
    def outcome(self) -> FetchOutcome:
        return self._outcome

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _fail(self, generation: int, request: FetchRequest, message: str, exc: Exception) -> None:
        """Record FAILED for a current refresh; a stale one raises StaleResult instead."""
        if not self._is_current(generation):
            logger.debug("Discarding failure of stale refresh #%d", generation)
            raise StaleResult(generation, self._generation) from exc
        self._outcome = FetchOutcome(
            state=FetchState.FAILED,
            generation=generation,
            error=message,
            request=request,
            last_updated=datetime.now(timezone.utc),
        )
        logger.error(
            "Refresh #%d failed: %s", generation, message,
            extra={"generation": generation},
        )

    async def refresh(self, request: FetchRequest) -> FetchOutcome:
        """
        Fetch and filter a new working set, replacing the previous one.

        Raises FetchFailure when this (still current) refresh fails, and
        StaleResult when a newer refresh started before this one finished.
        Any other error is also recorded as FAILED before it propagates.
        """
        self._generation += 1
        generation = self._generation
        self._outcome = FetchOutcome(
            state=FetchState.LOADING,
            generation=generation,
            count=self._working_set.count,
            request=request,
            last_updated=self._outcome.last_updated,
        )
        logger.info(
            "Refresh #%d started (%s)", generation, request.mode.value,
            extra={"generation": generation},
        )

        try:
            raw = await self.orchestrator.fetch(request)
            working_set = apply_filters(raw, request.filters, request.mode)
        except FetchFailure as exc:
            self._fail(generation, request, exc.message, exc)
            raise
        except Exception as exc:
            self._fail(generation, request, f"{type(exc).__name__}: {exc}", exc)
            logger.exception("Unexpected error in refresh #%d", generation)
            raise

        if not self._is_current(generation):
            logger.debug(
                "Discarding result of stale refresh #%d (current #%d)",
                generation, self._generation,
            )
            raise StaleResult(generation, self._generation)

        self._working_set = working_set
        self._outcome = FetchOutcome(
            state=FetchState.SUCCEEDED,
            generation=generation,
            count=working_set.count,
            request=request,
            last_updated=datetime.now(timezone.utc),
        )
        return self._outcome

    # ------------------------------------------------------------------
    # Queries against the working set
    # ------------------------------------------------------------------

    def find(self, event_id: str) -> Event:
        for event in self._working_set:
            if event.event_id == event_id:
                return event
        raise NotFoundError("Earthquake", id=event_id)

    async def nearest(self, event_id: str, regional: bool = True) -> RegionalRanking:
        reference = self.find(event_id)
        if not regional:
            return RegionalRanking(
                reference=reference,
                ranked=rank_nearest(reference, self._working_set, self.nearest_limit),
                source=SOURCE_WORKING_SET,
            )
        return await rank_regional(
            reference,
            self._working_set,
            self.client,
            radius_km=self.regional_radius_km,
            regional_limit=self.regional_limit,
            limit=self.nearest_limit,
        )

    def histograms(self) -> Aggregation:
        return aggregate(self._working_set.events)
