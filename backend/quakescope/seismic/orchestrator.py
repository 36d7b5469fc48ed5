"""
Chunked fetch orchestration.

═══════════════════════════════════════════════════════════════════════════
WHY CHUNK?
═══════════════════════════════════════════════════════════════════════════

A single FDSN query has a practical ceiling on the number of events it
returns and on how long the server will spend on it. Multi-month ranges at
low magnitude thresholds easily exceed both, so a long range is split into
month-sized sub-intervals fetched one after another.

Chunk plan for a range [start, end]:

    span = (end.year − start.year) · 12 + (end.month − start.month)

    span ≤ 1  → one request covering [start, end]
    span > 1  → boundaries at start + k months (k = 1, 2, ...)
                each chunk runs from one boundary to the day before
                the next; the chunk that reaches ``end`` takes the
                remainder, provided it stays within 31 days

Example: [2024-01-01, 2024-04-10] →
    2024-01-01..2024-01-31, 2024-02-01..2024-02-29,
    2024-03-01..2024-03-31, 2024-04-01..2024-04-10

Example: [2024-01-15, 2024-03-15] →
    2024-01-15..2024-02-14, 2024-02-15..2024-03-15

Boundaries are counted from ``start``, so a start on the 31st does not
drift after February. Chunks are consecutive and non-overlapping, and
none exceeds 31 days. A range of n whole months takes n requests, except
when the last month plus its closing day would exceed 31 days; that day
then gets a request of its own.

═══════════════════════════════════════════════════════════════════════════
RATE LIMITING
═══════════════════════════════════════════════════════════════════════════

Chunk requests are issued strictly sequentially, with ``pacing_seconds``
of sleep between them. The sleep primitive is injected so tests can run
with zero delay or record the waits.

═══════════════════════════════════════════════════════════════════════════
FAILURE CONTRACT
═══════════════════════════════════════════════════════════════════════════

Any failed request aborts the whole orchestration with ``FetchFailure``.
Chunks already fetched are dropped; there is no partial result and no
retry.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Awaitable, Callable, List, Optional

from backend.quakescope.seismic.models import (
    Event,
    FetchRequest,
    QueryMode,
    add_months,
    month_span,
)

logger = logging.getLogger(__name__)

DEFAULT_PACING_SECONDS = 0.3
DEFAULT_RANGE_LIMIT = 10000
MAX_CHUNK_DAYS = 31

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class Chunk:
    """Inclusive sub-interval of a requested range."""
    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def plan_chunks(start: date, end: date) -> List[Chunk]:
    """Split [start, end] into the sequence of requests the orchestrator issues."""
    if month_span(start, end) <= 1:
        return [Chunk(start, end)]

    chunks: List[Chunk] = []
    cursor = start
    months = 1
    while cursor <= end:
        boundary = add_months(start, months)
        if end <= boundary and (end - cursor).days < MAX_CHUNK_DAYS:
            chunks.append(Chunk(cursor, end))
            break
        chunk_end = boundary - timedelta(days=1)
        chunks.append(Chunk(cursor, chunk_end))
        cursor = boundary
        months += 1
    return chunks


def deduplicate_events(events: List[Event]) -> List[Event]:
    """Keep the first occurrence of each event id, preserving order."""
    seen = set()
    unique: List[Event] = []
    for event in events:
        if event.event_id in seen:
            continue
        seen.add(event.event_id)
        unique.append(event)
    return unique


class ChunkedFetchOrchestrator:
    """
    Turns a FetchRequest into the raw (unfiltered) event list.

    ``client`` is anything exposing the ``USGSClient`` coroutines
    ``fetch_window`` and ``fetch_range``.

    Usage:
        orchestrator = ChunkedFetchOrchestrator(USGSClient(), pacing_seconds=0.3)
        raw = await orchestrator.fetch(FetchRequest.custom(start, end, filters))
    """

    def __init__(
        self,
        client,
        *,
        pacing_seconds: float = DEFAULT_PACING_SECONDS,
        range_limit: int = DEFAULT_RANGE_LIMIT,
        sleep: Optional[SleepFn] = None,
        deduplicate: bool = False,
    ):
        self.client = client
        self.pacing_seconds = pacing_seconds
        self.range_limit = range_limit
        self.deduplicate = deduplicate
        self._sleep: SleepFn = sleep or asyncio.sleep

    async def fetch(self, request: FetchRequest) -> List[Event]:
        if request.mode is QueryMode.NAMED_WINDOW:
            # Summary feeds take no magnitude parameters; magnitude is
            # filtered client-side by the pipeline.
            events = await self.client.fetch_window(request.window)
            logger.info(
                "Fetched %s window: %d raw events",
                request.window.value, len(events),
                extra={"event_count": len(events)},
            )
            return events

        return await self._fetch_range(request)

    async def _fetch_range(self, request: FetchRequest) -> List[Event]:
        time_range = request.time_range
        chunks = plan_chunks(time_range.start, time_range.end)
        min_mag, max_mag = request.filters.magnitude_bounds()

        logger.info(
            "Fetching %s..%s in %d chunk(s), magnitude %.1f–%.1f",
            time_range.start, time_range.end, len(chunks), min_mag, max_mag,
            extra={"chunk_count": len(chunks)},
        )

        started = time.monotonic()
        collected: List[Event] = []
        for index, chunk in enumerate(chunks):
            if index > 0:
                await self._sleep(self.pacing_seconds)

            events = await self.client.fetch_range(
                chunk.start,
                chunk.end,
                min_magnitude=min_mag,
                max_magnitude=max_mag,
                limit=self.range_limit,
            )
            logger.debug(
                "Chunk %d/%d %s..%s → %d events",
                index + 1, len(chunks), chunk.start, chunk.end, len(events),
                extra={"chunk_index": index, "event_count": len(events)},
            )
            collected.extend(events)

        if self.deduplicate:
            before = len(collected)
            collected = deduplicate_events(collected)
            if before != len(collected):
                logger.info("Dropped %d duplicate event(s) across chunks", before - len(collected))

        duration_ms = (time.monotonic() - started) * 1000
        logger.info(
            "Range fetch complete: %d raw events (%.0fms)",
            len(collected), duration_ms,
            extra={"event_count": len(collected), "duration_ms": duration_ms},
        )
        return collected
