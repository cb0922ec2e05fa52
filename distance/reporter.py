"""
Progressive delivery of distance results.

:class:`ProgressiveReporter` shapes each tier's results into at most one
:class:`PhaseEvent` and guarantees an id is delivered by one tier only.
:class:`DistanceBoard` is the caller-side map that merges those events.
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from core.exceptions import DistanceResolutionError
from distance.geodesic import meters_to_display_miles
from distance.models import (
    DistancePhase,
    DistanceResult,
    DistanceSource,
    PhaseEvent,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from distance.models import DistanceUpdate
    from distance.resolver import DistanceResolver, RunOutcome

logger = logging.getLogger(__name__)

PHASE_ORDER: tuple[DistancePhase, ...] = (
    DistancePhase.CACHE,
    DistancePhase.PRELIMINARY,
    DistancePhase.PROVIDER,
)


class ProgressiveReporter:
    """Turns tier results into ordered phase events for a single run."""

    def __init__(self) -> None:
        self._delivered: dict[int, DistancePhase] = {}
        self._last_phase_index = -1

    @property
    def delivered_ids(self) -> set[int]:
        return set(self._delivered)

    def batch(
        self,
        phase: DistancePhase,
        updates: Iterable[DistanceUpdate],
    ) -> PhaseEvent | None:
        """
        Build the event for ``phase``, or None when it has nothing new.

        Phases must be reported in order, each at most once. Ids already
        delivered by an earlier phase are dropped.
        """
        index = PHASE_ORDER.index(phase)
        if index <= self._last_phase_index:
            msg = f"Phase {phase.value!r} reported out of order"
            raise RuntimeError(msg)
        self._last_phase_index = index

        fresh: list[DistanceUpdate] = []
        for update in updates:
            earlier = self._delivered.get(update.id)
            if earlier is not None:
                logger.warning(
                    "Not re-delivering id %s in %s phase; already delivered by %s",
                    update.id,
                    phase.value,
                    earlier.value,
                )
                continue
            self._delivered[update.id] = phase
            fresh.append(update)

        if not fresh:
            return None
        return PhaseEvent(phase=phase, updates=tuple(fresh))


class DistanceBoard:
    """
    Accumulated distances shown to a dispatcher.

    Updates merge per id and never clear unrelated ids. An entry is
    replaced only when there is none yet, when the existing one has no
    coordinates, when a provider distance refines a preliminary one, or
    when both come from the same source. A missing distance never erases
    a known one.
    """

    def __init__(self) -> None:
        self._entries: dict[int, DistanceResult] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, origin_id: object) -> bool:
        return origin_id in self._entries

    def get(self, origin_id: int) -> DistanceResult | None:
        return self._entries.get(origin_id)

    def as_dict(self) -> dict[int, DistanceResult]:
        return dict(self._entries)

    @staticmethod
    def _should_replace(existing: DistanceResult | None, new: DistanceResult) -> bool:
        if existing is None:
            return True
        if new.distance is None:
            return False
        if existing.source is DistanceSource.NO_COORDS:
            return True
        if (
            existing.source is DistanceSource.PRELIMINARY
            and new.source is DistanceSource.PROVIDER
        ):
            return True
        return existing.source is new.source

    def apply(self, updates: Iterable[DistanceUpdate]) -> int:
        """Merge updates; returns how many entries changed."""
        changed = 0
        for update in updates:
            if self._should_replace(self._entries.get(update.id), update.result):
                self._entries[update.id] = update.result
                changed += 1
        return changed

    def miles(self, origin_id: int) -> int | None:
        entry = self._entries.get(origin_id)
        return meters_to_display_miles(entry.distance) if entry else None

    def sorted_ids(self) -> list[int]:
        """Ids nearest first; entries without a distance come last."""

        def sort_key(origin_id: int) -> tuple[float, int]:
            distance = self._entries[origin_id].distance
            return (math.inf if distance is None else distance, origin_id)

        return sorted(self._entries, key=sort_key)


async def calculate_distances_for_drivers(
    resolver: DistanceResolver,
    destination: str | None,
    on_update: Callable[[list[DistanceUpdate]], None],
    on_complete: Callable[[RunOutcome], None] | None = None,
) -> RunOutcome:
    """
    Run one resolution and report through callbacks.

    ``on_update`` receives each tier's updates as they arrive.
    ``on_complete`` is called exactly once with the final outcome, whether
    the run succeeded, failed, was aborted or was superseded. Failures are
    reported through the outcome rather than raised.
    """
    run = resolver.start(destination)
    try:
        async for event in run:
            on_update(list(event.updates))
    except DistanceResolutionError as exc:
        logger.debug("Distance run ended with %s error", exc.kind.value)
    finally:
        if run.outcome is None:
            await run.aclose()
        if on_complete is not None:
            on_complete(run.outcome)
    return run.outcome
