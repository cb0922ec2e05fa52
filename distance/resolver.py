"""
Distance resolution orchestrator.

A run resolves a distance for every truck the backend knows about, in
three tiers of increasing cost: cached distances, great-circle estimates
for far-away trucks, and routing provider lookups for the rest. Each tier
is delivered as a :class:`PhaseEvent` as soon as it is known, so callers
can render partial results while the provider is still working.

Usage::

    resolver = DistanceResolver(client, stats_emitter=StatsEmitter(client))
    run = resolver.start("Dallas, TX")
    try:
        async for event in run:
            board.apply(event.updates)
    except DistanceResolutionError as exc:
        show(exc.user_message)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from config import inline_hold_cleanup_enabled, require_run_budget
from core.constants import (
    DISTANCE_PERMISSION,
    PRELIMINARY_THRESHOLD_MILES,
    WILDCARD_PERMISSION,
)
from core.exceptions import DistanceErrorKind, DistanceResolutionError
from distance.fencing import DEFAULT_FENCE_KEY, RunFence
from distance.models import DistancePhase, DistanceStats, DistanceUpdate
from distance.reporter import ProgressiveReporter
from distance.tiering import route_origins

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable
    from typing import Self

    from distance.client import DispatchApiClient
    from distance.fencing import FenceTicket
    from distance.models import DistanceResult, PhaseEvent
    from distance.stats import StatsEmitter

logger = logging.getLogger(__name__)


class RunState(str, Enum):
    IDLE = "idle"
    AUTHORIZATION_CHECK = "authorization_check"
    CACHE_CHECK = "cache_check"
    ESTIMATE_CLASSIFICATION = "estimate_classification"
    PROVIDER_BATCH = "provider_batch"
    STATS_LOG = "stats_log"
    DONE = "done"
    ABORTED = "aborted"
    FAILED = "failed"
    SUPERSEDED = "superseded"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {RunState.DONE, RunState.ABORTED, RunState.FAILED, RunState.SUPERSEDED},
)


@dataclass(frozen=True)
class RunOutcome:
    state: RunState
    error: DistanceResolutionError | None = None
    stats: DistanceStats | None = None

    @property
    def succeeded(self) -> bool:
        return self.state is RunState.DONE

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": "complete",
            "state": self.state.value,
            "error": self.error.to_dict() if self.error else None,
            "stats": self.stats.model_dump() if self.stats else None,
        }


def _updates(results: dict[int, DistanceResult]) -> list[DistanceUpdate]:
    return [
        DistanceUpdate(id=origin_id, result=result)
        for origin_id, result in results.items()
    ]


class _Superseded(Exception):
    """Raised at a checkpoint once a newer run holds the fence."""


class DistanceRun:
    """
    One distance resolution, consumed as an async iterator of phase events.

    The iterator is finite and cannot be restarted: once the run has
    finished, iterating it again raises ``RuntimeError``. When a
    collaborator fails, iteration raises :class:`DistanceResolutionError`
    after ``outcome`` has been set; events already delivered stay valid.
    """

    def __init__(
        self,
        resolver: DistanceResolver,
        destination: str,
        ticket: FenceTicket | None,
    ) -> None:
        self._resolver = resolver
        self.destination = destination
        self._ticket = ticket
        self._state = RunState.IDLE
        self._outcome: RunOutcome | None = None
        self._stats: DistanceStats | None = None
        self._events: AsyncGenerator[PhaseEvent, None] | None = None
        self._deadline: float | None = None

    @property
    def _generation(self) -> int | None:
        return self._ticket.generation if self._ticket is not None else None

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def outcome(self) -> RunOutcome | None:
        """Terminal result, or None while the run is still in progress."""
        return self._outcome

    @property
    def stats(self) -> DistanceStats | None:
        return self._stats

    def __aiter__(self) -> Self:
        if self._outcome is not None:
            msg = f"DistanceRun already finished ({self._state.value})"
            raise RuntimeError(msg)
        return self

    async def __anext__(self) -> PhaseEvent:
        if self._events is None:
            self._events = self._execute()
        return await self._events.__anext__()

    async def aclose(self) -> None:
        """Stop an unfinished run; it ends as aborted."""
        if self._events is None:
            self._events = self._execute()
        await self._events.aclose()
        if self._outcome is None:
            self._finish(RunState.ABORTED)

    async def collect(self) -> list[PhaseEvent]:
        """Drain the run and return every event it delivered."""
        return [event async for event in self]

    def _advance(self, state: RunState) -> None:
        logger.debug(
            "Distance run %s: %s -> %s",
            self._generation,
            self._state.value,
            state.value,
        )
        self._state = state

    def _finish(
        self,
        state: RunState,
        error: DistanceResolutionError | None = None,
    ) -> None:
        self._state = state
        stats = self._stats if state is RunState.DONE else None
        self._outcome = RunOutcome(state=state, error=error, stats=stats)
        if self._ticket is not None:
            self._resolver.fence.release(self._ticket)

    def _checkpoint(self) -> None:
        if self._ticket is None or not self._resolver.fence.is_current(self._ticket):
            raise _Superseded

    async def _bounded(self, awaitable: Awaitable[Any], step: str) -> Any:
        """Await one collaborator call within the remaining run budget."""
        try:
            async with asyncio.timeout_at(self._deadline):
                return await awaitable
        except DistanceResolutionError:
            raise
        except TimeoutError as exc:
            msg = (
                f"Distance calculation exceeded its "
                f"{self._resolver.run_budget:.0f}s budget during {step}"
            )
            raise DistanceResolutionError(
                DistanceErrorKind.NETWORK_ERROR,
                msg,
                {"step": step},
            ) from exc
        except Exception as exc:
            logger.exception("Unexpected failure during %s", step)
            raise DistanceResolutionError(
                DistanceErrorKind.GENERIC,
                f"{step} failed: {exc}",
                {"step": step},
            ) from exc

    async def _best_effort(self, awaitable: Awaitable[Any], step: str) -> Any:
        """Await a side call within the run budget; its failures are ignored."""
        try:
            async with asyncio.timeout_at(self._deadline):
                return await awaitable
        except TimeoutError:
            logger.warning("%s timed out; continuing without it", step)
        except Exception:
            logger.debug("%s failed", step, exc_info=True)
        return None

    async def _cleanup_holds(self) -> None:
        released = await self._best_effort(
            self._resolver.client.cleanup_expired_holds(),
            "Inline hold cleanup",
        )
        if released:
            logger.info("Released %d expired truck holds", released)

    async def _execute(self) -> AsyncGenerator[PhaseEvent, None]:
        resolver = self._resolver
        client = resolver.client
        reporter = ProgressiveReporter()
        started = time.perf_counter()
        self._deadline = asyncio.get_running_loop().time() + resolver.run_budget

        try:
            if not self.destination.strip():
                logger.info("Empty destination; skipping distance calculation")
                self._finish(RunState.ABORTED)
                return

            self._advance(RunState.AUTHORIZATION_CHECK)
            self._checkpoint()
            permissions = await self._bounded(
                client.fetch_permissions(),
                "permission check",
            )
            if not permissions & {DISTANCE_PERMISSION, WILDCARD_PERMISSION}:
                msg = f"Missing permission: {DISTANCE_PERMISSION}"
                raise DistanceResolutionError(
                    DistanceErrorKind.UNAUTHORIZED,
                    msg,
                    {"permission": DISTANCE_PERMISSION},
                )

            if resolver.inline_hold_cleanup:
                self._checkpoint()
                await self._cleanup_holds()

            self._advance(RunState.CACHE_CHECK)
            self._checkpoint()
            cache = await self._bounded(
                client.check_cache(self.destination),
                "cache check",
            )

            event = reporter.batch(DistancePhase.CACHE, _updates(cache.cached))
            if event is not None:
                self._checkpoint()
                yield event

            self._advance(RunState.ESTIMATE_CLASSIFICATION)
            plan = route_origins(
                cache.uncached,
                cache.destination_coordinates,
                resolver.threshold_miles,
            )
            event = reporter.batch(DistancePhase.PRELIMINARY, plan.local_updates)
            if event is not None:
                self._checkpoint()
                yield event

            if plan.provider_origins:
                self._advance(RunState.PROVIDER_BATCH)
                self._checkpoint()
                provider_results = await self._bounded(
                    client.fetch_provider_distances(
                        self.destination,
                        plan.provider_origins,
                    ),
                    "provider batch",
                )
                event = reporter.batch(
                    DistancePhase.PROVIDER,
                    _updates(provider_results),
                )
                if event is not None:
                    self._checkpoint()
                    yield event

            self._advance(RunState.STATS_LOG)
            self._stats = DistanceStats(
                destination=self.destination,
                total_drivers=cache.total_origins,
                cache_hits=len(cache.cached),
                preliminary_calculations=len(plan.estimates),
                provider_requests=len(plan.provider_origins),
            )
            self._checkpoint()
            if resolver.stats_emitter is not None:
                await self._best_effort(
                    resolver.stats_emitter.emit(self._stats),
                    "Stats log",
                )

            self._finish(RunState.DONE)
            logger.info(
                "Distance calculation for %r completed in %.2fms",
                self.destination,
                (time.perf_counter() - started) * 1000,
            )
        except _Superseded:
            logger.info(
                "Distance run %s superseded during %s",
                self._generation,
                self._state.value,
            )
            self._finish(RunState.SUPERSEDED)
        except DistanceResolutionError as exc:
            logger.warning(
                "Distance calculation failed during %s (%s): %s",
                self._state.value,
                exc.kind.value,
                exc.message,
            )
            self._finish(RunState.FAILED, exc)
            raise


class DistanceResolver:
    """Starts distance runs against one dispatch backend client."""

    def __init__(
        self,
        client: DispatchApiClient,
        *,
        stats_emitter: StatsEmitter | None = None,
        fence: RunFence | None = None,
        threshold_miles: float = PRELIMINARY_THRESHOLD_MILES,
        run_budget: float | None = None,
        inline_hold_cleanup: bool | None = None,
    ) -> None:
        self.client = client
        self.stats_emitter = stats_emitter
        self.fence = fence if fence is not None else RunFence()
        self.threshold_miles = threshold_miles
        if run_budget is None:
            run_budget = require_run_budget()
        if inline_hold_cleanup is None:
            inline_hold_cleanup = inline_hold_cleanup_enabled()
        self.run_budget = run_budget
        self.inline_hold_cleanup = inline_hold_cleanup

    def start(
        self,
        destination: str | None,
        *,
        fence_key: str = DEFAULT_FENCE_KEY,
    ) -> DistanceRun:
        """
        Begin a run; any earlier run under the same key is superseded.

        An empty destination yields a run that aborts without side effects
        and leaves the fence untouched.
        """
        destination = (destination or "").strip()
        ticket = self.fence.issue(fence_key) if destination else None
        return DistanceRun(self, destination, ticket)
