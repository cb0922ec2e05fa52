"""
Generation fencing for overlapping distance runs.

The policy is latest-wins: issuing a ticket for a key invalidates every
earlier ticket for that key. A run holding a stale ticket stops at its
next checkpoint without touching the network or delivering events.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_FENCE_KEY = "default"


@dataclass(frozen=True)
class FenceTicket:
    key: str
    generation: int


class RunFence:
    def __init__(self) -> None:
        self._counter = itertools.count(1)
        self._latest: dict[str, int] = {}

    def issue(self, key: str = DEFAULT_FENCE_KEY) -> FenceTicket:
        generation = next(self._counter)
        previous = self._latest.get(key)
        self._latest[key] = generation
        if previous is not None:
            logger.info(
                "Distance run %s for %r supersedes run %s",
                generation,
                key,
                previous,
            )
        return FenceTicket(key=key, generation=generation)

    def is_current(self, ticket: FenceTicket) -> bool:
        return self._latest.get(ticket.key) == ticket.generation

    def release(self, ticket: FenceTicket) -> None:
        """Forget the key once its latest run has finished."""
        if self.is_current(ticket):
            del self._latest[ticket.key]

    def __len__(self) -> int:
        return len(self._latest)
