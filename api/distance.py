"""Distance resolution endpoints for the dispatch console."""

from __future__ import annotations

import hashlib
import json
import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Header, HTTPException, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from core.exceptions import DistanceResolutionError
from distance.client import DispatchApiClient
from distance.fencing import RunFence
from distance.resolver import DistanceResolver
from distance.stats import StatsEmitter

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/distances", tags=["distances"])

# Shared so a dispatcher re-triggering a calculation supersedes their older run.
run_fence = RunFence()


class ResolveRequest(BaseModel):
    destination: str = Field("", max_length=500)


def _bearer_token(authorization: str | None) -> str:
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token.",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token.strip()


def _fence_key(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()[:16]


def _line(payload: dict) -> str:
    return json.dumps(payload, separators=(",", ":")) + "\n"


async def _stream_run(
    resolver: DistanceResolver,
    destination: str,
    fence_key: str,
) -> AsyncIterator[str]:
    # The run (and its fence ticket) only exists once the body is consumed.
    run = resolver.start(destination, fence_key=fence_key)
    try:
        async for event in run:
            yield _line(event.to_payload())
    except DistanceResolutionError as exc:
        logger.info("Streaming distance run failed: %s", exc.kind.value)
    finally:
        if run.outcome is None:
            await run.aclose()
    yield _line(run.outcome.to_payload())


@router.post("/resolve")
async def resolve_distances(
    payload: ResolveRequest,
    authorization: str | None = Header(default=None),
) -> StreamingResponse:
    """
    Stream distances for every truck to ``destination`` as NDJSON.

    One ``phase`` line is written per tier that resolved anything, then a
    single ``complete`` line with the final state, error and stats.
    """
    token = _bearer_token(authorization)
    client = DispatchApiClient(token)
    resolver = DistanceResolver(
        client,
        stats_emitter=StatsEmitter(client),
        fence=run_fence,
    )
    return StreamingResponse(
        _stream_run(resolver, payload.destination, _fence_key(token)),
        media_type="application/x-ndjson",
        headers={"Cache-Control": "no-store"},
    )
