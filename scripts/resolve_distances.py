#!/usr/bin/env python3
"""Resolve truck distances to a destination from the command line.

Prints each tier as it arrives, then every truck nearest first in miles.
The dispatcher token comes from --token or DISPATCH_API_TOKEN.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from config import require_log_level
from core.http.session import cleanup_session
from distance.client import DispatchApiClient
from distance.reporter import DistanceBoard, calculate_distances_for_drivers
from distance.resolver import DistanceResolver
from distance.stats import StatsEmitter


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Resolve distances from every truck to a destination.",
    )
    parser.add_argument("destination", help="Destination address, e.g. 'Dallas, TX'.")
    parser.add_argument(
        "--token",
        default=None,
        help="Dispatcher bearer token. Defaults to DISPATCH_API_TOKEN.",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help="Dispatch backend API base URL. Defaults to DISPATCH_API_BASE_URL.",
    )
    parser.add_argument(
        "--no-stats",
        action="store_true",
        help="Do not report run statistics to the backend.",
    )
    return parser.parse_args()


def _print_board(board: DistanceBoard) -> None:
    print(f"{'Truck':>8}  {'Miles':>7}  Source")
    for origin_id in board.sorted_ids():
        entry = board.get(origin_id)
        miles = board.miles(origin_id)
        shown = "-" if miles is None else str(miles)
        print(f"{origin_id:>8}  {shown:>7}  {entry.source.value}")


async def main() -> int:
    args = parse_args()
    load_dotenv()
    logging.basicConfig(
        level=require_log_level(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    client = DispatchApiClient(
        args.token or os.getenv("DISPATCH_API_TOKEN"),
        base_url=args.base_url,
    )
    resolver = DistanceResolver(
        client,
        stats_emitter=None if args.no_stats else StatsEmitter(client),
    )
    board = DistanceBoard()

    def on_update(updates) -> None:
        changed = board.apply(updates)
        sources = sorted({update.result.source.value for update in updates})
        print(
            f"Received {len(updates)} distance(s) ({', '.join(sources)}), "
            f"{changed} updated",
        )

    try:
        outcome = await calculate_distances_for_drivers(
            resolver,
            args.destination,
            on_update,
        )
    finally:
        await cleanup_session()

    if len(board):
        _print_board(board)

    if outcome.error is not None:
        print(outcome.error.user_message, file=sys.stderr)
        if outcome.error.retryable:
            print("This may succeed if retried later.", file=sys.stderr)
        return 1
    print(f"Finished: {outcome.state.value}")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
