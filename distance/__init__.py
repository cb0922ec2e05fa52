"""Distance resolution pipeline for the dispatch console."""

from __future__ import annotations

from importlib import import_module

__all__ = [
    "DispatchApiClient",
    "DistanceBoard",
    "DistanceResolver",
    "DistanceRun",
    "HoldCleanupScheduler",
    "RunFence",
    "RunOutcome",
    "RunState",
    "StatsEmitter",
    "calculate_distances_for_drivers",
]

_LAZY_IMPORTS: dict[str, tuple[str, str | None]] = {
    "DispatchApiClient": ("distance.client", "DispatchApiClient"),
    "DistanceBoard": ("distance.reporter", "DistanceBoard"),
    "DistanceResolver": ("distance.resolver", "DistanceResolver"),
    "DistanceRun": ("distance.resolver", "DistanceRun"),
    "HoldCleanupScheduler": ("distance.scheduler", "HoldCleanupScheduler"),
    "RunFence": ("distance.fencing", "RunFence"),
    "RunOutcome": ("distance.resolver", "RunOutcome"),
    "RunState": ("distance.resolver", "RunState"),
    "StatsEmitter": ("distance.stats", "StatsEmitter"),
    "calculate_distances_for_drivers": (
        "distance.reporter",
        "calculate_distances_for_drivers",
    ),
    "models": ("distance.models", None),
}


def __getattr__(name: str):
    target = _LAZY_IMPORTS.get(name)
    if not target:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    module_name, attr_name = target
    module = import_module(module_name)
    return module if attr_name is None else getattr(module, attr_name)


def __dir__():
    return sorted(set(globals()) | set(_LAZY_IMPORTS))
