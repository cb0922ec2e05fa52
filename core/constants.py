"""Global constants for the core package.

This module contains shared constants used across the application core.
"""

from typing import Final

# HTTP Client Constants
HTTP_CONNECTION_LIMIT: Final[int] = 10
HTTP_TIMEOUT_CONNECT: Final[float] = 10.0
HTTP_TIMEOUT_SOCK_READ: Final[float] = 60.0
HTTP_TIMEOUT_TOTAL: Final[float] = 300.0

# Distance Conversion (fixed by the dispatch backend contract)
METERS_PER_MILE: Final[float] = 1609.34

# Origins estimated farther than this skip the routing provider.
PRELIMINARY_THRESHOLD_MILES: Final[float] = 200.0

# Permission tokens
DISTANCE_PERMISSION: Final[str] = "distance.process"
WILDCARD_PERMISSION: Final[str] = "*"

# Provider quota guard: batches per minute across all runs in this process
PROVIDER_BATCHES_PER_MINUTE: Final[int] = 30
