"""
Rate limiting for metered routing provider batches.
"""

from aiolimiter import AsyncLimiter

from core.constants import PROVIDER_BATCHES_PER_MINUTE

provider_batch_limiter = AsyncLimiter(PROVIDER_BATCHES_PER_MINUTE, 60)
