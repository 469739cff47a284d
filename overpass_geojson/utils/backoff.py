"""Backoff policy between failed endpoint attempts."""

import logging
from dataclasses import dataclass

from ..errors import OverpassError, RateLimitError, UpstreamServerError

logger = logging.getLogger(__name__)


@dataclass
class BackoffConfig:
    """Configuration for delays between endpoint attempts."""
    rate_limit_base: float = 5.0
    rate_limit_max: float = 30.0
    rate_limit_multiplier: float = 2.0
    server_error_delay: float = 2.0

    def __post_init__(self) -> None:
        if self.rate_limit_base < 0 or self.rate_limit_max < 0 or self.server_error_delay < 0:
            raise ValueError("backoff delays must not be negative")
        if self.rate_limit_multiplier < 1:
            raise ValueError("rate_limit_multiplier must be at least 1")


def rate_limit_delay(attempt_index: int, config: BackoffConfig) -> float:
    """
    Exponential delay after a 429 on the given attempt.

    Args:
        attempt_index: Zero-based position of the failed attempt in this call
        config: Backoff configuration

    Returns:
        ``min(base * multiplier ** attempt_index, max)`` in seconds
    """
    delay = config.rate_limit_base * (config.rate_limit_multiplier ** attempt_index)
    return min(delay, config.rate_limit_max)


def delay_after(error: OverpassError, attempt_index: int, config: BackoffConfig) -> float:
    """
    Seconds to wait before the next endpoint, 0 for an immediate retry.

    Rate limits back off exponentially, 5xx waits a short fixed delay,
    everything else moves on at once.
    """
    if isinstance(error, RateLimitError):
        return rate_limit_delay(attempt_index, config)
    if isinstance(error, UpstreamServerError):
        return config.server_error_delay
    return 0.0
