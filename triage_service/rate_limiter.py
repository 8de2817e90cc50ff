"""
Rate Limiting Module for Triage Assist

Provides per-service outbound rate limiting so the gateway never exceeds the
budget of an upstream AI provider. Uses fixed time windows: a call belongs to
window floor(now / window_seconds) and each window has its own counter.
"""

import math
import threading
import time
from typing import Callable, Optional, Tuple
import logging

from .errors import RateLimitExceeded

logger = logging.getLogger(__name__)


class RateLimitConfig:
    """Request budget for one upstream service."""

    def __init__(self, max_requests: int = 10, window_seconds: float = 60):
        if max_requests < 0:
            raise ValueError("max_requests must be non-negative")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def __repr__(self) -> str:
        return f"RateLimitConfig(max_requests={self.max_requests}, window_seconds={self.window_seconds})"


# Upstream provider budgets
SERVICE_LIMITS = {
    # Chat completion for symptom analysis - 60 per minute
    "deepseek": RateLimitConfig(max_requests=60, window_seconds=60),

    # Hosted image inference - 30 per minute
    "huggingface": RateLimitConfig(max_requests=30, window_seconds=60),

    # Free translation API - 100 per minute
    "translation": RateLimitConfig(max_requests=100, window_seconds=60),
}


class RateLimiter:
    """
    Fixed-window rate limiter keyed by (service, window_index).

    Counters start at zero on first reference, increment on every accepted
    acquisition and never decrement. Only the current and previous window
    are retained per service.
    """

    def __init__(
        self,
        limits: Optional[dict[str, RateLimitConfig]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize rate limiter.

        Args:
            limits: Service name -> budget. Services not listed are unlimited.
            clock: Returns the current time in seconds
        """
        self.limits = dict(SERVICE_LIMITS if limits is None else limits)
        self.clock = clock
        self.counters: dict[tuple[str, int], int] = {}
        self._lock = threading.Lock()

    def window_index(self, service: str, now: Optional[float] = None) -> Optional[int]:
        """Window the given instant falls in, or None for unlimited services."""
        config = self.limits.get(service)
        if config is None:
            return None
        if now is None:
            now = self.clock()
        return math.floor(now / config.window_seconds)

    def is_allowed(self, service: str) -> Tuple[bool, int, float]:
        """
        Check the budget for a service and consume one slot if available.

        Args:
            service: Upstream service name

        Returns:
            Tuple of (is_allowed, requests_remaining, retry_after_seconds)
            retry_after_seconds is 0 if allowed, otherwise seconds until the
            next window opens
        """
        config = self.limits.get(service)
        if config is None:
            return True, -1, 0.0

        with self._lock:
            now = self.clock()
            index = math.floor(now / config.window_seconds)
            self._purge(service, index)

            key = (service, index)
            count = self.counters.get(key, 0)
            if count >= config.max_requests:
                retry_after = (index + 1) * config.window_seconds - now
                return False, 0, retry_after

            self.counters[key] = count + 1
            return True, config.max_requests - count - 1, 0.0

    def try_acquire(self, service: str) -> None:
        """
        Consume one slot for service or fail closed.

        Raises:
            RateLimitExceeded: if the current window's budget is spent
        """
        allowed, _, retry_after = self.is_allowed(service)
        if not allowed:
            config = self.limits[service]
            logger.warning(
                f"Rate limit exceeded for {service}. "
                f"Limit: {config.max_requests}/{config.window_seconds}s. "
                f"Retry after: {retry_after:.1f}s"
            )
            raise RateLimitExceeded(service, retry_after)

    def count(self, service: str) -> int:
        """Accepted acquisitions for service in the current window."""
        index = self.window_index(service)
        if index is None:
            return 0
        with self._lock:
            return self.counters.get((service, index), 0)

    def reset(self, service: Optional[str] = None):
        """Reset counters for one service, or for all services."""
        with self._lock:
            if service is None:
                self.counters.clear()
                return
            for key in [k for k in self.counters if k[0] == service]:
                del self.counters[key]

    def _purge(self, service: str, current_index: int):
        """Drop counters older than the previous window. Caller holds the lock."""
        stale = [
            key for key in self.counters
            if key[0] == service and key[1] < current_index - 1
        ]
        for key in stale:
            del self.counters[key]
