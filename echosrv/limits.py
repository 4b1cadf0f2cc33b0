"""Resource limits: rate limiting, connection tracking and size checks."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceLimits:
    """Limits applied to echo servers. Durations are in seconds."""

    max_request_size: int = 1024 * 1024
    max_concurrent_connections: int = 100
    max_requests_per_second: Optional[int] = 100
    connection_timeout: float = 30.0
    max_idle_time: float = 300.0


class RateLimitError(Exception):
    """A request was refused by a rate limiter."""

    default_message = "Rate limit error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class RateLimitExceeded(RateLimitError):
    """No permit became available in time."""

    default_message = "Rate limit exceeded"


class RateLimiterClosed(RateLimitError):
    """The rate limiter no longer hands out permits."""

    default_message = "Rate limiter closed"


class RateLimiter:
    """Limits how often requests may proceed.

    A request waits up to 100 ms for a permit and hands it back as soon as
    it has been granted. Permits are topped up to ``requests_per_second``
    once at least a second has passed since the last top-up.
    """

    _ACQUIRE_TIMEOUT = 0.1

    def __init__(self, requests_per_second: int) -> None:
        if requests_per_second < 0:
            raise ValueError("requests_per_second must not be negative")
        self.refill_rate = requests_per_second
        self._permits = asyncio.Semaphore(requests_per_second)
        self._capacity = requests_per_second
        self._last_refill = time.monotonic()
        self._refill_lock = threading.Lock()

    async def acquire(self) -> None:
        """Wait briefly for a permit; raise RateLimitExceeded if none comes."""
        self._try_refill()
        try:
            await asyncio.wait_for(self._permits.acquire(), self._ACQUIRE_TIMEOUT)
        except asyncio.TimeoutError:
            raise RateLimitExceeded() from None
        self._permits.release()

    def _try_refill(self) -> None:
        now = time.monotonic()
        if not self._refill_lock.acquire(blocking=False):
            return
        try:
            elapsed = now - self._last_refill
            if elapsed < 1.0:
                return
            permits_to_add = int(elapsed) * self.refill_rate
            if self._capacity < self.refill_rate:
                added = min(permits_to_add, self.refill_rate - self._capacity)
                for _ in range(added):
                    self._permits.release()
                self._capacity += added
            self._last_refill = now
        finally:
            self._refill_lock.release()


class ConnectionLimitError(Exception):
    """A connection slot could not be obtained."""

    default_message = "Connection limit error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class ConnectionSlotTimeout(ConnectionLimitError):
    """Every slot stayed taken for the whole wait."""

    default_message = "Connection limit reached, timeout waiting for slot"


class ConnectionTrackerClosed(ConnectionLimitError):
    """The tracker no longer hands out slots."""

    default_message = "Connection tracker closed"


@dataclass(frozen=True)
class ConnectionMetrics:
    """Snapshot of a tracker's counters."""

    active_connections: int
    total_connections: int
    available_slots: int
    max_connections: int


class ConnectionGuard:
    """Holds one connection slot until released or the ``async with`` ends."""

    def __init__(self, tracker: "ConnectionTracker") -> None:
        self._tracker = tracker
        self._start = time.monotonic()
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        """Give the slot back; later calls do nothing."""
        if self._released:
            return
        self._released = True
        self._tracker._release(time.monotonic() - self._start)

    async def __aenter__(self) -> "ConnectionGuard":
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.release()


class ConnectionTracker:
    """Counts connections and caps how many may be open at once."""

    _ACQUIRE_TIMEOUT = 1.0

    def __init__(self, limits: ResourceLimits) -> None:
        self.limits = limits
        self._slots = asyncio.Semaphore(limits.max_concurrent_connections)
        self._active = 0
        self._total = 0

    async def acquire_connection(self) -> ConnectionGuard:
        """Wait up to a second for a free slot and return a guard holding it."""
        try:
            await asyncio.wait_for(self._slots.acquire(), self._ACQUIRE_TIMEOUT)
        except asyncio.TimeoutError:
            raise ConnectionSlotTimeout() from None
        self._active += 1
        self._total += 1
        logger.info(
            "Connection acquired (active_connections=%d, total_connections=%d)",
            self._active,
            self._total,
        )
        return ConnectionGuard(self)

    def metrics(self) -> ConnectionMetrics:
        maximum = self.limits.max_concurrent_connections
        return ConnectionMetrics(
            active_connections=self._active,
            total_connections=self._total,
            available_slots=maximum - self._active,
            max_connections=maximum,
        )

    def _release(self, duration: float) -> None:
        self._active -= 1
        self._slots.release()
        logger.info(
            "Connection released (active_connections=%d, connection_duration_ms=%d)",
            self._active,
            int(duration * 1000),
        )


class SizeError(Exception):
    """A request or message violates a size limit."""


class RequestTooLargeError(SizeError):
    """The request is bigger than allowed."""

    def __init__(self, actual: int, maximum: int) -> None:
        super().__init__(
            f"Request too large: {actual} bytes, maximum allowed: {maximum} bytes"
        )
        self.actual = actual
        self.max = maximum


class SizeValidator:
    """Rejects sizes above ``max_size``."""

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size

    def validate_size(self, size: int) -> None:
        """Raise RequestTooLargeError if ``size`` exceeds the maximum."""
        if size > self.max_size:
            raise RequestTooLargeError(size, self.max_size)