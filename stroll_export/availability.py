"""
Processing Availability Probe
=============================
One lightweight GET /api/health against the compositing service, cached for the
editor session. A failed or negative probe is a routing signal, not an error:
it narrows the orchestrator to the local-fallback / metadata-only path.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .metrics import PROBE_RESULTS

logger = logging.getLogger("stroll.export.availability")

HEALTH_PATH = "/api/health"


@dataclass(frozen=True)
class ProcessingAvailability:
    """Session-scoped probe result."""
    available: bool = False
    checked_at: Optional[float] = None

    def is_fresh(self, ttl_seconds: Optional[float], now: float) -> bool:
        if self.checked_at is None:
            return False
        if ttl_seconds is None:
            return True
        return now - self.checked_at < ttl_seconds


class ProcessingAvailabilityProbe:
    """Cached health check against the remote compositing service."""

    def __init__(
        self,
        base_url: Optional[str],
        timeout: float = 3.0,
        ttl_seconds: Optional[float] = 300.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self.ttl_seconds = ttl_seconds
        self._transport = transport
        self._clock = clock
        self._availability = ProcessingAvailability()
        self._lock = asyncio.Lock()

    @property
    def availability(self) -> ProcessingAvailability:
        return self._availability

    def reset(self) -> None:
        """Forget the cached result, e.g. when a new editor session starts."""
        self._availability = ProcessingAvailability()

    async def check(self, force: bool = False) -> bool:
        """
        Return whether the compositing service is reachable.

        Idempotent within the TTL: concurrent callers share one request and
        later callers reuse the cached value.
        """
        if not force and self._availability.is_fresh(self.ttl_seconds, self._clock()):
            return self._availability.available

        async with self._lock:
            if not force and self._availability.is_fresh(self.ttl_seconds, self._clock()):
                return self._availability.available
            available = await self._probe()
            self._availability = ProcessingAvailability(available=available, checked_at=self._clock())
            return available

    async def _probe(self) -> bool:
        if not self.base_url:
            logger.info("[Probe] No processing server configured - using metadata only")
            PROBE_RESULTS.labels(result="disabled").inc()
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await asyncio.wait_for(
                    client.get(f"{self.base_url}{HEALTH_PATH}"),
                    timeout=self.timeout,
                )
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.info(f"[Probe] Processing server not available: {e!r}")
            PROBE_RESULTS.labels(result="unreachable").inc()
            return False

        if response.is_success:
            logger.info("[Probe] ✅ Processing server is available")
            PROBE_RESULTS.labels(result="available").inc()
            return True

        logger.info(f"[Probe] Processing server unhealthy: {response.status_code}")
        PROBE_RESULTS.labels(result="unhealthy").inc()
        return False


__all__ = ["ProcessingAvailability", "ProcessingAvailabilityProbe", "HEALTH_PATH"]
