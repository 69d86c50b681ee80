"""Per-client sliding-window request limits, applied as route dependencies."""

from __future__ import annotations

import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict

from fastapi import Request, Response

from task_api.domain.errors import TooManyRequestsError

logger = logging.getLogger("task_api.access")


@dataclass(frozen=True)
class LimitState:
    allowed: bool
    limit: int
    remaining: int
    reset_seconds: int


class SlidingWindowLimiter:
    def __init__(
        self,
        name: str,
        max_requests: int,
        window_seconds: float,
        message: str,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.message = message
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    @property
    def tracked_clients(self) -> int:
        return len(self._hits)

    def hit(self, key: str) -> LimitState:
        now = self._clock()
        cutoff = now - self.window_seconds
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(cutoff)
            self._last_sweep = now

        hits = self._hits.get(key)
        if hits is None:
            hits = self._hits[key] = deque()
        while hits and hits[0] <= cutoff:
            hits.popleft()

        if len(hits) >= self.max_requests:
            if not hits:
                # max_requests == 0: nothing to remember for this client
                del self._hits[key]
                return LimitState(False, self.max_requests, 0, max(1, math.ceil(self.window_seconds)))
            reset = hits[0] + self.window_seconds - now
            return LimitState(False, self.max_requests, 0, max(1, math.ceil(reset)))

        hits.append(now)
        reset = hits[0] + self.window_seconds - now
        return LimitState(True, self.max_requests, self.max_requests - len(hits), max(0, math.ceil(reset)))

    def _sweep(self, cutoff: float) -> None:
        # drop clients whose newest hit has left the window
        stale = [key for key, hits in self._hits.items() if not hits or hits[-1] <= cutoff]
        for key in stale:
            del self._hits[key]

    def reset(self) -> None:
        self._hits.clear()
        self._last_sweep = self._clock()


def rate_limit(name: str):
    """Dependency that counts the request against `app.state.rate_limiters[name]`."""

    async def dependency(request: Request, response: Response) -> None:
        limiter: SlidingWindowLimiter = request.app.state.rate_limiters[name]
        key = request.client.host if request.client else "unknown"
        state = limiter.hit(key)

        if not state.allowed:
            logger.warning(
                "rate_limit.exceeded",
                extra={
                    "category": "http",
                    "event": "rate_limit.exceeded",
                    "limiter": name,
                    "client": key,
                    "path": request.url.path,
                },
            )
            raise TooManyRequestsError(limiter.message, retry_after=state.reset_seconds)

        response.headers["RateLimit-Limit"] = str(state.limit)
        response.headers["RateLimit-Remaining"] = str(state.remaining)
        response.headers["RateLimit-Reset"] = str(state.reset_seconds)

    return dependency
