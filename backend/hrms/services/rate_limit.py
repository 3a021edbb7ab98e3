from __future__ import annotations

from collections import deque
import logging
from threading import Lock
import time

from fastapi import HTTPException, Request, status

logger = logging.getLogger(__name__)


class SlidingWindowLimiter:
    """Counts calls per key over a trailing window. Process-local."""

    def __init__(self) -> None:
        self._calls: dict[str, deque[float]] = {}
        self._lock = Lock()
        self._last_sweep = 0.0

    def _sweep(self, now: float, window_seconds: int) -> None:
        # Keys whose newest call has aged out hold no state worth keeping.
        cutoff = now - window_seconds
        for key in [key for key, calls in self._calls.items() if not calls or calls[-1] <= cutoff]:
            del self._calls[key]
        self._last_sweep = now

    def hit(self, key: str, *, limit: int, window_seconds: int) -> int | None:
        """Records a call; returns None when allowed, otherwise seconds until a slot frees up."""
        now = time.monotonic()
        with self._lock:
            if now - self._last_sweep >= window_seconds:
                self._sweep(now, window_seconds)
            calls = self._calls.setdefault(key, deque())
            while calls and calls[0] <= now - window_seconds:
                calls.popleft()
            if len(calls) >= limit:
                return max(1, int(calls[0] + window_seconds - now))
            calls.append(now)
        return None

    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._calls)

    def clear(self) -> None:
        with self._lock:
            self._calls.clear()
            self._last_sweep = 0.0


_limiter = SlidingWindowLimiter()


def client_address(request: Request, trusted_proxy_header: str | None = None) -> str:
    """The peer address, or the first hop of ``trusted_proxy_header`` when a proxy sets it.

    Without a configured header, client-supplied forwarding headers are ignored.
    """
    if trusted_proxy_header:
        forwarded = request.headers.get(trusted_proxy_header, "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def enforce_rate_limit(
    *,
    request: Request,
    scope: str,
    limit: int,
    window_seconds: int,
    trusted_proxy_header: str | None = None,
) -> None:
    address = client_address(request, trusted_proxy_header)
    retry_after = _limiter.hit(f"{scope}|{address}", limit=limit, window_seconds=window_seconds)
    if retry_after is None:
        return
    logger.warning("Rate limit hit for %s from %s", scope, address)
    raise HTTPException(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        detail=f"Too many requests. Try again in {retry_after} second(s).",
        headers={"Retry-After": str(retry_after)},
    )


def clear_rate_limiter() -> None:
    _limiter.clear()
