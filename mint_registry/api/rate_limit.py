"""Per-client request budget for the ``/api/`` surface."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from threading import Lock

from fastapi import Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..utils.logging import setup_logger

logger = setup_logger(__name__, context={"component": "RateLimit"})

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class RateLimiter:
    """
    Token bucket keyed by client.

    A key starts with ``burst_size`` tokens (``requests_per_window`` unless
    given) and regains ``requests_per_window / window_seconds`` tokens per
    second, so 100 requests per 900 seconds admits a full burst of 100 and
    then roughly one request every nine seconds.
    """

    def __init__(
        self,
        requests_per_window: int = 100,
        window_seconds: int = 900,
        burst_size: int | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds
        self.capacity = float(burst_size or requests_per_window)
        self._per_second = requests_per_window / window_seconds
        self._clock = clock
        # key -> (tokens left, time of last update)
        self._buckets: dict[str, tuple[float, float]] = {}
        self._lock = Lock()
        # Idle for this long, a bucket has refilled and equals a fresh one.
        self._refill_seconds = self.capacity / self._per_second
        self._next_prune = clock() + self._refill_seconds

    def is_allowed(self, key: str) -> tuple[bool, dict[str, int]]:
        """
        Spend one token for ``key`` when one is available.

        Returns:
            ``(allowed, info)`` where ``info`` holds ``limit``, ``remaining``
            and ``reset``, the unix time at which a token is next available.
        """
        with self._lock:
            now = self._clock()
            if now >= self._next_prune:
                self._prune_locked(now - self._refill_seconds)
                self._next_prune = now + self._refill_seconds
            tokens, updated_at = self._buckets.get(key, (self.capacity, now))
            tokens = min(self.capacity, tokens + (now - updated_at) * self._per_second)
            allowed = tokens >= 1.0
            if allowed:
                tokens -= 1.0
            self._buckets[key] = (tokens, now)

        if tokens >= 1.0:
            reset = now + self.window_seconds
        else:
            reset = now + (1.0 - tokens) / self._per_second
        return allowed, {
            "limit": self.requests_per_window,
            "remaining": int(max(tokens, 0.0)),
            "reset": int(reset),
        }

    def _prune_locked(self, cutoff: float) -> int:
        stale = [key for key, (_, updated_at) in self._buckets.items() if updated_at < cutoff]
        for key in stale:
            del self._buckets[key]
        if stale:
            logger.debug("Dropped %d idle rate limit buckets", len(stale))
        return len(stale)

    def cleanup_stale_buckets(self, max_age_seconds: int = 3600) -> int:
        """Forget keys idle for more than ``max_age_seconds``; returns how many.

        :meth:`is_allowed` also prunes fully refilled buckets on its own schedule.
        """

        with self._lock:
            return self._prune_locked(self._clock() - max_age_seconds)


def client_ip(request: Request, *, trust_forwarded_for: bool = False) -> str:
    """Caller IP from the socket peer.

    ``X-Forwarded-For`` is client-controlled, so its first hop is used only when
    ``trust_forwarded_for`` is set, i.e. when a trusted proxy rewrites it.
    """

    if trust_forwarded_for:
        first_hop = request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Apply :class:`RateLimiter` to paths under ``path_prefix``.

    Exempt paths and everything outside the prefix pass straight through.
    Limited responses carry ``X-RateLimit-Limit``, ``X-RateLimit-Remaining``
    and ``X-RateLimit-Reset``; an exhausted budget answers 429 with the
    standard error envelope.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        enabled: bool = True,
        requests_per_window: int = 100,
        window_seconds: int = 900,
        burst_size: int | None = None,
        limit_by: str = "ip",
        path_prefix: str = "/api/",
        exempt_paths: list[str] | None = None,
        trust_forwarded_for: bool = False,
    ):
        super().__init__(app)
        self.enabled = enabled
        self.trust_forwarded_for = trust_forwarded_for
        self.limit_by = limit_by
        self.path_prefix = path_prefix
        self.exempt_paths = tuple(exempt_paths if exempt_paths is not None else ["/api/health"])
        self.limiter = RateLimiter(requests_per_window, window_seconds, burst_size)

        logger.info(
            "Rate limit %d requests per %ds by %s (enabled=%s)",
            requests_per_window,
            window_seconds,
            limit_by,
            enabled,
        )

    def _key_for(self, request: Request) -> str:
        if self.limit_by == "endpoint":
            return f"endpoint:{request.url.path}"
        return f"ip:{client_ip(request, trust_forwarded_for=self.trust_forwarded_for)}"

    def _applies_to(self, path: str) -> bool:
        return path.startswith(self.path_prefix) and not path.startswith(self.exempt_paths)

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not (self.enabled and self._applies_to(request.url.path)):
            return await call_next(request)

        key = self._key_for(request)
        allowed, info = self.limiter.is_allowed(key)
        headers = {
            "X-RateLimit-Limit": str(info["limit"]),
            "X-RateLimit-Remaining": str(info["remaining"]),
            "X-RateLimit-Reset": str(info["reset"]),
        }

        if not allowed:
            logger.warning(
                "Rate limit exceeded for %s",
                key,
                extra={"status": "rate_limited", "path": request.url.path},
            )
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"success": False, "message": RATE_LIMIT_MESSAGE},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
