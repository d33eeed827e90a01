from collections import defaultdict
from collections import deque
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Sequence
from threading import RLock
from time import monotonic

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response


class AllowAllOriginsMiddleware(BaseHTTPMiddleware):
    """Attach `Access-Control-Allow-Origin: *` to every response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        return response


class ProxyRateLimitMiddleware(BaseHTTPMiddleware):
    """Simple in-memory rate limiter for GET requests to the upstream-backed routes."""

    def __init__(
        self,
        app,
        requests_per_window: int = 30,
        window_seconds: int = 60,
        path_prefixes: Sequence[str] = ("/contributions", "/calendar"),
    ) -> None:
        super().__init__(app)
        self.max_requests = max(1, requests_per_window)
        self.window_seconds = max(1, window_seconds)
        self.path_prefixes = tuple(path_prefixes)
        # One queue of request timestamps per client address.
        self._ip_buckets: dict[str, deque[float]] = defaultdict(deque)
        self._lock = RLock()

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if request.method != "GET" or not self._is_limited(request.url.path):
            return await call_next(request)

        ip = self._client_ip(request)
        now = monotonic()

        with self._lock:
            bucket = self._ip_buckets[ip]
            cutoff = now - self.window_seconds
            while bucket and bucket[0] <= cutoff:
                bucket.popleft()

            if len(bucket) >= self.max_requests:
                retry_after = max(1, int(self.window_seconds - (now - bucket[0])))
                return JSONResponse(
                    status_code=429,
                    content={"error": "Too Many Requests"},
                    headers={"Retry-After": str(retry_after)},
                )

            bucket.append(now)

        return await call_next(request)

    def _is_limited(self, path: str) -> bool:
        return any(
            path == prefix or path.startswith(f"{prefix}/")
            for prefix in self.path_prefixes
        )

    @staticmethod
    def _client_ip(request: Request) -> str:
        # Reverse proxies usually set X-Forwarded-For.
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip() or "unknown"

        if request.client and request.client.host:
            return request.client.host

        return "unknown"
