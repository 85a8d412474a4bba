"""
Request Logging Middleware

- Assigns a unique request_id to every request
- Sets the requested host context for every log line
- Logs request start & end with timing
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from app.logging_config import generate_request_id, host_ctx, request_id_ctx, mask_secrets

logger = logging.getLogger("pageroute.request")


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        # Reuse an upstream request ID when the edge already assigned one
        rid = request.headers.get("x-request-id") or generate_request_id()
        request_id_ctx.set(rid)
        host_ctx.set(request.headers.get("host", "-"))

        method = request.method
        path = request.url.path
        if request.url.query:
            path = mask_secrets(f"{path}?{request.url.query}")
        user_agent = request.headers.get("user-agent", "-")

        logger.info("→ %s %s ua=%s", method, path, user_agent[:120])

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.exception("✗ %s %s — %.1fms (unhandled exception)", method, path, elapsed)
            raise

        elapsed = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = rid

        logger.info(
            "← %s %s — %d — %.1fms",
            method, path, response.status_code, elapsed,
        )
        return response
