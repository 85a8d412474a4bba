"""
Prerender Middleware

Catch-all adapter in front of the client application: every GET/HEAD outside
the skipped prefixes is answered here.

- Crawlers / link-preview bots (or ``?force_bot=1``) get the resolved SEO document
- Interactive clients get the configured pass-through (empty / redirect / inject)
- Unexpected faults return a generic 500; details go to the log only
"""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from app.config import settings
from app.logging_config import host_ctx
from app.services.app_shell import AppShellClient
from app.services.client_classifier import is_automated_client, parse_force_flag
from app.services.host_patterns import classify_request
from app.services.resolution import SeoResolutionEngine
from app.services.seo_renderer import (
    bot_response,
    empty_passthrough,
    redirect_passthrough,
    shell_passthrough,
)

logger = logging.getLogger("pageroute.prerender")


def request_host(request: Request) -> str:
    if settings.TRUST_FORWARDED_HOST:
        forwarded = request.headers.get("x-forwarded-host", "")
        if forwarded.strip():
            return forwarded.split(",")[0].strip()
    return request.headers.get("host", "")


def is_skipped(path: str) -> bool:
    for prefix in settings.prerender_skip_prefixes:
        if path == prefix or path.startswith(prefix.rstrip("/") + "/"):
            return True
    return False


async def render_request(
    engine: SeoResolutionEngine,
    *,
    host: str,
    path: str,
    query: str = "",
    user_agent: Optional[str] = None,
    force: bool = False,
    shell_client: Optional[AppShellClient] = None,
    include_body: bool = True,
) -> Response:
    """Bot → SEO document, human → pass-through. Shared by every HTTP adapter."""
    if is_automated_client(user_agent, force=force):
        resolution = await engine.resolve(host, path)
        return bot_response(
            resolution.content,
            resolution.match,
            fallback_reason=resolution.fallback_reason,
            decisions=resolution.decisions,
            include_body=include_body,
        )

    mode = settings.PASSTHROUGH_MODE
    if mode == "redirect":
        return redirect_passthrough(path, query)
    if mode == "inject" and shell_client is not None:
        shell = await shell_client.fetch_shell()
        if shell is not None:
            return shell_passthrough(shell, classify_request(host, path))
        logger.info("App shell unavailable, falling back to empty pass-through")
    return empty_passthrough()


class PrerenderMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        path = request.url.path
        if request.method not in ("GET", "HEAD") or is_skipped(path):
            return await call_next(request)

        host = request_host(request)
        host_ctx.set(host or "-")

        try:
            return await render_request(
                request.app.state.seo_engine,
                host=host,
                path=path,
                query=request.url.query,
                user_agent=request.headers.get("user-agent"),
                force=parse_force_flag(request.query_params.get(settings.FORCE_BOT_PARAM)),
                shell_client=getattr(request.app.state, "app_shell", None),
                include_body=request.method != "HEAD",
            )
        except Exception:
            logger.exception("Prerender failed for %s%s", host, path)
            return PlainTextResponse("Internal Server Error", status_code=500)
