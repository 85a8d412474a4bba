"""
SEO API

Explicit-hostname variants of the prerender middleware, for edge functions,
link-preview tooling and debugging.
"""
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from starlette.responses import Response

from app.api import deps
from app.config import settings
from app.middleware.prerender import render_request
from app.schemas.seo import ClassificationResponse, ResolutionResponse, RouteInfo
from app.services.app_shell import AppShellClient
from app.services.client_classifier import is_automated_client, parse_force_flag
from app.services.host_patterns import RouteMatch, classify_request
from app.services.resolution import SeoResolutionEngine

router = APIRouter()


def _route_info(match: RouteMatch) -> RouteInfo:
    return RouteInfo(
        mode=match.mode.value,
        identifier=match.identifier,
        content_path=match.content_path,
        step_slug=match.step_slug,
    )


def _require_domain(domain: Optional[str]) -> str:
    if not domain or not domain.strip():
        raise HTTPException(status_code=400, detail="Missing required parameter: domain")
    return domain.strip()


@router.get("/resolve", response_model=ResolutionResponse)
async def resolve_seo(
    domain: Optional[str] = Query(None),
    path: Optional[str] = Query(None),
    engine: SeoResolutionEngine = Depends(deps.get_resolution_engine),
) -> Any:
    """
    Resolve ``domain`` + ``path`` to SEO metadata.
    Always returns a document; ``found`` is false when it is the fallback.
    """
    host = _require_domain(domain)
    resolution = await engine.resolve(host, path or "/")
    return ResolutionResponse(
        found=resolution.found,
        fallback_reason=resolution.fallback_reason,
        route=_route_info(resolution.match),
        decisions=resolution.decisions,
        seo=resolution.content,
    )


@router.get("/render")
async def render_seo(
    request: Request,
    domain: Optional[str] = Query(None),
    path: Optional[str] = Query(None),
    force_bot: Optional[str] = Query(None),
    engine: SeoResolutionEngine = Depends(deps.get_resolution_engine),
    shell_client: Optional[AppShellClient] = Depends(deps.get_app_shell),
) -> Response:
    """Same response the prerender middleware would give for ``domain`` + ``path``."""
    host = _require_domain(domain)
    force = parse_force_flag(force_bot) or parse_force_flag(request.query_params.get(settings.FORCE_BOT_PARAM))
    return await render_request(
        engine,
        host=host,
        path=path or "/",
        user_agent=request.headers.get("user-agent"),
        force=force,
        shell_client=shell_client,
    )


@router.get("/classify", response_model=ClassificationResponse)
def classify(
    request: Request,
    domain: Optional[str] = Query(None),
    path: Optional[str] = Query(None),
    user_agent: Optional[str] = Query(None),
) -> Any:
    """Show how a request would be classified, without touching the store."""
    host = _require_domain(domain)
    ua = user_agent if user_agent is not None else request.headers.get("user-agent")
    match = classify_request(host, path or "/")
    return ClassificationResponse(
        host=match.host,
        path=match.request_path,
        is_automated_client=is_automated_client(ua),
        route=_route_info(match),
    )
