"""
SEO response rendering
======================

Bots get a complete, escaped HTML document built from ``ResolvedContent``
plus ``X-SEO-*`` debug headers. Humans get one of the configured pass-through
responses (empty 200, redirect to the app origin, or the app shell with a
route-context marker injected into ``<head>``).
"""
import html
import json
import re
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

from starlette.responses import HTMLResponse, RedirectResponse, Response

from app.config import settings
from app.schemas.seo import ResolvedContent
from app.services.host_patterns import RouteMatch

MAX_HEADER_LENGTH = 256
MAX_DECISIONS_HEADER_LENGTH = 512

_CONTROL = re.compile(r"[\x00-\x1f\x7f-\x9f]+")
_HEAD_OPEN = re.compile(r"<head(\s[^>]*)?>", re.IGNORECASE)
_HEAD_CLOSE = re.compile(r"</head\s*>", re.IGNORECASE)


def _e(value: Any) -> str:
    return html.escape("" if value is None else str(value), quote=True)


def _json_for_script(data: Any) -> str:
    # A "</script>" inside a value must not close the tag
    return json.dumps(data, ensure_ascii=False).replace("<", "\\u003c")


def sanitize_header_value(value: Any, limit: int = MAX_HEADER_LENGTH) -> str:
    """Header-safe text: control chars collapsed, non-latin-1 percent-encoded."""
    text = _CONTROL.sub(" ", "" if value is None else str(value)).strip()
    text = "".join(ch if ord(ch) < 256 else quote(ch) for ch in text)
    return text[:limit]


# ═══════════════════════════════════════════
#  Bot document
# ═══════════════════════════════════════════

def build_json_ld(content: ResolvedContent) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "@context": "https://schema.org",
        "@type": "WebPage",
        "name": content.title,
        "description": content.description,
        "url": content.canonical_url,
        "inLanguage": content.language_code,
        "isPartOf": {"@type": "WebSite", "name": content.site_name},
    }
    if content.og_image:
        data["image"] = content.og_image
    return data


def render_seo_html(content: ResolvedContent) -> str:
    """Full HTML document for crawlers and link-preview bots."""
    title = _e(content.title)
    description = _e(content.description)
    canonical = _e(content.canonical_url)
    site_name = _e(content.site_name)
    card = "summary_large_image" if content.og_image else "summary"

    meta = [
        f'<meta name="description" content="{description}">',
        f'<meta name="robots" content="{_e(content.robots)}">',
        f'<meta name="author" content="{site_name}">',
    ]
    if content.keywords:
        meta.append(f'<meta name="keywords" content="{_e(", ".join(content.keywords))}">')
    meta += [
        f'<link rel="canonical" href="{canonical}">',
        '<meta property="og:type" content="website">',
        f'<meta property="og:title" content="{title}">',
        f'<meta property="og:description" content="{description}">',
        f'<meta property="og:url" content="{canonical}">',
        f'<meta property="og:site_name" content="{site_name}">',
        f'<meta name="twitter:card" content="{card}">',
        f'<meta name="twitter:title" content="{title}">',
        f'<meta name="twitter:description" content="{description}">',
    ]
    if content.og_image:
        image = _e(content.og_image)
        meta += [
            f'<meta property="og:image" content="{image}">',
            f'<meta name="twitter:image" content="{image}">',
        ]

    head = "\n    ".join(meta)
    return f"""<!DOCTYPE html>
<html lang="{_e(content.language_code)}">
  <head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <title>{title}</title>
    {head}
    <script type="application/ld+json">{_json_for_script(build_json_ld(content))}</script>
  </head>
  <body>
    <h1>{title}</h1>
    <p>{description}</p>
    <a href="{canonical}">{site_name}</a>
  </body>
</html>
"""


def cache_control(is_fallback: bool) -> str:
    max_age = settings.SEO_FALLBACK_CACHE_MAX_AGE if is_fallback else settings.SEO_CACHE_MAX_AGE
    return f"public, max-age={max_age}, s-maxage={max_age}"


_OPTIONAL_HEADERS = (
    ("X-SEO-Website-Id", "website_id"),
    ("X-SEO-Page-Id", "page_id"),
    ("X-SEO-Slug", "slug"),
    ("X-SEO-Conn-Type", "connection_type"),
    ("X-SEO-Conn-Id", "connection_id"),
    ("X-SEO-Title-Source", "title_source"),
    ("X-SEO-Desc-Source", "description_source"),
    ("X-SEO-Image-Source", "image_source"),
)


def build_seo_headers(
    content: ResolvedContent,
    match: RouteMatch,
    *,
    fallback_reason: Optional[str] = None,
    decisions: Iterable[str] = (),
) -> Dict[str, str]:
    headers = {
        "Cache-Control": cache_control(content.is_fallback),
        "Vary": "User-Agent",
        "X-SEO-Source": content.source_trace,
        "X-SEO-Website": content.site_name,
        "X-SEO-Page": content.title,
        "X-SEO-Domain": match.host,
        "X-SEO-Path": match.request_path,
        "X-SEO-Pattern": match.mode.value,
        "X-SEO-Identifier": match.identifier,
    }
    for header, attr in _OPTIONAL_HEADERS:
        value = getattr(content, attr)
        if value:
            headers[header] = value
    if fallback_reason:
        headers["X-SEO-Fallback-Reason"] = fallback_reason
    headers = {k: sanitize_header_value(v) for k, v in headers.items()}

    decisions = list(decisions)
    if decisions:
        headers["X-SEO-Decisions"] = sanitize_header_value(";".join(decisions), MAX_DECISIONS_HEADER_LENGTH)
    return headers


def bot_response(
    content: ResolvedContent,
    match: RouteMatch,
    *,
    fallback_reason: Optional[str] = None,
    decisions: Iterable[str] = (),
    include_body: bool = True,
) -> Response:
    headers = build_seo_headers(content, match, fallback_reason=fallback_reason, decisions=decisions)
    body = render_seo_html(content) if include_body else ""
    return HTMLResponse(body, status_code=200, headers=headers)


# ═══════════════════════════════════════════
#  Human pass-through
# ═══════════════════════════════════════════

def route_context(match: RouteMatch) -> Dict[str, Any]:
    return {
        "mode": match.mode.value,
        "identifier": match.identifier,
        "contentPath": match.content_path,
        "stepSlug": match.step_slug,
        "host": match.host,
        "path": match.request_path,
    }


def inject_route_context(shell_html: str, context: Dict[str, Any]) -> str:
    """Insert the route-context marker as the first child of ``<head>``.

    The rest of the shell is returned untouched.
    """
    marker = f'<script type="application/json" id="route-context">{_json_for_script(context)}</script>'
    m = _HEAD_OPEN.search(shell_html)
    if m:
        return shell_html[: m.end()] + marker + shell_html[m.end():]
    m = _HEAD_CLOSE.search(shell_html)
    if m:
        return shell_html[: m.start()] + marker + shell_html[m.start():]
    return f"<head>{marker}</head>" + shell_html


def empty_passthrough() -> Response:
    return Response(status_code=200, headers={"Cache-Control": "no-store", "Vary": "User-Agent"})


def redirect_passthrough(path: str, query: str = "") -> Response:
    target = settings.APP_ORIGIN.rstrip("/") + (path or "/")
    if query:
        target = f"{target}?{query}"
    return RedirectResponse(target, status_code=302, headers={"Vary": "User-Agent"})


def shell_passthrough(shell_html: str, match: RouteMatch) -> Response:
    return HTMLResponse(
        inject_route_context(shell_html, route_context(match)),
        status_code=200,
        headers={"Cache-Control": "no-store", "Vary": "User-Agent"},
    )
