"""
Hostname pattern matching.

Maps any ``(host, path)`` pair to exactly one routing mode. Rules are tried
in a fixed order and the first match wins; funnel paths are checked before
custom-domain classification because a custom domain can itself serve a
funnel mounted under ``/funnel/...``.
"""
import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from app.config import settings

_FUNNEL_PATH = re.compile(r"^/funnel/([^/]+)(?:/([^/]+))?/?$")
_STORE_PATH = re.compile(r"^/store/([^/]+)(/.*)?$")
_SITE_PATH = re.compile(r"^/site/([^/]+)(/.*)?$")
_MULTI_SLASH = re.compile(r"/{2,}")


class RouteMode(str, Enum):
    FUNNEL_ROUTE = "funnel_route"
    CUSTOM_DOMAIN = "custom_domain"
    PLATFORM_SUBDOMAIN = "platform_subdomain"
    STORE_SLUG = "store_slug"
    SITE_SLUG = "site_slug"


@dataclass(frozen=True)
class RouteMatch:
    """Routing decision for one request."""

    mode: RouteMode
    identifier: str          # hostname, subdomain, store/site/funnel slug
    content_path: str        # remaining path, no leading/trailing slash; "" = root
    host: str                # normalized request host
    request_path: str        # normalized full request path
    step_slug: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.content_path == ""

    @property
    def segments(self) -> list[str]:
        return [s for s in self.content_path.split("/") if s]

    @property
    def last_segment(self) -> Optional[str]:
        segments = self.segments
        return segments[-1] if segments else None


def normalize_host(host: Optional[str]) -> str:
    """Lower-case, strip port and trailing dot. Never raises."""
    if not host or not isinstance(host, str):
        return ""
    host = host.strip().lower()
    if host.startswith("["):
        # IPv6 literal, optionally with port
        end = host.find("]")
        return host[: end + 1] if end != -1 else host
    if ":" in host:
        name, _, port = host.rpartition(":")
        if port.isdigit() or port == "":
            host = name
    return host.rstrip(".")


def normalize_path(path: Optional[str]) -> str:
    """Drop query/fragment, collapse slashes, ensure a leading slash."""
    if not path or not isinstance(path, str):
        return "/"
    path = path.split("?", 1)[0].split("#", 1)[0].strip()
    path = _MULTI_SLASH.sub("/", path)
    if not path.startswith("/"):
        path = "/" + path
    return path


def clean_content_path(path: Optional[str]) -> str:
    return (path or "").strip("/")


def _in_platform_family(host: str, platform_domain: str, aliases: Iterable[str]) -> bool:
    if host in aliases:
        return True
    return host == platform_domain or host.endswith("." + platform_domain)


def classify_request(
    host: Optional[str],
    path: Optional[str],
    *,
    platform_domain: Optional[str] = None,
    reserved_subdomains: Optional[Iterable[str]] = None,
    host_aliases: Optional[Iterable[str]] = None,
) -> RouteMatch:
    """Classify a request into a routing mode. Total: every input gets a mode."""
    platform_domain = (platform_domain or settings.PLATFORM_DOMAIN).lower()
    reserved = set(reserved_subdomains if reserved_subdomains is not None else settings.reserved_subdomains)
    aliases = set(host_aliases if host_aliases is not None else settings.platform_host_aliases)

    host = normalize_host(host)
    path = normalize_path(path)

    # 1. Funnel path route, on any host
    m = _FUNNEL_PATH.match(path)
    if m:
        step = m.group(2)
        return RouteMatch(
            mode=RouteMode.FUNNEL_ROUTE,
            identifier=m.group(1),
            content_path=step or "",
            host=host,
            request_path=path,
            step_slug=step,
        )

    # 2. Anything outside the platform's own domain family is a custom domain
    if not _in_platform_family(host, platform_domain, aliases):
        return RouteMatch(RouteMode.CUSTOM_DOMAIN, host, clean_content_path(path), host, path)

    # 3. {subdomain}.platform
    suffix = "." + platform_domain
    if host.endswith(suffix):
        sub = host[: -len(suffix)]
        if sub and "." not in sub and sub not in reserved:
            return RouteMatch(RouteMode.PLATFORM_SUBDOMAIN, sub, clean_content_path(path), host, path)

    # 4. /store/{slug}[...]
    m = _STORE_PATH.match(path)
    if m:
        return RouteMatch(RouteMode.STORE_SLUG, m.group(1), clean_content_path(m.group(2)), host, path)

    # 5. /site/{slug}[...]
    m = _SITE_PATH.match(path)
    if m:
        return RouteMatch(RouteMode.SITE_SLUG, m.group(1), clean_content_path(m.group(2)), host, path)

    # 6. Catch-all
    return RouteMatch(RouteMode.CUSTOM_DOMAIN, host, clean_content_path(path), host, path)


def is_system_host(host: str) -> bool:
    """Platform marketing hosts (app./get. of the platform domain)."""
    return normalize_host(host) in settings.system_hosts
