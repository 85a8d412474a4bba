"""
SEO resolution engine
=====================

The single owner of the routing priority order. Every HTTP entry point
(prerender middleware, ``/api/v1/seo/*``) calls ``SeoResolutionEngine.resolve``
and only decides how to present the result.

    classify (host, path) → mode handler → domain → connection → page/step
                          → metadata chains → ResolvedContent

Any stage may come back empty; the engine then returns the fallback document
together with the reason (``not_found``, ``timeout``, ``upstream_failure``).
The whole resolution runs under one deadline, each store lookup under its own
shorter timeout.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

from app.config import settings
from app.middleware.metrics import RESOLUTION_DURATION, RESOLUTIONS, UPSTREAM_FAILURES
from app.schemas.content import ConnectionRecord, ContentType, DomainRecord, FunnelRecord, WebsiteRecord
from app.schemas.seo import ResolvedContent
from app.schemas.tenant import TenantRecord
from app.services.connection_resolver import select_connection
from app.services.content_store import ContentStore
from app.services.domain_resolver import resolve_domain
from app.services.host_patterns import RouteMatch, RouteMode, classify_request, is_system_host
from app.services.lookup import NOT_FOUND, TIMEOUT, GuardedStore, ResolutionTrace
from app.services.resolution_cache import ResolutionCache
from app.services.seo_metadata import ContentProfile, build_resolved_content, fallback_content
from app.services.slug_resolver import resolve_funnel_step, resolve_website_page

logger = logging.getLogger("pageroute.resolution")

COURSE_AREA_TITLE = "Courses"
COURSE_AREA_DESCRIPTION = "Browse our course offerings"
PRODUCT_ROUTE = "product"

ConnectionHandler = Callable[
    [GuardedStore, RouteMatch, ConnectionRecord, Optional[TenantRecord], DomainRecord],
    Awaitable[Optional[ResolvedContent]],
]


@dataclass
class Resolution:
    """Outcome of one resolution: always carries a renderable document."""

    match: RouteMatch
    content: ResolvedContent
    decisions: List[str] = field(default_factory=list)
    fallback_reason: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.fallback_reason is None


class SeoResolutionEngine:
    def __init__(
        self,
        store: ContentStore,
        *,
        cache: Optional[ResolutionCache] = None,
        deadline: Optional[float] = None,
        lookup_timeout: Optional[float] = None,
    ):
        self.store = store
        self.cache = cache
        self.deadline = deadline if deadline is not None else settings.RESOLUTION_DEADLINE_SECONDS
        self.lookup_timeout = lookup_timeout if lookup_timeout is not None else settings.LOOKUP_TIMEOUT_SECONDS

        self._mode_handlers: Dict[RouteMode, Callable[[GuardedStore, RouteMatch], Awaitable[Optional[ResolvedContent]]]] = {
            RouteMode.FUNNEL_ROUTE: self._resolve_funnel_route,
            RouteMode.CUSTOM_DOMAIN: self._resolve_custom_domain,
            RouteMode.PLATFORM_SUBDOMAIN: self._resolve_site_slug,
            RouteMode.STORE_SLUG: self._resolve_store_slug,
            RouteMode.SITE_SLUG: self._resolve_site_slug,
        }
        self._connection_handlers: Dict[ContentType, ConnectionHandler] = {
            ContentType.WEBSITE: self._website_connection,
            ContentType.FUNNEL: self._funnel_connection,
            ContentType.COURSE_AREA: self._course_area_connection,
        }

    async def resolve(self, host: Optional[str], path: Optional[str]) -> Resolution:
        match = classify_request(host, path)

        if self.cache is not None:
            cached = await self.cache.get(match.host, match.request_path)
            if cached is not None:
                RESOLUTIONS.labels(mode=match.mode.value, outcome="cache_hit").inc()
                return Resolution(match=match, content=cached, decisions=["cache:hit"])

        trace = ResolutionTrace()
        trace.note(f"mode:{match.mode.value}")
        lookups = GuardedStore(self.store, trace, self.lookup_timeout)

        start = time.perf_counter()
        reason: Optional[str] = None
        try:
            content = await asyncio.wait_for(self._mode_handlers[match.mode](lookups, match), self.deadline)
        except asyncio.TimeoutError:
            trace.fail("resolution", TIMEOUT)
            UPSTREAM_FAILURES.labels(stage="resolution", kind=TIMEOUT).inc()
            logger.warning("Resolution of %s%s exceeded %.1fs deadline", match.host, match.request_path, self.deadline)
            content, reason = None, TIMEOUT
        elapsed = time.perf_counter() - start
        RESOLUTION_DURATION.observe(elapsed)

        if content is None:
            reason = reason or trace.failure_kind or NOT_FOUND
            content = fallback_content(match.host, match.request_path)

        RESOLUTIONS.labels(mode=match.mode.value, outcome=reason or "found").inc()
        logger.info(
            "Resolved %s%s [%s] → %s (%.1fms)",
            match.host, match.request_path, match.mode.value, content.source_trace, elapsed * 1000,
        )

        if reason is None and self.cache is not None:
            await self.cache.set(match.host, match.request_path, content)

        return Resolution(match=match, content=content, decisions=trace.decisions, fallback_reason=reason)

    # ── Mode handlers ──

    async def _resolve_custom_domain(self, lookups: GuardedStore, match: RouteMatch) -> Optional[ResolvedContent]:
        domain = await resolve_domain(lookups, match.host)
        if domain is None:
            if is_system_host(match.host):
                return await self._platform_page(lookups, match)
            return None

        connections = await lookups.fetch("connections", self.store.find_connections(domain.id), default=[])
        connection = await select_connection(lookups, connections or [], match.content_path)
        if connection is None:
            return None

        tenant = await lookups.fetch("tenant", self.store.find_tenant_settings(domain.tenant_id))
        handler = self._connection_handlers[connection.content_type]
        return await handler(lookups, match, connection, tenant, domain)

    async def _resolve_site_slug(self, lookups: GuardedStore, match: RouteMatch) -> Optional[ResolvedContent]:
        website = await lookups.fetch("website", self.store.find_website_by_slug(match.identifier))
        if website is None:
            lookups.trace.note(f"website:not_found:{match.identifier}")
            if match.mode is RouteMode.PLATFORM_SUBDOMAIN and is_system_host(match.host):
                return await self._platform_page(lookups, match)
            return None
        return await self._website_content(lookups, match, website, None)

    async def _resolve_store_slug(self, lookups: GuardedStore, match: RouteMatch) -> Optional[ResolvedContent]:
        store = await lookups.fetch("store", self.store.find_store_by_slug(match.identifier))
        if store is None:
            lookups.trace.note(f"store:not_found:{match.identifier}")
            return None

        website = await lookups.fetch("website", self.store.find_primary_website(store.id))
        if website is not None:
            return await self._website_content(lookups, match, website, store)

        lookups.trace.note(f"store:{store.id}:no_website")
        return build_resolved_content(
            host=match.host,
            request_path=match.request_path,
            source_trace=f"store_fallback|store:{store.id}",
            tenant=store,
        )

    async def _resolve_funnel_route(self, lookups: GuardedStore, match: RouteMatch) -> Optional[ResolvedContent]:
        funnel = await lookups.fetch("funnel", self.store.find_funnel(match.identifier))
        if funnel is None:
            lookups.trace.note(f"funnel:not_found:{match.identifier}")
            return None
        tenant = await lookups.fetch("tenant", self.store.find_tenant_settings(funnel.store_id))
        return await self._funnel_content(lookups, match, funnel, tenant, match.step_slug, strict=True)

    # ── Connection handlers ──

    async def _website_connection(
        self,
        lookups: GuardedStore,
        match: RouteMatch,
        connection: ConnectionRecord,
        tenant: Optional[TenantRecord],
        domain: DomainRecord,
    ) -> Optional[ResolvedContent]:
        website = await lookups.fetch("website", self.store.find_website(connection.content_id))
        if website is None:
            lookups.trace.note(f"website:missing:{connection.content_id}")
            return None
        return await self._website_content(lookups, match, website, tenant, connection)

    async def _funnel_connection(
        self,
        lookups: GuardedStore,
        match: RouteMatch,
        connection: ConnectionRecord,
        tenant: Optional[TenantRecord],
        domain: DomainRecord,
    ) -> Optional[ResolvedContent]:
        funnel = await lookups.fetch("funnel", self.store.find_funnel(connection.content_id))
        if funnel is None:
            lookups.trace.note(f"funnel:missing:{connection.content_id}")
            return None
        return await self._funnel_content(
            lookups, match, funnel, tenant, match.last_segment,
            connection=connection, strict=not match.is_root,
        )

    async def _course_area_connection(
        self,
        lookups: GuardedStore,
        match: RouteMatch,
        connection: ConnectionRecord,
        tenant: Optional[TenantRecord],
        domain: DomainRecord,
    ) -> Optional[ResolvedContent]:
        profile = ContentProfile(
            kind="course_area",
            id=connection.content_id,
            name=tenant.name if tenant else COURSE_AREA_TITLE,
            seo_title=COURSE_AREA_TITLE,
            description=COURSE_AREA_DESCRIPTION,
        )
        return build_resolved_content(
            host=match.host,
            request_path=match.request_path,
            source_trace=f"course_area|domain:{domain.id}",
            content=profile,
            tenant=tenant,
            connection_type=connection.content_type.value,
            connection_id=connection.id,
        )

    # ── Content builders ──

    async def _website_content(
        self,
        lookups: GuardedStore,
        match: RouteMatch,
        website: WebsiteRecord,
        tenant: Optional[TenantRecord],
        connection: Optional[ConnectionRecord] = None,
    ) -> ResolvedContent:
        if tenant is None:
            tenant = await lookups.fetch("tenant", self.store.find_tenant_settings(website.store_id))

        profile = ContentProfile.from_website(website)
        common = dict(
            host=match.host,
            request_path=match.request_path,
            content=profile,
            tenant=tenant,
            website_id=website.id,
            connection_type=connection.content_type.value if connection else None,
            connection_id=connection.id if connection else None,
        )

        segments = match.segments
        if len(segments) >= 2 and segments[0] == PRODUCT_ROUTE:
            slug = segments[1]
            product = await lookups.fetch("product", self.store.find_product(website.store_id, slug))
            if product is not None:
                lookups.trace.note(f"product:{product.id}")
                return build_resolved_content(
                    source_trace=f"product_page|website:{website.id}|slug:{slug}",
                    page=product,
                    page_label="product",
                    page_id=product.id,
                    slug=slug,
                    **common,
                )
            lookups.trace.note(f"product:not_found:{slug}")
            return build_resolved_content(source_trace=f"website_fallback|website:{website.id}", **common)

        page = await resolve_website_page(lookups, website.id, match.content_path)
        if page is not None:
            if match.is_root:
                trace = f"homepage_page|website:{website.id}|page:{page.id}"
            else:
                trace = f"website_page|website:{website.id}|slug:{page.slug}"
            return build_resolved_content(
                source_trace=trace,
                page=page,
                page_id=page.id,
                slug=page.slug,
                **common,
            )

        kind = "website_root_fallback" if match.is_root else "website_fallback"
        return build_resolved_content(source_trace=f"{kind}|website:{website.id}", **common)

    async def _funnel_content(
        self,
        lookups: GuardedStore,
        match: RouteMatch,
        funnel: FunnelRecord,
        tenant: Optional[TenantRecord],
        step_slug: Optional[str],
        connection: Optional[ConnectionRecord] = None,
        strict: bool = False,
    ) -> Optional[ResolvedContent]:
        """Step metadata, else funnel-level metadata.

        With ``strict`` an explicit step slug that matches no published step
        is NotFound instead of degrading to the funnel.
        """
        step = await resolve_funnel_step(lookups, funnel.id, step_slug)
        if step is None and step_slug and strict:
            return None

        common = dict(
            host=match.host,
            request_path=match.request_path,
            content=ContentProfile.from_funnel(funnel),
            tenant=tenant,
            connection_type=connection.content_type.value if connection else None,
            connection_id=connection.id if connection else None,
        )
        if step is not None:
            return build_resolved_content(
                source_trace=f"funnel_step|funnel:{funnel.id}|step:{step.slug}",
                page=step,
                page_label="step",
                page_id=step.id,
                slug=step.slug,
                **common,
            )
        return build_resolved_content(source_trace=f"funnel_landing|funnel:{funnel.id}", **common)

    async def _platform_page(self, lookups: GuardedStore, match: RouteMatch) -> Optional[ResolvedContent]:
        slug = match.content_path or "/"
        page = await lookups.fetch("platform_page", self.store.find_platform_page(slug))
        if page is None:
            lookups.trace.note(f"platform_page:not_found:{slug}")
            return None
        lookups.trace.note(f"platform_page:{slug}")
        return build_resolved_content(
            host=match.host,
            request_path=match.request_path,
            source_trace=f"seo_pages|slug:{slug}",
            content=ContentProfile.from_platform_page(page),
            slug=slug,
        )
