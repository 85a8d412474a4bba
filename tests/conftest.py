"""Pytest configuration and fixtures."""
import asyncio
import os
from typing import Dict, List, Optional, Sequence

# Point the app at an in-memory database before anything imports settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PLATFORM_DOMAIN", "sitebuilder.local")
os.environ.setdefault("SYSTEM_HOSTS", "app.sitebuilder.local,get.sitebuilder.local")
os.environ.setdefault("RESOLUTION_CACHE_ENABLED", "false")

import pytest
from httpx import AsyncClient, ASGITransport

from app.config import settings
from app.schemas.content import (
    ConnectionRecord,
    DomainRecord,
    FunnelRecord,
    PageRecord,
    PlatformPageRecord,
    ProductRecord,
    StepRecord,
    WebsiteRecord,
)
from app.schemas.tenant import TenantRecord
from app.services.content_store import ContentStoreError, looks_like_uuid
from app.services.lookup import GuardedStore, ResolutionTrace
from app.services.resolution import SeoResolutionEngine


# --- In-memory content store ---

class InMemoryContentStore:
    """ContentStore over plain lists, with knobs for slow and failing lookups.

    ``delays`` / ``failures`` are keyed by method name; ``step_delays`` slows
    ``find_funnel_step`` for one funnel id only.
    """

    def __init__(self):
        self.tenants: Dict[str, TenantRecord] = {}
        self.domains: List[DomainRecord] = []
        self.connections: Dict[str, List[ConnectionRecord]] = {}
        self.websites: Dict[str, WebsiteRecord] = {}
        self.pages: List[PageRecord] = []
        self.funnels: Dict[str, FunnelRecord] = {}
        self.steps: List[StepRecord] = []
        self.products: List[ProductRecord] = []
        self.platform_pages: Dict[str, PlatformPageRecord] = {}

        self.delays: Dict[str, float] = {}
        self.failures: set = set()
        self.step_delays: Dict[str, float] = {}
        self.calls: List[str] = []
        self.cancelled: List[str] = []

    # ── builders ──

    def add_tenant(self, id: str, name: str, settings: Optional[dict] = None, slug: Optional[str] = None):
        self.tenants[id] = TenantRecord(id=id, name=name, slug=slug or id.lower(), settings=settings)
        return self.tenants[id]

    def add_domain(self, domain: str, tenant_id: str, id: Optional[str] = None, verified=True, dns=True):
        record = DomainRecord(
            id=id or f"D-{domain}", domain=domain, tenant_id=tenant_id,
            is_verified=verified, dns_configured=dns,
        )
        self.domains.append(record)
        return record

    def connect(self, domain_id: str, content_type: str, content_id: str, is_homepage=False):
        conns = self.connections.setdefault(domain_id, [])
        record = ConnectionRecord(
            id=f"C{len(conns) + 1}-{domain_id}", domain_id=domain_id,
            content_type=content_type, content_id=content_id, is_homepage=is_homepage,
        )
        conns.append(record)
        return record

    def add_website(self, id: str, store_id: str, name: str, slug: Optional[str] = None, **fields):
        self.websites[id] = WebsiteRecord(id=id, store_id=store_id, name=name, slug=slug, **fields)
        return self.websites[id]

    def add_page(self, website_id: str, slug: str, title: str, id: Optional[str] = None, **fields):
        fields.setdefault("is_published", True)
        record = PageRecord(id=id or f"P-{slug}", website_id=website_id, slug=slug, title=title, **fields)
        self.pages.append(record)
        return record

    def add_funnel(self, id: str, store_id: str, name: str, slug: Optional[str] = None, **fields):
        self.funnels[id] = FunnelRecord(id=id, store_id=store_id, name=name, slug=slug, **fields)
        return self.funnels[id]

    def add_step(self, funnel_id: str, slug: str, title: str, id: Optional[str] = None, **fields):
        fields.setdefault("is_published", True)
        record = StepRecord(id=id or f"S-{funnel_id}-{slug}", funnel_id=funnel_id, slug=slug, title=title, **fields)
        self.steps.append(record)
        return record

    def add_product(self, store_id: str, slug: str, title: str, **fields):
        record = ProductRecord(id=f"PR-{slug}", store_id=store_id, slug=slug, title=title, **fields)
        self.products.append(record)
        return record

    def add_platform_page(self, page_slug: str, title: str, **fields):
        self.platform_pages[page_slug] = PlatformPageRecord(page_slug=page_slug, title=title, **fields)
        return self.platform_pages[page_slug]

    # ── ContentStore ──

    async def _enter(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failures:
            raise ContentStoreError(f"{name} unavailable")
        delay = self.delays.get(name)
        if delay:
            await asyncio.sleep(delay)

    async def find_verified_domain(self, candidate_hosts: Sequence[str]) -> Optional[DomainRecord]:
        await self._enter("find_verified_domain")
        candidates = list(candidate_hosts)
        rows = [d for d in self.domains if d.domain in candidates and d.is_verified and d.dns_configured]
        rows.sort(key=lambda d: (candidates.index(d.domain), d.id))
        return rows[0] if rows else None

    async def find_connections(self, domain_id: str) -> List[ConnectionRecord]:
        await self._enter("find_connections")
        conns = self.connections.get(domain_id, [])
        return sorted(conns, key=lambda c: not c.is_homepage)

    async def find_website_page(self, website_id: str, slug: Optional[str] = None) -> Optional[PageRecord]:
        await self._enter("find_website_page")
        for page in self.pages:
            if page.website_id != website_id or not page.is_published:
                continue
            if (slug and page.slug == slug) or (not slug and page.is_homepage):
                return page
        return None

    async def find_funnel_step(self, funnel_id: str, slug: Optional[str] = None) -> Optional[StepRecord]:
        await self._enter("find_funnel_step")
        delay = self.step_delays.get(funnel_id)
        if delay:
            try:
                await asyncio.sleep(delay)
            except asyncio.CancelledError:
                self.cancelled.append(funnel_id)
                raise
        steps = [s for s in self.steps if s.funnel_id == funnel_id and s.is_published]
        if slug:
            return next((s for s in steps if s.slug == slug), None)
        steps.sort(key=lambda s: s.step_order)
        return next((s for s in steps if s.is_homepage), None) or (steps[0] if steps else None)

    async def find_tenant_settings(self, tenant_id: str) -> Optional[TenantRecord]:
        await self._enter("find_tenant_settings")
        return self.tenants.get(tenant_id)

    async def find_website(self, website_id: str) -> Optional[WebsiteRecord]:
        await self._enter("find_website")
        return self.websites.get(website_id)

    async def find_website_by_slug(self, slug: str) -> Optional[WebsiteRecord]:
        await self._enter("find_website_by_slug")
        return next((w for w in self.websites.values() if w.slug == slug), None)

    async def find_store_by_slug(self, slug: str) -> Optional[TenantRecord]:
        await self._enter("find_store_by_slug")
        return next((t for t in self.tenants.values() if t.slug == slug and t.is_active), None)

    async def find_primary_website(self, store_id: str) -> Optional[WebsiteRecord]:
        await self._enter("find_primary_website")
        return next((w for w in self.websites.values() if w.store_id == store_id), None)

    async def find_funnel(self, identifier: str) -> Optional[FunnelRecord]:
        await self._enter("find_funnel")
        # Short test ids stand in for UUIDs, so match either column
        for funnel in self.funnels.values():
            if not funnel.is_active:
                continue
            if funnel.id == identifier or (not looks_like_uuid(identifier) and funnel.slug == identifier):
                return funnel
        return None

    async def find_product(self, store_id: str, slug: str) -> Optional[ProductRecord]:
        await self._enter("find_product")
        return next((p for p in self.products if p.store_id == store_id and p.slug == slug and p.is_active), None)

    async def find_platform_page(self, page_slug: str) -> Optional[PlatformPageRecord]:
        await self._enter("find_platform_page")
        return self.platform_pages.get(page_slug)


# --- Fixtures ---

@pytest.fixture
def store() -> InMemoryContentStore:
    return InMemoryContentStore()


@pytest.fixture
def engine(store) -> SeoResolutionEngine:
    return SeoResolutionEngine(store, deadline=1.0, lookup_timeout=0.5)


@pytest.fixture
def lookups(store) -> GuardedStore:
    return GuardedStore(store, ResolutionTrace(), timeout=0.5)


@pytest.fixture
def shop(store) -> InMemoryContentStore:
    """shop.example.com → tenant T (Acme Shop) → website W with home + about."""
    store.add_tenant("T", "Acme Shop")
    store.add_domain("shop.example.com", "T", id="D1")
    store.add_website("W", "T", "Acme Website", slug="acme")
    store.connect("D1", "website", "W", is_homepage=True)
    store.add_page("W", "home", "Home", id="P-home", is_homepage=True, seo_description="Everything Acme sells.")
    store.add_page("W", "about", "About Us", id="P-about", content={
        "sections": [{"type": "text", "content": "<p>We build rockets.</p> Since 1949."}],
    })
    return store


@pytest.fixture
async def client(engine):
    """HTTP client against the app with the in-memory store behind the engine."""
    from app.main import app as fastapi_app

    original_engine = fastapi_app.state.seo_engine
    original_shell = fastapi_app.state.app_shell
    fastapi_app.state.seo_engine = engine

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    fastapi_app.state.seo_engine = original_engine
    fastapi_app.state.app_shell = original_shell


BOT_UA = "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)"
HUMAN_UA = "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_0) AppleWebKit/605.1.15 Safari/605.1.15"


@pytest.fixture
def bot_headers():
    return {"User-Agent": BOT_UA}


@pytest.fixture
def human_headers():
    return {"User-Agent": HUMAN_UA}


@pytest.fixture
def passthrough_mode(monkeypatch):
    def _set(mode: str):
        monkeypatch.setattr(settings, "PASSTHROUGH_MODE", mode)
    return _set
