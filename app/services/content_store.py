"""
Read-only content store
=======================

The resolution engine talks to storage only through ``ContentStore``.
``SqlContentStore`` is the bundled adapter over the SQLAlchemy models; it
runs blocking sessions in Starlette's threadpool and wraps driver errors in
``ContentStoreError`` so callers can tell "store unreachable" apart from
"no such row".
"""
import logging
import re
from typing import Callable, List, Optional, Protocol, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.models.custom_domain import CustomDomain, DomainConnection
from app.models.funnel import Funnel, FunnelStep
from app.models.product import PlatformSeoPage, Product
from app.models.tenant import Store
from app.models.website import Website, WebsitePage
from app.schemas.content import (
    ConnectionRecord,
    ContentType,
    DomainRecord,
    FunnelRecord,
    PageRecord,
    PlatformPageRecord,
    ProductRecord,
    StepRecord,
    WebsiteRecord,
)
from app.schemas.tenant import TenantRecord

logger = logging.getLogger("pageroute.store")

T = TypeVar("T")

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.I
)
_CONTENT_TYPES = {t.value for t in ContentType}


def looks_like_uuid(value: str) -> bool:
    return bool(_UUID_PATTERN.match(value or ""))


class ContentStoreError(Exception):
    """The backing store failed (unreachable, timed out, query error)."""


class ContentStore(Protocol):
    async def find_verified_domain(self, candidate_hosts: Sequence[str]) -> Optional[DomainRecord]: ...

    async def find_connections(self, domain_id: str) -> List[ConnectionRecord]: ...

    async def find_website_page(self, website_id: str, slug: Optional[str] = None) -> Optional[PageRecord]: ...

    async def find_funnel_step(self, funnel_id: str, slug: Optional[str] = None) -> Optional[StepRecord]: ...

    async def find_tenant_settings(self, tenant_id: str) -> Optional[TenantRecord]: ...

    async def find_website(self, website_id: str) -> Optional[WebsiteRecord]: ...

    async def find_website_by_slug(self, slug: str) -> Optional[WebsiteRecord]: ...

    async def find_store_by_slug(self, slug: str) -> Optional[TenantRecord]: ...

    async def find_primary_website(self, store_id: str) -> Optional[WebsiteRecord]: ...

    async def find_funnel(self, identifier: str) -> Optional[FunnelRecord]: ...

    async def find_product(self, store_id: str, slug: str) -> Optional[ProductRecord]: ...

    async def find_platform_page(self, page_slug: str) -> Optional[PlatformPageRecord]: ...


def _product_record(row: Product) -> ProductRecord:
    images = [i for i in (row.images or []) if isinstance(i, str)]
    return ProductRecord(
        id=row.id,
        store_id=row.store_id,
        slug=row.slug,
        is_active=bool(row.is_active),
        title=row.name,
        seo_title=row.seo_title,
        seo_description=row.seo_description,
        seo_keywords=row.seo_keywords,
        og_image=row.og_image,
        social_image_url=row.social_image_url,
        preview_image_url=images[0] if images else None,
        canonical_url=row.canonical_url,
        meta_robots=row.meta_robots,
        language_code=row.language_code,
        content=row.description,
    )


class SqlContentStore:
    """ContentStore backed by the SQLAlchemy models in ``app.models``."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    async def _run(self, query: Callable[[Session], T]) -> T:
        return await run_in_threadpool(self._run_sync, query)

    def _run_sync(self, query: Callable[[Session], T]) -> T:
        db = self._session_factory()
        try:
            return query(db)
        except SQLAlchemyError as e:
            raise ContentStoreError(f"{type(e).__name__}: {e}") from e
        finally:
            db.close()

    # ── Domains ──

    async def find_verified_domain(self, candidate_hosts: Sequence[str]) -> Optional[DomainRecord]:
        candidates = [h for h in candidate_hosts if h]
        if not candidates:
            return None

        def query(db: Session) -> Optional[DomainRecord]:
            rows = db.query(CustomDomain).filter(
                CustomDomain.domain.in_(candidates),
                CustomDomain.is_verified.is_(True),
                CustomDomain.dns_configured.is_(True),
            ).all()
            if not rows:
                return None
            # Candidate order first (exact host wins), then id for stability
            rows.sort(key=lambda r: (candidates.index(r.domain), r.id))
            if len({r.store_id for r in rows}) > 1:
                logger.warning(
                    "Domain candidates %s map to %d different stores; using %s",
                    candidates, len({r.store_id for r in rows}), rows[0].domain,
                )
            row = rows[0]
            return DomainRecord(
                id=row.id,
                domain=row.domain,
                tenant_id=row.store_id,
                is_verified=bool(row.is_verified),
                dns_configured=bool(row.dns_configured),
            )

        return await self._run(query)

    async def find_connections(self, domain_id: str) -> List[ConnectionRecord]:
        def query(db: Session) -> List[ConnectionRecord]:
            rows = db.query(DomainConnection).filter(
                DomainConnection.domain_id == domain_id
            ).order_by(
                DomainConnection.is_homepage.desc(),
                DomainConnection.created_at,
                DomainConnection.id,
            ).all()
            records = []
            for row in rows:
                if row.content_type not in _CONTENT_TYPES:
                    logger.warning("Skipping connection %s with unknown content_type %r", row.id, row.content_type)
                    continue
                records.append(ConnectionRecord.model_validate(row))
            return records

        return await self._run(query)

    # ── Websites ──

    async def find_website_page(self, website_id: str, slug: Optional[str] = None) -> Optional[PageRecord]:
        def query(db: Session) -> Optional[PageRecord]:
            q = db.query(WebsitePage).filter(
                WebsitePage.website_id == website_id,
                WebsitePage.is_published.is_(True),
            )
            if slug:
                q = q.filter(WebsitePage.slug == slug)
            else:
                q = q.filter(WebsitePage.is_homepage.is_(True))
            row = q.order_by(WebsitePage.created_at, WebsitePage.id).first()
            return PageRecord.model_validate(row) if row else None

        return await self._run(query)

    async def find_website(self, website_id: str) -> Optional[WebsiteRecord]:
        def query(db: Session) -> Optional[WebsiteRecord]:
            row = db.query(Website).filter(Website.id == website_id).first()
            return WebsiteRecord.model_validate(row) if row else None

        return await self._run(query)

    async def find_website_by_slug(self, slug: str) -> Optional[WebsiteRecord]:
        def query(db: Session) -> Optional[WebsiteRecord]:
            row = db.query(Website).filter(Website.slug == slug).first()
            return WebsiteRecord.model_validate(row) if row else None

        return await self._run(query)

    async def find_primary_website(self, store_id: str) -> Optional[WebsiteRecord]:
        def query(db: Session) -> Optional[WebsiteRecord]:
            row = db.query(Website).filter(
                Website.store_id == store_id
            ).order_by(Website.created_at, Website.id).first()
            return WebsiteRecord.model_validate(row) if row else None

        return await self._run(query)

    # ── Funnels ──

    async def find_funnel_step(self, funnel_id: str, slug: Optional[str] = None) -> Optional[StepRecord]:
        def query(db: Session) -> Optional[StepRecord]:
            q = db.query(FunnelStep).filter(
                FunnelStep.funnel_id == funnel_id,
                FunnelStep.is_published.is_(True),
            )
            if slug:
                row = q.filter(FunnelStep.slug == slug).order_by(FunnelStep.id).first()
            else:
                row = q.filter(FunnelStep.is_homepage.is_(True)).order_by(
                    FunnelStep.step_order, FunnelStep.id
                ).first()
                if row is None:
                    row = q.order_by(FunnelStep.step_order, FunnelStep.id).first()
            return StepRecord.model_validate(row) if row else None

        return await self._run(query)

    async def find_funnel(self, identifier: str) -> Optional[FunnelRecord]:
        def query(db: Session) -> Optional[FunnelRecord]:
            column = Funnel.id if looks_like_uuid(identifier) else Funnel.slug
            row = db.query(Funnel).filter(
                column == identifier,
                Funnel.is_active.is_(True),
            ).order_by(Funnel.id).first()
            return FunnelRecord.model_validate(row) if row else None

        return await self._run(query)

    # ── Stores ──

    async def find_tenant_settings(self, tenant_id: str) -> Optional[TenantRecord]:
        def query(db: Session) -> Optional[TenantRecord]:
            row = db.query(Store).filter(Store.id == tenant_id).first()
            return TenantRecord.model_validate(row) if row else None

        return await self._run(query)

    async def find_store_by_slug(self, slug: str) -> Optional[TenantRecord]:
        def query(db: Session) -> Optional[TenantRecord]:
            row = db.query(Store).filter(
                Store.slug == slug,
                Store.is_active.is_(True),
            ).first()
            return TenantRecord.model_validate(row) if row else None

        return await self._run(query)

    # ── Products / platform pages ──

    async def find_product(self, store_id: str, slug: str) -> Optional[ProductRecord]:
        def query(db: Session) -> Optional[ProductRecord]:
            row = db.query(Product).filter(
                Product.store_id == store_id,
                Product.slug == slug,
                Product.is_active.is_(True),
            ).first()
            return _product_record(row) if row else None

        return await self._run(query)

    async def find_platform_page(self, page_slug: str) -> Optional[PlatformPageRecord]:
        def query(db: Session) -> Optional[PlatformPageRecord]:
            row = db.query(PlatformSeoPage).filter(PlatformSeoPage.page_slug == page_slug).first()
            return PlatformPageRecord.model_validate(row) if row else None

        return await self._run(query)
