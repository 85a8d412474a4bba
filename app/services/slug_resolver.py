"""Resolve the remaining path to a published page or funnel step."""
from typing import Optional

from app.schemas.content import PageRecord, StepRecord
from app.services.lookup import GuardedStore


def last_segment(content_path: str) -> Optional[str]:
    segments = [s for s in (content_path or "").split("/") if s]
    return segments[-1] if segments else None


async def resolve_website_page(
    lookups: GuardedStore,
    website_id: str,
    content_path: str,
) -> Optional[PageRecord]:
    """Homepage for the root, else the page whose slug is the last segment.

    Only published pages come back; a draft is indistinguishable from a
    missing page.
    """
    slug = last_segment(content_path)
    page = await lookups.fetch("website_page", lookups.store.find_website_page(website_id, slug))
    if page is None or not page.is_published:
        lookups.trace.note(f"page:not_found:{slug or 'homepage'}")
        return None
    if slug is not None and page.slug != slug:
        lookups.trace.note(f"page:slug_mismatch:{page.slug}")
        return None
    lookups.trace.note(f"page:{page.id}")
    return page


async def resolve_funnel_step(
    lookups: GuardedStore,
    funnel_id: str,
    slug: Optional[str],
) -> Optional[StepRecord]:
    """Step by slug; without a slug the homepage step, else the first published step."""
    step = await lookups.fetch("funnel_step", lookups.store.find_funnel_step(funnel_id, slug or None))
    if step is None or not step.is_published:
        lookups.trace.note(f"step:not_found:{slug or 'landing'}")
        return None
    if slug and step.slug != slug:
        lookups.trace.note(f"step:slug_mismatch:{step.slug}")
        return None
    lookups.trace.note(f"step:{step.id}")
    return step
