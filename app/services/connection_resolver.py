"""
Domain connection selection
===========================

One domain can mount several content families (a website, funnels, a course
area) while the request carries a single flat path. Selection priority:

1. root path: the ``is_homepage`` connection, else website, else course
   area, else funnel
2. ``courses/...`` or ``members/...``: the course area
3. website system routes (product, collection, search): the website
4. generic system routes (checkout, cart, ...): a funnel, else the website
5. a funnel owning a published step whose slug is the last segment
6. the website
"""
import asyncio
import logging
from typing import List, Optional, Sequence

from app.schemas.content import ConnectionRecord, ContentType
from app.services.lookup import GuardedStore

logger = logging.getLogger("pageroute.resolution")

COURSE_PREFIXES = frozenset({"courses", "members"})
WEBSITE_SYSTEM_ROUTES = frozenset({"product", "collection", "search"})
GENERIC_SYSTEM_ROUTES = frozenset({"payment-processing", "order-confirmation", "cart", "checkout"})

ROOT_PREFERENCE = (ContentType.WEBSITE, ContentType.COURSE_AREA, ContentType.FUNNEL)


def first_of_type(connections: Sequence[ConnectionRecord], content_type: ContentType) -> Optional[ConnectionRecord]:
    return next((c for c in connections if c.content_type == content_type), None)


def select_root_connection(connections: Sequence[ConnectionRecord]) -> Optional[ConnectionRecord]:
    homepage = next((c for c in connections if c.is_homepage), None)
    if homepage:
        return homepage
    for content_type in ROOT_PREFERENCE:
        found = first_of_type(connections, content_type)
        if found:
            return found
    return None


async def probe_funnels(
    lookups: GuardedStore,
    funnels: Sequence[ConnectionRecord],
    slug: str,
) -> Optional[ConnectionRecord]:
    """Earliest-declared funnel with a published step ``slug``.

    All probes start at once; as soon as the winner is known the rest are
    cancelled. Cancelling the caller cancels every probe.
    """
    tasks = [
        asyncio.create_task(
            lookups.fetch("funnel_probe", lookups.store.find_funnel_step(conn.content_id, slug))
        )
        for conn in funnels
    ]
    try:
        for conn, task in zip(funnels, tasks):
            if await task is not None:
                return conn
        return None
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()


async def select_connection(
    lookups: GuardedStore,
    connections: List[ConnectionRecord],
    content_path: str,
) -> Optional[ConnectionRecord]:
    trace = lookups.trace
    if not connections:
        trace.note("connection:none")
        return None

    segments = [s for s in content_path.split("/") if s]
    if not segments:
        selected = select_root_connection(connections)
        trace.note(f"connection:root:{selected.content_type.value if selected else 'none'}")
        return selected

    first, last = segments[0], segments[-1]

    if first in COURSE_PREFIXES:
        selected = first_of_type(connections, ContentType.COURSE_AREA)
        trace.note(f"connection:course_path:{'course_area' if selected else 'none'}")
        return selected

    if last in WEBSITE_SYSTEM_ROUTES or first in WEBSITE_SYSTEM_ROUTES:
        selected = first_of_type(connections, ContentType.WEBSITE)
        trace.note(f"connection:website_system_route:{'website' if selected else 'none'}")
        return selected

    if last in GENERIC_SYSTEM_ROUTES:
        selected = first_of_type(connections, ContentType.FUNNEL) or first_of_type(connections, ContentType.WEBSITE)
        trace.note(f"connection:system_route:{selected.content_type.value if selected else 'none'}")
        return selected

    funnels = [c for c in connections if c.content_type == ContentType.FUNNEL]
    if funnels:
        matched = await probe_funnels(lookups, funnels, last)
        if matched:
            trace.note(f"connection:funnel_step:{matched.content_id}")
            return matched

    selected = first_of_type(connections, ContentType.WEBSITE)
    trace.note(f"connection:default:{'website' if selected else 'none'}")
    return selected
