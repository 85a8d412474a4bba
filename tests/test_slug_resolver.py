"""Page / step lookup: published-only, homepage defaults."""
from app.services.slug_resolver import last_segment, resolve_funnel_step, resolve_website_page


def test_last_segment():
    assert last_segment("") is None
    assert last_segment("blog/posts/hello") == "hello"
    assert last_segment("/about/") == "about"


async def test_root_returns_published_homepage(shop, lookups):
    page = await resolve_website_page(lookups, "W", "")
    assert page.id == "P-home"


async def test_slug_is_last_segment(shop, lookups):
    page = await resolve_website_page(lookups, "W", "company/about")
    assert page.slug == "about"


async def test_unpublished_page_is_invisible(shop, lookups):
    shop.add_page("W", "secret", "Secret Launch", is_published=False)
    assert await resolve_website_page(lookups, "W", "secret") is None
    assert await resolve_website_page(lookups, "W", "never-existed") is None


async def test_unpublished_homepage_is_invisible(store, lookups):
    store.add_page("W2", "home", "Draft Home", is_homepage=True, is_published=False)
    assert await resolve_website_page(lookups, "W2", "") is None


async def test_funnel_step_by_slug(store, lookups):
    store.add_step("F", "optin", "Opt In", step_order=1)
    store.add_step("F", "thanks", "Thanks", step_order=2, step_type="thank_you")
    step = await resolve_funnel_step(lookups, "F", "thanks")
    assert step.title == "Thanks"


async def test_funnel_without_slug_prefers_homepage_step(store, lookups):
    store.add_step("F", "optin", "Opt In", step_order=1)
    store.add_step("F", "vip", "VIP", step_order=3, is_homepage=True)
    step = await resolve_funnel_step(lookups, "F", None)
    assert step.slug == "vip"


async def test_funnel_without_slug_uses_lowest_order(store, lookups):
    store.add_step("F", "second", "Second", step_order=2)
    store.add_step("F", "first", "First", step_order=1)
    store.add_step("F", "zero", "Draft", step_order=0, is_published=False)
    step = await resolve_funnel_step(lookups, "F", None)
    assert step.slug == "first"


async def test_store_timeout_is_no_result(shop, lookups):
    shop.delays["find_website_page"] = 2
    assert await resolve_website_page(lookups, "W", "about") is None
    assert lookups.trace.failure_kind == "timeout"
