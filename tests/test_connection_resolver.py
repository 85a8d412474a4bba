"""Connection selection: every priority branch plus the empty case."""
import asyncio
import time

import pytest

from app.schemas.content import ContentType
from app.services.connection_resolver import probe_funnels, select_connection


@pytest.fixture
def mixed(store):
    """Domain D with funnel A (step x), funnel B (step y), website C, course area K."""
    store.add_funnel("A", "T", "Funnel A", slug="a")
    store.add_step("A", "x", "Step X")
    store.add_funnel("B", "T", "Funnel B", slug="b")
    store.add_step("B", "y", "Step Y")
    conns = [
        store.connect("D", "funnel", "A"),
        store.connect("D", "funnel", "B"),
        store.connect("D", "website", "C"),
    ]
    return conns


async def test_no_connections_is_not_found(lookups):
    assert await select_connection(lookups, [], "anything") is None
    assert "connection:none" in lookups.trace.decisions


async def test_root_prefers_homepage_flag(store, lookups):
    conns = [
        store.connect("D", "website", "W"),
        store.connect("D", "funnel", "F", is_homepage=True),
    ]
    selected = await select_connection(lookups, conns, "")
    assert selected.content_id == "F"


async def test_root_prefers_website_then_course_then_funnel(store, lookups):
    funnel = store.connect("D", "funnel", "F")
    course = store.connect("D", "course_area", "K")
    website = store.connect("D", "website", "W")
    assert (await select_connection(lookups, [funnel, course, website], "")).content_id == "W"
    assert (await select_connection(lookups, [funnel, course], "")).content_id == "K"
    assert (await select_connection(lookups, [funnel], "")).content_id == "F"


@pytest.mark.parametrize("path", ["courses", "courses/intro-to-python", "members/dashboard"])
async def test_course_prefix_selects_course_area(store, lookups, path):
    conns = [store.connect("D", "website", "W"), store.connect("D", "course_area", "K")]
    selected = await select_connection(lookups, conns, path)
    assert selected.content_type == ContentType.COURSE_AREA


async def test_course_prefix_without_course_area_is_not_found(store, lookups):
    conns = [store.connect("D", "website", "W")]
    assert await select_connection(lookups, conns, "courses/intro") is None


@pytest.mark.parametrize("path", ["shop/search", "collection", "product/red-shoes"])
async def test_website_system_routes(mixed, lookups, path):
    selected = await select_connection(lookups, mixed, path)
    assert selected.content_type == ContentType.WEBSITE


async def test_generic_system_route_prefers_funnel(mixed, lookups):
    selected = await select_connection(lookups, mixed, "checkout")
    assert selected.content_id == "A"


async def test_generic_system_route_falls_back_to_website(store, lookups):
    conns = [store.connect("D", "website", "W")]
    selected = await select_connection(lookups, conns, "order-confirmation")
    assert selected.content_id == "W"


async def test_funnel_step_probe_picks_owning_funnel(mixed, lookups):
    selected = await select_connection(lookups, mixed, "y")
    assert selected.content_id == "B"


async def test_unmatched_path_defaults_to_website(mixed, lookups):
    selected = await select_connection(lookups, mixed, "z")
    assert selected.content_id == "C"


async def test_unpublished_step_is_not_a_match(store, mixed, lookups):
    store.add_step("A", "draft", "Draft", is_published=False)
    selected = await select_connection(lookups, mixed, "draft")
    assert selected.content_id == "C"


async def test_earliest_declared_funnel_wins_even_if_slower(store, mixed, lookups):
    store.add_step("A", "y", "Also Y")
    store.step_delays["A"] = 0.05
    selected = await select_connection(lookups, mixed, "y")
    assert selected.content_id == "A"


async def test_remaining_probes_are_cancelled(store, mixed, lookups):
    store.step_delays["B"] = 5
    start = time.perf_counter()
    winner = await probe_funnels(lookups, mixed[:2], "x")
    assert winner.content_id == "A"
    assert time.perf_counter() - start < 1
    await asyncio.sleep(0.05)
    assert store.cancelled == ["B"]


async def test_failed_probe_counts_as_no_match(store, mixed, lookups):
    store.failures.add("find_funnel_step")
    selected = await select_connection(lookups, mixed, "y")
    assert selected.content_id == "C"
    assert lookups.trace.failure_kind == "upstream_failure"
