"""HTTP behaviour of the catch-all prerender adapter."""
import httpx
import pytest

from app.services.app_shell import AppShellClient


async def test_bot_gets_seo_document(client, shop):
    shop.pages[-1] = shop.pages[-1].model_copy(update={"seo_title": "About Us"})
    resp = await client.get("/about", headers={
        "Host": "shop.example.com",
        "User-Agent": "facebookexternalhit/1.1",
    })
    assert resp.status_code == 200
    assert resp.headers["content-type"] == "text/html; charset=utf-8"
    assert "<title>About Us</title>" in resp.text
    assert '<meta property="og:url" content="https://shop.example.com/about">' in resp.text
    assert resp.headers["X-SEO-Source"] == "website_page|website:W|slug:about"
    assert resp.headers["X-SEO-Domain"] == "shop.example.com"
    assert resp.headers["X-SEO-Path"] == "/about"
    assert resp.headers["X-SEO-Page-Id"] == "P-about"
    assert resp.headers["Cache-Control"].startswith("public, max-age=")
    assert "X-Request-ID" in resp.headers


async def test_human_gets_empty_passthrough(client, shop, human_headers):
    resp = await client.get("/about", headers={"Host": "shop.example.com", **human_headers})
    assert resp.status_code == 200
    assert resp.content == b""
    assert "X-SEO-Source" not in resp.headers


async def test_force_flag_renders_for_humans(client, shop, human_headers):
    resp = await client.get("/about?force_bot=1", headers={"Host": "shop.example.com", **human_headers})
    assert resp.headers["X-SEO-Source"] == "website_page|website:W|slug:about"


async def test_forwarded_host_is_used(client, shop, bot_headers):
    resp = await client.get("/about", headers={
        "Host": "internal-lb:8080",
        "X-Forwarded-Host": "shop.example.com, edge.cdn.net",
        **bot_headers,
    })
    assert resp.headers["X-SEO-Domain"] == "shop.example.com"


async def test_unknown_domain_gets_fallback_200(client, bot_headers):
    resp = await client.get("/whatever", headers={"Host": "nobody.example", **bot_headers})
    assert resp.status_code == 200
    assert "<title>nobody.example</title>" in resp.text
    assert resp.headers["X-SEO-Source"] == "fallback_no_data"
    assert resp.headers["X-SEO-Fallback-Reason"] == "not_found"


async def test_store_outage_is_still_200(client, shop, bot_headers):
    shop.failures.add("find_verified_domain")
    resp = await client.get("/about", headers={"Host": "shop.example.com", **bot_headers})
    assert resp.status_code == 200
    assert resp.headers["X-SEO-Fallback-Reason"] == "upstream_failure"


async def test_head_request_has_headers_only(client, shop, bot_headers):
    resp = await client.head("/about", headers={"Host": "shop.example.com", **bot_headers})
    assert resp.status_code == 200
    assert resp.headers["X-SEO-Source"] == "website_page|website:W|slug:about"
    assert resp.content == b""


async def test_redirect_mode(client, shop, human_headers, passthrough_mode, monkeypatch):
    from app.config import settings
    passthrough_mode("redirect")
    monkeypatch.setattr(settings, "APP_ORIGIN", "https://app.example.com")
    resp = await client.get("/about?ref=mail", headers={"Host": "shop.example.com", **human_headers})
    assert resp.status_code == 302
    assert resp.headers["location"] == "https://app.example.com/about?ref=mail"


async def test_inject_mode(client, shop, human_headers, passthrough_mode):
    from app.main import app as fastapi_app

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, html="<html><head><title>App</title></head><body></body></html>")

    passthrough_mode("inject")
    fastapi_app.state.app_shell = AppShellClient(
        url="http://shell.test/index.html", transport=httpx.MockTransport(handler)
    )
    resp = await client.get("/funnel/sale/optin", headers={"Host": "shop.example.com", **human_headers})
    assert resp.status_code == 200
    assert '<head><script type="application/json" id="route-context">' in resp.text
    assert '"mode": "funnel_route"' in resp.text
    assert "<title>App</title>" in resp.text


async def test_inject_mode_shell_down(client, shop, human_headers, passthrough_mode):
    from app.main import app as fastapi_app

    passthrough_mode("inject")
    fastapi_app.state.app_shell = AppShellClient(
        url="http://shell.test/index.html",
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    resp = await client.get("/about", headers={"Host": "shop.example.com", **human_headers})
    assert resp.status_code == 200
    assert resp.content == b""


async def test_unexpected_error_is_generic_500(client, bot_headers):
    from app.main import app as fastapi_app

    class Broken:
        async def resolve(self, host, path):
            raise RuntimeError("db password is hunter2")

    fastapi_app.state.seo_engine = Broken()
    resp = await client.get("/about", headers={"Host": "shop.example.com", **bot_headers})
    assert resp.status_code == 500
    assert resp.text == "Internal Server Error"
    assert "hunter2" not in resp.text


@pytest.mark.parametrize("path", ["/health", "/metrics"])
async def test_skipped_paths_reach_the_app(client, bot_headers, path):
    resp = await client.get(path, headers=bot_headers)
    assert resp.status_code == 200
    assert "X-SEO-Source" not in resp.headers


async def test_post_is_not_prerendered(client, bot_headers):
    resp = await client.post("/about", headers=bot_headers)
    assert "X-SEO-Source" not in resp.headers
