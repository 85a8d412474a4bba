from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.config import settings
from app.api.v1.api import api_router
from app.db.session import SessionLocal
from app.middleware.request_logging import RequestLoggingMiddleware
from app.middleware.metrics import PrometheusMiddleware, metrics_endpoint, set_app_info
from app.middleware.prerender import PrerenderMiddleware
from app.logging_config import setup_logging
from app.services.app_shell import AppShellClient
from app.services.content_store import SqlContentStore
from app.services.resolution import SeoResolutionEngine
from app.services.resolution_cache import ResolutionCache

# ── Initialize structured logging ──
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    cache = app.state.seo_engine.cache
    if cache is not None:
        await cache.close()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

# ── Resolution engine (one per process) ──
app.state.seo_engine = SeoResolutionEngine(
    SqlContentStore(SessionLocal),
    cache=ResolutionCache.from_settings(),
)
app.state.app_shell = AppShellClient() if settings.PASSTHROUGH_MODE == "inject" else None

# Set all CORS enabled origins
cors_origins = [settings.APP_ORIGIN]
if settings.BACKEND_CORS_ORIGINS:
    cors_origins.extend([origin.strip() for origin in settings.BACKEND_CORS_ORIGINS.split(",") if origin.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=False,
    allow_methods=["GET", "HEAD"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)

# Prerender middleware – answers every storefront GET/HEAD outside the skip prefixes
app.add_middleware(PrerenderMiddleware)

# Prometheus metrics middleware – request count, latency, in-progress
app.add_middleware(PrometheusMiddleware)

# Request logging middleware – request ID, host, timing
app.add_middleware(RequestLoggingMiddleware)

# Mount API v1
app.include_router(api_router, prefix=settings.API_V1_STR)


@app.get("/health")
def health_check():
    return {"status": "ok", "env": settings.APP_ENV}


# Prometheus metrics endpoint
app.add_route("/metrics", metrics_endpoint)
set_app_info(version=settings.APP_VERSION, env=settings.APP_ENV)
