"""
Database session and connection pool
====================================

The resolution engine only reads. Pool parameters:
- pool_size: resident connections (10 suits a 4-worker uvicorn)
- max_overflow: burst connections above pool_size
- pool_timeout: max seconds to wait for a connection
- pool_recycle: recycle period so idle PostgreSQL connections are not dropped
- pool_pre_ping: check liveness before use
"""

import logging
import time
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from app.config import settings

logger = logging.getLogger("pageroute.db")


def _engine_kwargs(url: str) -> dict:
    kwargs = {"pool_pre_ping": True, "echo": settings.DB_ECHO}
    # SQLite (tests / local tooling) does not accept queue-pool sizing
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
        )
    return kwargs


engine = create_engine(settings.database_url, **_engine_kwargs(settings.database_url))


# ---------------------------------------------------------------------------
# Slow query monitoring
# ---------------------------------------------------------------------------
@event.listens_for(engine, "before_cursor_execute")
def _before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


@event.listens_for(engine, "after_cursor_execute")
def _after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
    total_ms = (time.perf_counter() - conn.info["query_start_time"].pop()) * 1000

    if total_ms >= settings.SLOW_QUERY_THRESHOLD_MS:
        # Truncate long SQL so a single query cannot flood the log
        stmt_preview = statement[:500] + "..." if len(statement) > 500 else statement
        logger.warning(
            "Slow query detected (%.1fms): %s",
            total_ms,
            stmt_preview,
        )


SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
