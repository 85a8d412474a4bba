"""
Guarded store lookups for one resolution.

Each lookup gets its own timeout. A timeout or a store failure is treated
exactly like "no result" by the caller, but is recorded on the request's
``ResolutionTrace``, logged, and counted so operators can tell a missing row
from an unhealthy store.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, List, Optional, TypeVar

from app.middleware.metrics import UPSTREAM_FAILURES
from app.services.content_store import ContentStore, ContentStoreError

logger = logging.getLogger("pageroute.resolution")

T = TypeVar("T")

TIMEOUT = "timeout"
UPSTREAM_FAILURE = "upstream_failure"
NOT_FOUND = "not_found"


@dataclass
class ResolutionTrace:
    decisions: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    def note(self, decision: str) -> None:
        self.decisions.append(decision)

    def fail(self, stage: str, kind: str) -> None:
        self.failures.append(f"{stage}:{kind}")

    @property
    def failure_kind(self) -> Optional[str]:
        """Most severe failure seen: upstream_failure beats timeout."""
        kinds = {f.rsplit(":", 1)[1] for f in self.failures}
        if UPSTREAM_FAILURE in kinds:
            return UPSTREAM_FAILURE
        if TIMEOUT in kinds:
            return TIMEOUT
        return None


class GuardedStore:
    def __init__(self, store: ContentStore, trace: ResolutionTrace, timeout: float):
        self.store = store
        self.trace = trace
        self.timeout = timeout

    async def fetch(self, stage: str, awaitable: Awaitable[T], default: Optional[T] = None) -> Optional[T]:
        try:
            return await asyncio.wait_for(awaitable, self.timeout)
        except asyncio.TimeoutError:
            self.trace.fail(stage, TIMEOUT)
            UPSTREAM_FAILURES.labels(stage=stage, kind=TIMEOUT).inc()
            logger.warning("Lookup %s timed out after %.2fs", stage, self.timeout)
            return default
        except ContentStoreError as e:
            self.trace.fail(stage, UPSTREAM_FAILURE)
            UPSTREAM_FAILURES.labels(stage=stage, kind=UPSTREAM_FAILURE).inc()
            logger.error("Content store failure during %s: %s", stage, e)
            return default
