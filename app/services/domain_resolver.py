"""Custom domain → verified domain record."""
from typing import List, Optional

from app.schemas.content import DomainRecord
from app.services.host_patterns import normalize_host
from app.services.lookup import GuardedStore


def domain_candidates(host: str) -> List[str]:
    """``host``, its apex and ``www.`` + apex, de-duplicated, in that order."""
    host = normalize_host(host)
    if not host:
        return []
    apex = host[4:] if host.startswith("www.") else host
    candidates: List[str] = []
    for candidate in (host, apex, f"www.{apex}"):
        if candidate and candidate not in candidates:
            candidates.append(candidate)
    return candidates


async def resolve_domain(lookups: GuardedStore, host: str) -> Optional[DomainRecord]:
    """First verified + DNS-configured domain among the candidates, else None.

    No fallback beyond the candidate set: an unknown host is NotFound.
    """
    candidates = domain_candidates(host)
    if not candidates:
        lookups.trace.note("domain:empty_host")
        return None

    record = await lookups.fetch("domain", lookups.store.find_verified_domain(candidates))
    if record is None:
        lookups.trace.note(f"domain:not_found:{candidates[0]}")
        return None

    lookups.trace.note(f"domain:{record.domain}")
    return record
