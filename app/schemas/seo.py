from typing import List, Optional
from pydantic import BaseModel, field_validator

FALLBACK_SOURCE = "fallback_no_data"


class ResolvedContent(BaseModel):
    """The single SEO payload every downstream stage consumes."""

    title: str
    description: str
    canonical_url: str
    robots: str = "index, follow"
    og_image: Optional[str] = None
    site_name: str
    source_trace: str
    keywords: List[str] = []
    language_code: str = "en"

    # Provenance, surfaced as X-SEO-* debug headers
    website_id: Optional[str] = None
    page_id: Optional[str] = None
    slug: Optional[str] = None
    connection_type: Optional[str] = None
    connection_id: Optional[str] = None
    title_source: Optional[str] = None
    description_source: Optional[str] = None
    image_source: Optional[str] = None

    @field_validator("source_trace")
    @classmethod
    def _trace_required(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("source_trace must be populated")
        return v

    @property
    def is_fallback(self) -> bool:
        return self.source_trace == FALLBACK_SOURCE


class RouteInfo(BaseModel):
    mode: str
    identifier: str
    content_path: str
    step_slug: Optional[str] = None


class ResolutionResponse(BaseModel):
    """JSON body of GET /api/v1/seo/resolve."""

    found: bool
    fallback_reason: Optional[str] = None
    route: RouteInfo
    decisions: List[str] = []
    seo: ResolvedContent


class ClassificationResponse(BaseModel):
    """JSON body of GET /api/v1/seo/classify."""

    host: str
    path: str
    is_automated_client: bool
    route: RouteInfo
