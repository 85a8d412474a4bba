"""
Content records consumed by the resolution engine.

Every content store adapter returns these types, whatever storage sits
behind it. ``ContentType`` is the closed set of content families a domain
connection can mount.
"""
from enum import Enum
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, field_validator

from app.schemas.tenant import SiteSettings, clean_keywords


class ContentType(str, Enum):
    WEBSITE = "website"
    FUNNEL = "funnel"
    COURSE_AREA = "course_area"


class StepType(str, Enum):
    LANDING = "landing"
    CHECKOUT = "checkout"
    UPSELL = "upsell"
    DOWNSELL = "downsell"
    THANK_YOU = "thank_you"


class _Record(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class DomainRecord(_Record):
    id: str
    domain: str
    tenant_id: str
    is_verified: bool = False
    dns_configured: bool = False


class ConnectionRecord(_Record):
    id: str
    domain_id: str
    content_type: ContentType
    content_id: str
    path: Optional[str] = None
    is_homepage: bool = False


class SeoFields(_Record):
    """SEO overrides shared by pages, funnel steps and products."""

    title: str = ""
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: List[str] = []
    og_image: Optional[str] = None
    social_image_url: Optional[str] = None
    preview_image_url: Optional[str] = None
    canonical_url: Optional[str] = None
    meta_robots: Optional[str] = None
    language_code: Optional[str] = None
    content: Any = None

    @field_validator("seo_keywords", mode="before")
    @classmethod
    def _parse_keywords(cls, v: Any) -> List[str]:
        return clean_keywords(v)


class PageRecord(SeoFields):
    id: str
    website_id: str
    slug: str
    is_homepage: bool = False
    is_published: bool = False


class StepRecord(SeoFields):
    id: str
    funnel_id: str
    slug: str
    step_order: int = 0
    step_type: StepType = StepType.LANDING
    is_homepage: bool = False
    is_published: bool = False


class ProductRecord(SeoFields):
    id: str
    store_id: str
    slug: str
    is_active: bool = True


class WebsiteRecord(_Record):
    id: str
    store_id: str
    name: str
    slug: Optional[str] = None
    description: Optional[str] = None
    settings: SiteSettings = SiteSettings()

    @field_validator("settings", mode="before")
    @classmethod
    def _parse_settings(cls, v: Any) -> SiteSettings:
        return SiteSettings.from_json(v)


class FunnelRecord(_Record):
    id: str
    store_id: str
    name: str
    slug: Optional[str] = None
    is_active: bool = True
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: List[str] = []
    og_image: Optional[str] = None
    social_image_url: Optional[str] = None
    canonical_url: Optional[str] = None
    meta_robots: Optional[str] = None

    @field_validator("seo_keywords", mode="before")
    @classmethod
    def _parse_keywords(cls, v: Any) -> List[str]:
        return clean_keywords(v)


class PlatformPageRecord(_Record):
    page_slug: str
    title: str
    description: Optional[str] = None
    og_image: Optional[str] = None
    keywords: List[str] = []

    @field_validator("keywords", mode="before")
    @classmethod
    def _parse_keywords(cls, v: Any) -> List[str]:
        return clean_keywords(v)
