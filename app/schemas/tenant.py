import logging
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

logger = logging.getLogger("pageroute.schemas")


def clean_keywords(value: Any) -> List[str]:
    """Accept a list of strings or a comma-separated string; drop anything else."""
    if value is None:
        return []
    if isinstance(value, str):
        return [k.strip() for k in value.split(",") if k.strip()]
    if isinstance(value, (list, tuple)):
        return [k.strip() for k in value if isinstance(k, str) and k.strip()]
    return []


class SeoDefaults(BaseModel):
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    og_image: Optional[str] = None
    social_image_url: Optional[str] = None
    keywords: List[str] = []

    @field_validator("keywords", mode="before")
    @classmethod
    def _parse_keywords(cls, v: Any) -> List[str]:
        return clean_keywords(v)


class BrandingDefaults(BaseModel):
    model_config = ConfigDict(extra="ignore")

    social_image_url: Optional[str] = None
    logo: Optional[str] = None
    favicon: Optional[str] = None
    favicon_url: Optional[str] = None


class SiteSettings(BaseModel):
    """Typed view of the nested ``settings`` JSON carried by stores and websites.

    Fallback order for images is exposed through the ``*_candidates`` helpers
    so callers never walk the raw JSON themselves.
    """

    model_config = ConfigDict(extra="ignore")

    seo: SeoDefaults = SeoDefaults()
    branding: BrandingDefaults = BrandingDefaults()
    favicon: Optional[str] = None
    favicon_url: Optional[str] = None

    @classmethod
    def from_json(cls, raw: Any) -> "SiteSettings":
        """Build settings from untrusted JSON. Each section degrades on its own."""
        if isinstance(raw, SiteSettings):
            return raw
        if not isinstance(raw, dict):
            return cls()

        sections: dict[str, Any] = {}
        for name, model in (("seo", SeoDefaults), ("branding", BrandingDefaults)):
            value = raw.get(name)
            if not isinstance(value, dict):
                continue
            try:
                sections[name] = model.model_validate(value)
            except ValidationError as e:
                logger.warning("Ignoring malformed settings.%s: %s", name, e.errors()[:1])

        for name in ("favicon", "favicon_url"):
            if isinstance(raw.get(name), str):
                sections[name] = raw[name]

        return cls(**sections)

    def social_image_candidates(self) -> List[Optional[str]]:
        return [self.seo.og_image, self.seo.social_image_url]

    def branding_image_candidates(self) -> List[Optional[str]]:
        return [self.branding.social_image_url, self.branding.logo]

    def favicon_candidates(self) -> List[Optional[str]]:
        return [self.branding.favicon, self.branding.favicon_url, self.favicon, self.favicon_url]


class TenantRecord(BaseModel):
    """Read-only view of a store as the resolution engine sees it."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    slug: Optional[str] = None
    is_active: bool = True
    settings: SiteSettings = SiteSettings()

    @field_validator("settings", mode="before")
    @classmethod
    def _parse_settings(cls, v: Any) -> SiteSettings:
        return SiteSettings.from_json(v)
