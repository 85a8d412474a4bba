"""
SEO metadata extraction
=======================

Turns a resolved page/step (or a bare website/funnel/store when resolution
stopped above page level) into a ``ResolvedContent``. Every field walks a
fixed fallback chain, first non-empty value wins:

  title        page.seo_title → page.title → content SEO title → content name → store name → host
  description  page.seo_description → summary of page.content → content description
               → "Sales funnel: {name}" (funnel landing only) → "Welcome to {store name}"
  image        page.social_image_url → og_image → preview_image_url → content image
               → store seo image → store branding image → store favicon
  canonical    page.canonical_url → https://{host}{path}
  robots       page.meta_robots → content meta_robots → "index, follow"

Only absolute http(s) image URLs are accepted; crawlers ignore relative ones.
"""
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from app.config import settings
from app.schemas.content import FunnelRecord, PlatformPageRecord, SeoFields, WebsiteRecord
from app.schemas.seo import FALLBACK_SOURCE, ResolvedContent
from app.schemas.tenant import TenantRecord

SUMMARY_MAX_LENGTH = 155
DEFAULT_ROBOTS = "index, follow"
DEFAULT_LANGUAGE = "en"

TEXT_NODE_TYPES = frozenset({"text", "paragraph", "heading"})
_CHILD_KEYS = ("sections", "blocks", "rows", "columns", "elements")

_TAG = re.compile(r"<[^>]*>")
_ENTITY = re.compile(r"&(nbsp|amp|lt|gt|quot|#0?39);")
_ENTITIES = {"nbsp": " ", "amp": "&", "lt": "<", "gt": ">", "quot": '"', "#39": "'", "#039": "'"}
_WHITESPACE = re.compile(r"\s+")
_SENTENCE = re.compile(r"[^.!?]+[.!?]*")
_TERMINATORS = ".!?"

Candidate = Tuple[str, Any]


# ═══════════════════════════════════════════
#  Content summary
# ═══════════════════════════════════════════

def _node_text(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and isinstance(value.get("text"), str):
        return value["text"]
    return None


def _collect_text(node: Any, out: List[str]) -> None:
    if isinstance(node, str):
        out.append(node)
        return
    if isinstance(node, list):
        for child in node:
            _collect_text(child, out)
        return
    if not isinstance(node, dict):
        return

    node_type = node.get("type")
    if node_type is None or node_type in TEXT_NODE_TYPES:
        text = _node_text(node.get("content")) or _node_text(node.get("text"))
        if text:
            out.append(text)

    for key in _CHILD_KEYS:
        children = node.get(key)
        if isinstance(children, list):
            for child in children:
                _collect_text(child, out)


def clean_text(text: str) -> str:
    """Strip tags, decode the standard entities, collapse whitespace."""
    text = _TAG.sub(" ", text)
    text = _ENTITY.sub(lambda m: _ENTITIES[m.group(1)], text)
    return _WHITESPACE.sub(" ", text).strip()


def extract_content_summary(content: Any, max_length: int = SUMMARY_MAX_LENGTH) -> str:
    """Build a meta description from a page-builder document.

    Whole sentences are appended while they fit in ``max_length``. The result
    always ends in terminal punctuation; a single sentence longer than the
    limit is cut to ``max_length - 3`` characters plus ``...``.
    """
    parts: List[str] = []
    if isinstance(content, dict) and not isinstance(content.get("sections"), list) and "type" not in content:
        content = [content]
    _collect_text(content, parts)

    text = clean_text(" ".join(parts))
    if not text:
        return ""

    sentences = [s.strip() for s in _SENTENCE.findall(text) if s.strip()]
    if not sentences:
        return ""

    result = sentences[0]
    for sentence in sentences[1:]:
        candidate = f"{result} {sentence}"
        needs_terminator = 0 if sentence[-1] in _TERMINATORS else 1
        if len(candidate) + needs_terminator > max_length:
            break
        result = candidate

    if result[-1] not in _TERMINATORS:
        result += "."

    if len(result) > max_length:
        result = result[: max_length - 3] + "..."
    return result


# ═══════════════════════════════════════════
#  Fallback chains
# ═══════════════════════════════════════════

def normalize_image_url(url: Any) -> Optional[str]:
    if not isinstance(url, str):
        return None
    url = url.strip()
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return None


def first_text(candidates: Iterable[Candidate]) -> Tuple[Optional[str], Optional[str]]:
    for source, value in candidates:
        if isinstance(value, str) and value.strip():
            return source, value.strip()
    return None, None


def first_image(candidates: Iterable[Candidate]) -> Tuple[Optional[str], Optional[str]]:
    for source, value in candidates:
        url = normalize_image_url(value)
        if url:
            return source, url
    return None, None


@dataclass
class ContentProfile:
    """Content-level SEO defaults of a website, funnel, or platform page."""

    kind: str
    id: Optional[str]
    name: str
    seo_title: Optional[str] = None
    description: Optional[str] = None
    images: List[Candidate] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    canonical_url: Optional[str] = None
    meta_robots: Optional[str] = None
    landing_description: Optional[str] = None

    @classmethod
    def from_website(cls, website: WebsiteRecord) -> "ContentProfile":
        s = website.settings
        images = [("website.settings.seo", url) for url in s.social_image_candidates()]
        images += [("website.settings.branding", url) for url in s.branding_image_candidates()]
        return cls(
            kind="website",
            id=website.id,
            name=website.name,
            seo_title=s.seo.title,
            description=s.seo.description or website.description,
            images=images,
            keywords=list(s.seo.keywords),
        )

    @classmethod
    def from_funnel(cls, funnel: FunnelRecord) -> "ContentProfile":
        return cls(
            kind="funnel",
            id=funnel.id,
            name=funnel.name,
            seo_title=funnel.seo_title,
            description=funnel.seo_description,
            images=[("funnel.social_image_url", funnel.social_image_url), ("funnel.og_image", funnel.og_image)],
            keywords=list(funnel.seo_keywords),
            canonical_url=funnel.canonical_url,
            meta_robots=funnel.meta_robots,
            landing_description=f"Sales funnel: {funnel.name}",
        )

    @classmethod
    def from_platform_page(cls, page: PlatformPageRecord) -> "ContentProfile":
        return cls(
            kind="platform",
            id=None,
            name=settings.PLATFORM_SITE_NAME,
            seo_title=page.title,
            description=page.description,
            images=[("seo_pages.og_image", page.og_image)],
            keywords=list(page.keywords),
        )


def synthesize_canonical(host: str, request_path: str) -> str:
    return f"https://{host}{request_path or '/'}"


def build_resolved_content(
    *,
    host: str,
    request_path: str,
    source_trace: str,
    page: Optional[SeoFields] = None,
    page_label: str = "page",
    content: Optional[ContentProfile] = None,
    tenant: Optional[TenantRecord] = None,
    **provenance: Optional[str],
) -> ResolvedContent:
    """Apply the fallback chains. ``provenance`` feeds the debug headers."""
    tenant_settings = tenant.settings if tenant else None

    # ── title ──
    title_candidates: List[Candidate] = []
    if page is not None:
        title_candidates += [(f"{page_label}.seo_title", page.seo_title), (f"{page_label}.title", page.title)]
    if content is not None:
        title_candidates += [(f"{content.kind}.seo_title", content.seo_title), (f"{content.kind}.name", content.name)]
    elif tenant_settings is not None:
        title_candidates.append(("store.settings.seo.title", tenant_settings.seo.title))
    if tenant is not None:
        title_candidates.append(("store.name", tenant.name))
    title_candidates.append(("host", host or settings.PLATFORM_SITE_NAME))
    title_source, title = first_text(title_candidates)

    # ── description ──
    desc_candidates: List[Candidate] = []
    if page is not None:
        desc_candidates += [
            (f"{page_label}.seo_description", page.seo_description),
            (f"{page_label}.content", extract_content_summary(page.content)),
        ]
    if content is not None:
        desc_candidates.append((f"{content.kind}.description", content.description))
        if page is None:
            desc_candidates.append((f"{content.kind}.landing", content.landing_description))
    elif tenant_settings is not None:
        desc_candidates.append(("store.settings.seo.description", tenant_settings.seo.description))
    if tenant is not None:
        desc_candidates.append(("store.default", f"Welcome to {tenant.name}"))
    elif content is not None:
        desc_candidates.append((f"{content.kind}.default", f"Welcome to {content.name}"))
    desc_candidates.append(("host.default", f"Preview of {host}"))
    description_source, description = first_text(desc_candidates)

    # ── image ──
    image_candidates: List[Candidate] = []
    if page is not None:
        image_candidates += [
            (f"{page_label}.social_image_url", page.social_image_url),
            (f"{page_label}.og_image", page.og_image),
            (f"{page_label}.preview_image_url", page.preview_image_url),
        ]
    if content is not None:
        image_candidates += content.images
    if tenant_settings is not None:
        image_candidates += [("store.settings.seo", url) for url in tenant_settings.social_image_candidates()]
        image_candidates += [("store.settings.branding", url) for url in tenant_settings.branding_image_candidates()]
        image_candidates += [("store.settings.favicon", url) for url in tenant_settings.favicon_candidates()]
    image_source, image = first_image(image_candidates)

    # ── canonical / robots / keywords ──
    canonical_candidates: List[Candidate] = []
    if page is not None:
        canonical_candidates.append(("page", page.canonical_url))
    elif content is not None:
        canonical_candidates.append(("content", content.canonical_url))
    _, canonical = first_text(canonical_candidates)

    _, robots = first_text([
        ("page", page.meta_robots if page is not None else None),
        ("content", content.meta_robots if content is not None else None),
    ])

    keywords: List[str] = []
    for option in (
        page.seo_keywords if page is not None else None,
        content.keywords if content is not None else None,
        tenant_settings.seo.keywords if tenant_settings is not None else None,
    ):
        if option:
            keywords = list(option)
            break

    site_name = (content.name if content is not None else None) or (tenant.name if tenant else None) or host or settings.PLATFORM_SITE_NAME

    return ResolvedContent(
        title=title,
        description=description,
        canonical_url=canonical or synthesize_canonical(host, request_path),
        robots=robots or DEFAULT_ROBOTS,
        og_image=image,
        site_name=site_name,
        source_trace=source_trace,
        keywords=keywords,
        language_code=(page.language_code if page is not None and page.language_code else DEFAULT_LANGUAGE),
        title_source=title_source,
        description_source=description_source,
        image_source=image_source or "none",
        **provenance,
    )


def fallback_content(host: str, request_path: str) -> ResolvedContent:
    """Minimal document for requests nothing resolved."""
    name = host or settings.PLATFORM_SITE_NAME
    return ResolvedContent(
        title=name,
        description=f"Preview of {name}",
        canonical_url=synthesize_canonical(host, request_path) if host else request_path or "/",
        robots=DEFAULT_ROBOTS,
        site_name=name,
        source_trace=FALLBACK_SOURCE,
    )
