import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Text, func
from app.db.base_class import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String(255), nullable=False, index=True)
    is_active = Column(Boolean, default=True)
    description = Column(Text, nullable=True)
    images = Column(JSON, nullable=True)                # list of image URLs

    seo_title = Column(String, nullable=True)
    seo_description = Column(Text, nullable=True)
    seo_keywords = Column(JSON, nullable=True)
    og_image = Column(String(1000), nullable=True)
    social_image_url = Column(String(1000), nullable=True)
    canonical_url = Column(String(1000), nullable=True)
    meta_robots = Column(String(100), nullable=True)
    language_code = Column(String(10), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PlatformSeoPage(Base):
    """SEO entries for the platform's own marketing hosts."""

    __tablename__ = "seo_pages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    page_slug = Column(String(255), unique=True, nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    og_image = Column(String(1000), nullable=True)
    keywords = Column(JSON, nullable=True)
