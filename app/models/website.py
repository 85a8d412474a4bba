import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, JSON, Text, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class Website(Base):
    __tablename__ = "websites"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)
    settings = Column(JSON, nullable=True)              # website-level seo / branding
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    store = relationship("Store", back_populates="websites")
    pages = relationship("WebsitePage", back_populates="website")


class WebsitePage(Base):
    __tablename__ = "website_pages"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    website_id = Column(String(36), ForeignKey("websites.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    slug = Column(String(255), nullable=False, index=True)
    is_homepage = Column(Boolean, default=False)
    is_published = Column(Boolean, default=False)

    # ── SEO overrides ──
    seo_title = Column(String, nullable=True)
    seo_description = Column(Text, nullable=True)
    seo_keywords = Column(JSON, nullable=True)          # list[str]
    og_image = Column(String(1000), nullable=True)
    social_image_url = Column(String(1000), nullable=True)
    preview_image_url = Column(String(1000), nullable=True)
    canonical_url = Column(String(1000), nullable=True)
    meta_robots = Column(String(100), nullable=True)
    language_code = Column(String(10), nullable=True)

    content = Column(JSON, nullable=True)               # page builder document

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    website = relationship("Website", back_populates="pages")
