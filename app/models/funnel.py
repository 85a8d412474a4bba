import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Integer, JSON, Text, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class Funnel(Base):
    __tablename__ = "funnels"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String(100), nullable=False, index=True)
    is_active = Column(Boolean, default=True)

    seo_title = Column(String, nullable=True)
    seo_description = Column(Text, nullable=True)
    seo_keywords = Column(JSON, nullable=True)
    og_image = Column(String(1000), nullable=True)
    social_image_url = Column(String(1000), nullable=True)
    canonical_url = Column(String(1000), nullable=True)
    meta_robots = Column(String(100), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    store = relationship("Store", back_populates="funnels")
    steps = relationship("FunnelStep", back_populates="funnel")


class FunnelStep(Base):
    __tablename__ = "funnel_steps"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    funnel_id = Column(String(36), ForeignKey("funnels.id"), nullable=False, index=True)
    title = Column(String, nullable=False)
    slug = Column(String(255), nullable=False, index=True)
    step_order = Column(Integer, default=0)
    step_type = Column(String(20), default="landing")   # landing, checkout, upsell, downsell, thank_you
    is_homepage = Column(Boolean, default=False)
    is_published = Column(Boolean, default=False)

    seo_title = Column(String, nullable=True)
    seo_description = Column(Text, nullable=True)
    seo_keywords = Column(JSON, nullable=True)
    og_image = Column(String(1000), nullable=True)
    social_image_url = Column(String(1000), nullable=True)
    preview_image_url = Column(String(1000), nullable=True)
    canonical_url = Column(String(1000), nullable=True)
    meta_robots = Column(String(100), nullable=True)
    language_code = Column(String(10), nullable=True)

    content = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    funnel = relationship("Funnel", back_populates="steps")
