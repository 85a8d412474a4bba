import uuid
from sqlalchemy import Column, String, Boolean, DateTime, JSON, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class Store(Base):
    """A tenant. Owns domains, websites, funnels and products."""

    __tablename__ = "stores"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    name = Column(String, index=True, nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    is_active = Column(Boolean, default=True)

    # Nested JSON: seo.{title,description,og_image,keywords}, branding.{logo,favicon,...}
    settings = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    custom_domains = relationship("CustomDomain", back_populates="store")
    websites = relationship("Website", back_populates="store")
    funnels = relationship("Funnel", back_populates="store")
