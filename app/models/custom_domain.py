"""
Custom Domain Models

Per-tenant custom domain records with DNS verification status, and the
connections that mount content (website / funnel / course area) on a domain.
"""
import uuid
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, func
from sqlalchemy.orm import relationship
from app.db.base_class import Base


class CustomDomain(Base):
    __tablename__ = "custom_domains"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    store_id = Column(String(36), ForeignKey("stores.id"), nullable=False, index=True)
    domain = Column(String(255), nullable=False, index=True)

    # Set by the external verification process; both must be true to route
    is_verified = Column(Boolean, default=False)
    dns_configured = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Relationships
    store = relationship("Store", back_populates="custom_domains")
    connections = relationship("DomainConnection", back_populates="domain")


class DomainConnection(Base):
    __tablename__ = "domain_connections"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()), index=True)
    domain_id = Column(String(36), ForeignKey("custom_domains.id"), nullable=False, index=True)
    content_type = Column(String(20), nullable=False)   # website, funnel, course_area
    content_id = Column(String(36), nullable=False)
    path = Column(String(255), nullable=True)
    is_homepage = Column(Boolean, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    domain = relationship("CustomDomain", back_populates="connections")
