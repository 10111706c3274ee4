"""
Tenant model.

A tenant is one business registered in the loyalty platform. It is created
`pending` by onboarding and only becomes `active` (or `rejected`) through the
approval workflow.
"""

import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import relationship

from loyalty_panel.database import Base
from loyalty_panel.models._ids import new_id
from loyalty_panel.utils.dates import utcnow


class TenantStatus(str, enum.Enum):
    pending = "pending"
    active = "active"
    rejected = "rejected"


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    business_type = Column(String(100), nullable=True)
    contact_email = Column(String(255), nullable=True)
    contact_phone = Column(String(32), nullable=True)
    contact_person = Column(String(200), nullable=True)

    logo_url = Column(String(500), nullable=True)
    background_image_url = Column(String(500), nullable=True)
    stamp_icon_url = Column(String(500), nullable=True)

    status = Column(String(20), nullable=False, default=TenantStatus.pending.value)
    rejection_reason = Column(Text, nullable=True)
    change_request_notes = Column(Text, nullable=True)
    approved_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    approved_at = Column(DateTime, nullable=True)
    onboarding_completed = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    billing_info = relationship(
        "TenantBillingInfo", back_populates="tenant", uselist=False, cascade="all, delete-orphan"
    )
    locations = relationship("Location", back_populates="tenant", cascade="all, delete-orphan")
    loyalty_programs = relationship("LoyaltyProgram", back_populates="tenant", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_tenant_status", "status"),
        Index("idx_tenant_created_at", "created_at"),
    )


class TenantBillingInfo(Base):
    __tablename__ = "tenant_billing_info"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, unique=True)
    company_name = Column(String(255), nullable=True)
    nip = Column(String(10), nullable=True, unique=True, index=True)
    street_address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(6), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    tenant = relationship("Tenant", back_populates="billing_info")
