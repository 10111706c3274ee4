from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from loyalty_panel.database import Base
from loyalty_panel.models._ids import new_id
from loyalty_panel.utils.dates import utcnow

MIN_STAMPS_REQUIRED = 3
MAX_STAMPS_REQUIRED = 20


class LoyaltyProgram(Base):
    __tablename__ = "loyalty_programs"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    stamps_required = Column(Integer, nullable=False)
    reward_description = Column(String(500), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    tenant = relationship("Tenant", back_populates="loyalty_programs")

    __table_args__ = (
        CheckConstraint(
            f"stamps_required BETWEEN {MIN_STAMPS_REQUIRED} AND {MAX_STAMPS_REQUIRED}",
            name="ck_loyalty_program_stamps_required",
        ),
        # At most one active program per tenant
        Index(
            "uq_loyalty_program_active_per_tenant",
            "tenant_id",
            unique=True,
            postgresql_where=text("active"),
            sqlite_where=text("active = 1"),
        ),
    )
