"""
Customer-side loyalty data.

These rows are written by the customer app; the panel only reads them for
dashboard statistics.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String

from loyalty_panel.database import Base
from loyalty_panel.models._ids import new_id
from loyalty_panel.utils.dates import utcnow


class CustomerCard(Base):
    __tablename__ = "customer_cards"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(String(36), nullable=False, index=True)
    stamps_collected = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("idx_customer_card_tenant_created", "tenant_id", "created_at"),)


class Stamp(Base):
    __tablename__ = "stamps"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    card_id = Column(String(36), ForeignKey("customer_cards.id", ondelete="CASCADE"), nullable=False)
    location_id = Column(String(36), ForeignKey("locations.id", ondelete="SET NULL"), nullable=True)
    stamped_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("idx_stamp_tenant_stamped_at", "tenant_id", "stamped_at"),)
