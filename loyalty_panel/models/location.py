from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from loyalty_panel.database import Base
from loyalty_panel.models._ids import new_id
from loyalty_panel.utils.dates import utcnow


class Location(Base):
    __tablename__ = "locations"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    address = Column(String(500), nullable=False)
    # Printed on the in-store QR code; never changes after creation
    scan_code = Column(String(100), nullable=False, unique=True, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    tenant = relationship("Tenant", back_populates="locations")
