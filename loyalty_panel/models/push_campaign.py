from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from loyalty_panel.database import Base
from loyalty_panel.models._ids import new_id
from loyalty_panel.utils.dates import utcnow


# Sent push campaigns; rows are never updated once written
class PushCampaign(Base):
    __tablename__ = "push_campaigns"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    onesignal_notification_id = Column(String(64), nullable=True)
    name = Column(String(200), nullable=False)
    message_title = Column(String(200), nullable=False)
    message_body = Column(Text, nullable=False)
    segment_type = Column(String(32), nullable=False)
    target_count = Column(Integer, nullable=False, default=0)
    sent_at = Column(DateTime, nullable=False, default=utcnow)
    created_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (Index("idx_push_campaign_tenant_created", "tenant_id", "created_at"),)


# Preview notifications that could not be cancelled and may still be delivered
class PreviewCancelFailure(Base):
    __tablename__ = "push_preview_cancel_failures"

    id = Column(String(36), primary_key=True, default=new_id)
    notification_id = Column(String(64), nullable=False, index=True)
    tenant_id = Column(String(36), nullable=True)
    segment_type = Column(String(32), nullable=False)
    error = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    resolved_at = Column(DateTime, nullable=True)
