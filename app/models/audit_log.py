"""Audit log model"""

from sqlalchemy import Column, String, Text, JSON, Uuid

from app.models.base import Base, TimestampedModel, UUIDModel, SerializableModel

class AuditLog(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Log user and system actions for audit trail"""

    __tablename__ = "audit_logs"

    actor_id = Column(Uuid(as_uuid=True), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)  # NOTIFICATION_SENT, BULK_DELETE_NOTIFICATIONS, etc.
    entity_type = Column(String(50), nullable=False)  # NOTIFICATION, NOTIFICATION_PREFERENCE, etc.
    entity_id = Column(String(200), nullable=True)
    description = Column(Text)
    old_values = Column(JSON)  # Store previous state
    new_values = Column(JSON)  # Store new state
