"""Per-user notification preferences"""

from sqlalchemy import Column, String, Boolean, ForeignKey, Time, JSON, Uuid
from datetime import time

from .base import Base, TimestampedModel, UUIDModel, SerializableModel
from .notification import NotificationType

DEFAULT_QUIET_HOURS_START = time(22, 0)
DEFAULT_QUIET_HOURS_END = time(7, 0)

def all_notification_types() -> list:
    return [t.value for t in NotificationType]

class NotificationPreference(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Channel toggles, quiet hours and enabled types for one user"""

    __tablename__ = "notification_preferences"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False, unique=True, index=True)

    # Channel toggles
    email_enabled = Column(Boolean, default=True, nullable=False)
    sms_enabled = Column(Boolean, default=False, nullable=False)
    in_app_enabled = Column(Boolean, default=True, nullable=False)
    push_enabled = Column(Boolean, default=True, nullable=False)

    # Quiet hours (stored, not enforced by the send path)
    quiet_hours_start = Column(Time, nullable=True, default=DEFAULT_QUIET_HOURS_START)
    quiet_hours_end = Column(Time, nullable=True, default=DEFAULT_QUIET_HOURS_END)
    timezone = Column(String(50), nullable=False)

    enabled_types = Column(JSON, default=all_notification_types)
