"""Notification templates keyed by notification type"""

from sqlalchemy import Column, String, Text, Boolean

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class NotificationTemplate(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Channel-specific text with {{placeholder}} tokens"""

    __tablename__ = "notification_templates"

    type = Column(String(50), unique=True, nullable=False, index=True)

    title = Column(String(255), nullable=True)
    email_subject = Column(String(255), nullable=True)
    email_body = Column(Text, nullable=True)
    sms_body = Column(String(1000), nullable=True)
    in_app_body = Column(Text, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
