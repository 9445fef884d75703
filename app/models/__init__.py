"""Models package initialization"""

from .base import Base
from .user import User
from .notification import (
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from .notification_preference import NotificationPreference
from .notification_template import NotificationTemplate
from .audit_log import AuditLog

__all__ = [
    "Base",
    "User",
    "Notification",
    "NotificationChannel",
    "NotificationPriority",
    "NotificationType",
    "NotificationPreference",
    "NotificationTemplate",
    "AuditLog",
]
