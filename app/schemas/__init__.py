"""Pydantic schemas"""

from .base import BaseSchema
from .notification import (
    NotificationResponse,
    NotificationPreferenceResponse,
    NotificationPreferenceUpdate,
    NotificationStatistics,
    SendNotificationRequest,
    SearchResult,
)

__all__ = [
    "BaseSchema",
    "NotificationResponse",
    "NotificationPreferenceResponse",
    "NotificationPreferenceUpdate",
    "NotificationStatistics",
    "SendNotificationRequest",
    "SearchResult",
]
