"""Notification request and response schemas"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
import uuid

from app.models.notification import NotificationChannel, NotificationPriority, NotificationType
from .base import BaseSchema

class NotificationResponse(BaseSchema):
    """Notification as shown to its owner"""

    id: uuid.UUID
    title: str
    message: str
    type: str
    priority: NotificationPriority
    channel: NotificationChannel
    is_read: bool
    read_at: Optional[datetime] = None
    is_sent: bool
    sent_at: Optional[datetime] = None
    created_at: datetime
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None

class SearchResult(NotificationResponse):
    """Notification ranked by relevance"""

    score: float
    highlighted_summary: str

class NotificationPreferenceResponse(BaseSchema):
    id: uuid.UUID
    user_id: uuid.UUID
    email_enabled: bool
    sms_enabled: bool
    in_app_enabled: bool
    push_enabled: bool
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone: str
    enabled_types: List[str]

class NotificationPreferenceUpdate(BaseModel):
    """
    Partial preference update

    Only fields explicitly present in the payload are applied; callers read
    them with model_dump(exclude_unset=True).
    """

    email_enabled: Optional[bool] = None
    sms_enabled: Optional[bool] = None
    in_app_enabled: Optional[bool] = None
    push_enabled: Optional[bool] = None
    quiet_hours_start: Optional[time] = None
    quiet_hours_end: Optional[time] = None
    timezone: Optional[str] = None
    enabled_types: Optional[List[str]] = None

    class Config:
        extra = "forbid"

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v):
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @field_validator("enabled_types")
    @classmethod
    def validate_enabled_types(cls, v):
        if v is None:
            return v
        known = {t.value for t in NotificationType}
        normalized = []
        for tag in v:
            tag = str(tag).strip().upper()
            if tag not in known:
                raise ValueError(f"Unknown notification type: {tag}")
            if tag not in normalized:
                normalized.append(tag)
        return normalized

    @field_validator(
        "email_enabled", "sms_enabled", "in_app_enabled", "push_enabled", "timezone", "enabled_types",
        mode="before"
    )
    @classmethod
    def reject_nulls(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

class SendNotificationRequest(BaseModel):
    """Admin test notification request"""

    user_id: Optional[uuid.UUID] = None
    message: str = Field(..., min_length=1, max_length=2000)
    template_data: Optional[Dict[str, Any]] = None

class NotificationStatistics(BaseModel):
    total_notifications: int
    unread_count: int
    read_count: int
    today_count: int
    this_week_count: int
    type_breakdown: Dict[str, int]
