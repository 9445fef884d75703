"""
Notification model for user communications
"""

from sqlalchemy import Column, String, Text, Boolean, ForeignKey, Index, DateTime, Enum, JSON, Uuid
from datetime import datetime
from typing import Optional
import enum

from .base import Base, TimestampedModel, UUIDModel, SerializableModel
from app.utils.helpers import utcnow

TITLE_MAX_LENGTH = 255

class NotificationChannel(str, enum.Enum):
    EMAIL = "EMAIL"
    SMS = "SMS"
    IN_APP = "IN_APP"
    PUSH = "PUSH"

class NotificationPriority(str, enum.Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @classmethod
    def parse(cls, value) -> "NotificationPriority":
        """Map a priority tag to a member; unknown tags fall back to NORMAL"""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            return cls.NORMAL

class NotificationType(str, enum.Enum):
    # Projects
    PROJECT_CREATED = "PROJECT_CREATED"
    PROJECT_UPDATED = "PROJECT_UPDATED"
    PROJECT_ASSIGNED = "PROJECT_ASSIGNED"

    # Budgets
    BUDGET_WARNING = "BUDGET_WARNING"
    BUDGET_CRITICAL = "BUDGET_CRITICAL"
    BUDGET_EXCEEDED = "BUDGET_EXCEEDED"

    # Payments
    PAYMENT_CREATED = "PAYMENT_CREATED"
    PAYMENT_COMPLETED = "PAYMENT_COMPLETED"
    PAYMENT_FAILED = "PAYMENT_FAILED"

    # Quotations and approvals
    QUOTATION_SUBMITTED = "QUOTATION_SUBMITTED"
    QUOTATION_APPROVED = "QUOTATION_APPROVED"
    QUOTATION_REJECTED = "QUOTATION_REJECTED"
    APPROVAL_REQUIRED = "APPROVAL_REQUIRED"

    # Documents and reports
    DOCUMENT_UPLOADED = "DOCUMENT_UPLOADED"
    DOCUMENT_SHARED = "DOCUMENT_SHARED"
    REPORT_READY = "REPORT_READY"

    # System
    SYSTEM_MAINTENANCE = "SYSTEM_MAINTENANCE"
    SYSTEM_UPDATE = "SYSTEM_UPDATE"
    SYSTEM_ERROR = "SYSTEM_ERROR"
    ANNOUNCEMENT = "ANNOUNCEMENT"

class Notification(Base, TimestampedModel, UUIDModel, SerializableModel):
    """User notifications"""

    __tablename__ = "notifications"

    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)

    # Classification
    type = Column(String(50), nullable=False)
    priority = Column(Enum(NotificationPriority), default=NotificationPriority.NORMAL, nullable=False)
    channel = Column(Enum(NotificationChannel), default=NotificationChannel.IN_APP, nullable=False)

    # Notification content
    title = Column(String(TITLE_MAX_LENGTH), nullable=False, default="")
    message = Column(Text, nullable=False, default="")

    # Action
    action_url = Column(String(500), nullable=True)
    action_label = Column(String(100), nullable=True)

    # Referenced business entity (project, payment, ...)
    reference_type = Column(String(50), nullable=True)
    reference_id = Column(String(100), nullable=True)

    # Status
    is_read = Column(Boolean, default=False, nullable=False)
    read_at = Column(DateTime(timezone=True), nullable=True)
    is_sent = Column(Boolean, default=False, nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    scheduled_time = Column(DateTime(timezone=True), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Snapshot of the data the templates were rendered with
    template_data = Column(JSON, default=dict)

    # Indexes
    __table_args__ = (
        Index("idx_notifications_user_unread", "user_id", "is_read"),
        Index("idx_notifications_type", "type"),
        Index("idx_notifications_scheduled", "is_sent", "scheduled_time"),
    )

    def mark_sent(self, now: Optional[datetime] = None) -> None:
        self.is_sent = True
        self.sent_at = now or utcnow()

    def mark_read(self, now: Optional[datetime] = None) -> None:
        """Read implies sent"""
        now = now or utcnow()
        if not self.is_sent:
            self.mark_sent(now)
        self.is_read = True
        self.read_at = now

    def deactivate(self) -> None:
        self.is_active = False
