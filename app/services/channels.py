"""
Channel senders

Each sender delivers one rendered notification on one channel and reports the
outcome as a ChannelResult instead of raising, so a failing channel never
stops the others.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from enum import Enum
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio
import logging

from app.core.config import settings
from app.models.notification import Notification, NotificationChannel, NotificationPriority, TITLE_MAX_LENGTH
from app.models.notification_template import NotificationTemplate
from app.models.user import User
from app.services.email_service import EmailService
from app.services.sms_service import SMSService
from app.services.template_service import render
from app.utils.helpers import utcnow

logger = logging.getLogger(__name__)

class DeliveryStatus(str, Enum):
    DELIVERED = "DELIVERED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"

@dataclass
class ChannelResult:
    """Outcome of one channel attempt"""

    channel: NotificationChannel
    status: DeliveryStatus
    error: Optional[str] = None
    notification: Optional[Notification] = None

    @property
    def ok(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED

    @classmethod
    def delivered(cls, channel: NotificationChannel, notification: Optional[Notification] = None) -> "ChannelResult":
        return cls(channel=channel, status=DeliveryStatus.DELIVERED, notification=notification)

    @classmethod
    def failed(cls, channel: NotificationChannel, error: str) -> "ChannelResult":
        return cls(channel=channel, status=DeliveryStatus.FAILED, error=error)

    @classmethod
    def skipped(cls, channel: NotificationChannel, reason: str) -> "ChannelResult":
        return cls(channel=channel, status=DeliveryStatus.SKIPPED, error=reason)

@dataclass
class DeliveryContext:
    """
    Everything a sender needs for one dispatch

    Built once per dispatch with every template field already rendered, so
    senders never touch ORM state.
    """

    user_id: Any
    email: Optional[str]
    phone: Optional[str]
    type_tag: str
    priority: NotificationPriority
    title: str = ""
    message: str = ""
    email_subject: str = ""
    email_body: str = ""
    sms_body: str = ""
    action_url: Optional[str] = None
    action_label: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        user: User,
        template: NotificationTemplate,
        type_tag: str,
        priority: NotificationPriority,
        data: Dict[str, Any],
        **extra: Any
    ) -> "DeliveryContext":
        return cls(
            user_id=user.id,
            email=user.email,
            phone=user.phone,
            type_tag=type_tag,
            priority=priority,
            title=truncate(render(template.title, data), TITLE_MAX_LENGTH),
            message=render(template.in_app_body, data),
            email_subject=render(template.email_subject, data),
            email_body=render(template.email_body, data),
            sms_body=truncate_sms(render(template.sms_body, data)),
            data=snapshot(data),
            **extra
        )

def truncate(text: str, limit: int) -> str:
    """Cut text over limit to limit-3 characters plus '...'"""
    if len(text) > limit:
        return text[:limit - 3] + "..."
    return text

def truncate_sms(text: str, limit: Optional[int] = None) -> str:
    return truncate(text, limit or settings.SMS_MAX_LENGTH)

def snapshot(data: Dict[str, Any]) -> Dict[str, Any]:
    """JSON-safe copy of template data"""
    return {
        str(k): v if isinstance(v, (str, int, float, bool, type(None))) else str(v)
        for k, v in data.items()
    }

class ChannelSender:
    """Base sender; subclasses implement _send"""

    channel: NotificationChannel

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout if timeout is not None else settings.NOTIFICATION_CHANNEL_TIMEOUT_SECONDS

    def recipient(self, ctx: DeliveryContext) -> str:
        return str(ctx.user_id)

    async def _send(self, ctx: DeliveryContext) -> Optional[Notification]:
        raise NotImplementedError

    async def deliver(self, ctx: DeliveryContext) -> ChannelResult:
        try:
            notification = await self._send(ctx)
        except asyncio.TimeoutError:
            error = f"timed out after {self.timeout}s"
            logger.error(f"Failed to send {self.channel.value} notification to {self.recipient(ctx)}: {error}")
            return ChannelResult.failed(self.channel, error)
        except Exception as e:
            logger.error(f"Failed to send {self.channel.value} notification to {self.recipient(ctx)}: {str(e)}")
            return ChannelResult.failed(self.channel, str(e) or e.__class__.__name__)

        return ChannelResult.delivered(self.channel, notification)

class EmailChannelSender(ChannelSender):
    channel = NotificationChannel.EMAIL

    def __init__(self, email_service: EmailService, timeout: Optional[float] = None):
        super().__init__(timeout)
        self.email_service = email_service

    def recipient(self, ctx: DeliveryContext) -> str:
        return ctx.email

    async def _send(self, ctx: DeliveryContext) -> None:
        await asyncio.wait_for(
            self.email_service.send_html_email(ctx.email, ctx.email_subject, ctx.email_body),
            timeout=self.timeout
        )

class SmsChannelSender(ChannelSender):
    channel = NotificationChannel.SMS

    def __init__(self, sms_service: SMSService, timeout: Optional[float] = None):
        super().__init__(timeout)
        self.sms_service = sms_service

    def recipient(self, ctx: DeliveryContext) -> str:
        return ctx.phone

    async def _send(self, ctx: DeliveryContext) -> None:
        await asyncio.wait_for(
            self.sms_service.send_sms(ctx.phone, ctx.sms_body),
            timeout=self.timeout
        )

class InAppChannelSender(ChannelSender):
    """Stores the notification row the user sees in the application"""

    channel = NotificationChannel.IN_APP

    def __init__(self, db: AsyncSession):
        super().__init__()
        self.db = db

    async def _send(self, ctx: DeliveryContext) -> Notification:
        notification = build_record(ctx, NotificationChannel.IN_APP)
        notification.mark_sent(utcnow())

        self.db.add(notification)
        await self.db.flush()

        return notification

class PushChannelSender(ChannelSender):
    """Push delivery is not implemented; always skipped"""

    channel = NotificationChannel.PUSH

    async def deliver(self, ctx: DeliveryContext) -> ChannelResult:
        logger.debug("Push notifications not yet implemented")
        return ChannelResult.skipped(self.channel, "push delivery not implemented")

def build_record(ctx: DeliveryContext, channel: NotificationChannel) -> Notification:
    """Unsent notification row carrying the rendered in-app content"""
    return Notification(
        user_id=ctx.user_id,
        type=ctx.type_tag,
        priority=ctx.priority,
        channel=channel,
        title=ctx.title,
        message=ctx.message,
        action_url=ctx.action_url,
        action_label=ctx.action_label,
        reference_type=ctx.reference_type,
        reference_id=ctx.reference_id,
        template_data=dict(ctx.data),
        is_read=False,
        is_sent=False,
        is_active=True,
    )
