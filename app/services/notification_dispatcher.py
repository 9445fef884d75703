"""
Central notification dispatcher

A dispatch resolves the recipient, their preferences and the template for the
notification type, computes the channel route and attempts every channel in
order. Channel failures are collected, never raised; only a missing user or a
missing template aborts a dispatch.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from enum import Enum
import logging
import uuid
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    ERPException,
    TemplateNotFoundException,
    UserNotFoundException,
)
from app.models.notification import (
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
    TITLE_MAX_LENGTH,
)
from app.schemas.notification import SendNotificationRequest
from app.services.audit_service import AuditService
from app.services.channels import (
    ChannelResult,
    ChannelSender,
    DeliveryContext,
    DeliveryStatus,
    EmailChannelSender,
    InAppChannelSender,
    PushChannelSender,
    SmsChannelSender,
    build_record,
    truncate,
)
from app.services.email_service import EmailService
from app.services.preference_service import PreferenceService
from app.services.routing import eligible_channels, ordered
from app.services.sms_service import SMSService
from app.services.template_service import TemplateService
from app.services.user_service import UserService
from app.utils.helpers import enum_value, utcnow

logger = logging.getLogger(__name__)

class DispatchStage(str, Enum):
    LOOKUP_USER = "LOOKUP_USER"
    LOOKUP_PREFERENCE = "LOOKUP_PREFERENCE"
    LOOKUP_TEMPLATE = "LOOKUP_TEMPLATE"
    COMPUTE_ROUTE = "COMPUTE_ROUTE"
    SEND_CHANNELS = "SEND_CHANNELS"
    PERSIST_RECORD = "PERSIST_RECORD"
    AUDIT = "AUDIT"
    DONE = "DONE"

    # Fatal
    USER_NOT_FOUND = "USER_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"

@dataclass
class DispatchOutcome:
    """What happened to one dispatch"""

    user_id: Any
    notification_type: str
    priority: NotificationPriority
    stage: DispatchStage = DispatchStage.LOOKUP_USER
    channels: List[NotificationChannel] = field(default_factory=list)
    results: List[ChannelResult] = field(default_factory=list)
    notification_id: Optional[uuid.UUID] = None

    @property
    def delivered_channels(self) -> List[NotificationChannel]:
        return [r.channel for r in self.results if r.ok]

    @property
    def failed_channels(self) -> List[NotificationChannel]:
        return [r.channel for r in self.results if r.status == DeliveryStatus.FAILED]

    @property
    def delivered(self) -> bool:
        return bool(self.delivered_channels)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "type": self.notification_type,
            "priority": self.priority.value,
            "stage": self.stage.value,
            "channels": [c.value for c in self.channels],
            "results": {
                r.channel.value: {"status": r.status.value, "error": r.error}
                for r in self.results
            },
            "notification_id": str(self.notification_id) if self.notification_id else None,
        }

class NotificationDispatcher:
    """Central service for dispatching notifications"""

    def __init__(
        self,
        db: AsyncSession,
        email_service: Optional[EmailService] = None,
        sms_service: Optional[SMSService] = None,
        audit_service: Optional[AuditService] = None,
    ):
        self.db = db
        self.audit_service = audit_service or AuditService(db)
        self.users = UserService(db)
        self.preferences = PreferenceService(db, self.audit_service)
        self.templates = TemplateService(db)

        self.senders: Dict[NotificationChannel, ChannelSender] = {
            NotificationChannel.EMAIL: EmailChannelSender(email_service or EmailService()),
            NotificationChannel.SMS: SmsChannelSender(sms_service or SMSService()),
            NotificationChannel.IN_APP: InAppChannelSender(db),
            NotificationChannel.PUSH: PushChannelSender(),
        }

    async def send(
        self,
        user_id: Any,
        notification_type: Any,
        template_data: Optional[Dict[str, Any]] = None,
        priority: Any = NotificationPriority.NORMAL,
        action_url: Optional[str] = None,
        action_label: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[Any] = None,
    ) -> DispatchOutcome:
        """
        Dispatch one notification to one user

        Args:
            user_id: Recipient
            notification_type: NotificationType or its tag
            template_data: Values for the template placeholders
            priority: NotificationPriority or its tag; unknown tags route as NORMAL
            action_url: Optional link shown with the notification
            action_label: Optional label for the link
            reference_type: Kind of business entity the notification is about
            reference_id: Id of that entity

        Returns:
            DispatchOutcome with the per-channel results

        Raises:
            UserNotFoundException: Recipient does not exist
            TemplateNotFoundException: No active template for the type
        """
        type_tag = enum_value(notification_type)
        resolved_priority = NotificationPriority.parse(priority)
        if resolved_priority.value != str(enum_value(priority)).strip().upper():
            logger.warning(f"Unknown notification priority {priority!r}, routing as NORMAL")

        outcome = DispatchOutcome(user_id=user_id, notification_type=type_tag, priority=resolved_priority)
        data = dict(template_data or {})

        try:
            user = await self.users.find_by_id(user_id)
        except UserNotFoundException:
            self._fail(outcome, DispatchStage.USER_NOT_FOUND)
            raise

        outcome.stage = DispatchStage.LOOKUP_PREFERENCE
        preference = await self.preferences.get_or_create(user.id)

        outcome.stage = DispatchStage.LOOKUP_TEMPLATE
        try:
            template = await self.templates.resolve(type_tag)
        except TemplateNotFoundException:
            self._fail(outcome, DispatchStage.TEMPLATE_NOT_FOUND)
            raise

        outcome.stage = DispatchStage.COMPUTE_ROUTE
        outcome.channels = ordered(eligible_channels(resolved_priority, preference, user))
        if not outcome.channels:
            logger.info(f"No eligible channels for {type_tag} notification to user {user_id}")
            outcome.stage = DispatchStage.DONE
            return outcome

        ctx = DeliveryContext.build(
            user,
            template,
            type_tag,
            resolved_priority,
            data,
            action_url=action_url,
            action_label=action_label,
            reference_type=reference_type,
            reference_id=str(reference_id) if reference_id is not None else None,
        )

        outcome.stage = DispatchStage.SEND_CHANNELS
        for channel in outcome.channels:
            outcome.results.append(await self.senders[channel].deliver(ctx))

        outcome.stage = DispatchStage.PERSIST_RECORD
        record = await self._persist_record(ctx, outcome)
        outcome.notification_id = record.id

        outcome.stage = DispatchStage.AUDIT
        await self._audit(
            actor_id=ctx.user_id,
            action="NOTIFICATION_SENT",
            entity_id=record.id,
            description=f"Notification sent: {type_tag}",
            new_values={
                "type": type_tag,
                "priority": resolved_priority.value,
                "channels": [c.value for c in outcome.delivered_channels],
            },
        )

        outcome.stage = DispatchStage.DONE
        logger.info(
            f"Dispatched {type_tag} notification to user {user_id} "
            f"via {', '.join(c.value for c in outcome.delivered_channels) or 'no channel'}"
        )
        return outcome

    async def create_in_app(
        self,
        user_id: Any,
        title: str,
        message: str,
        notification_type: Any,
        priority: Any = NotificationPriority.NORMAL,
        action_url: Optional[str] = None,
        action_label: Optional[str] = None,
        reference_type: Optional[str] = None,
        reference_id: Optional[Any] = None,
        scheduled_time: Optional[datetime] = None,
    ) -> Notification:
        """
        Store an in-app notification directly, bypassing preferences

        A scheduled_time in the future leaves the row unsent until the
        scheduled sweep picks it up.
        """
        user = await self.users.find_by_id(user_id)

        notification = Notification(
            user_id=user.id,
            type=enum_value(notification_type),
            priority=NotificationPriority.parse(priority),
            channel=NotificationChannel.IN_APP,
            title=truncate(title, TITLE_MAX_LENGTH),
            message=message,
            action_url=action_url,
            action_label=action_label,
            reference_type=reference_type,
            reference_id=str(reference_id) if reference_id is not None else None,
            template_data={},
            is_read=False,
            is_sent=False,
            is_active=True,
        )

        now = utcnow()
        if scheduled_time is not None and scheduled_time > now:
            notification.scheduled_time = scheduled_time
        else:
            notification.mark_sent(now)

        self.db.add(notification)
        await self.db.commit()

        logger.info(f"Created in-app notification {notification.id} for user {user_id}")
        return notification

    async def send_bulk(
        self,
        notification_type: Any,
        title: str,
        message: str,
        priority: Any = NotificationPriority.NORMAL,
    ) -> Dict[str, int]:
        """Dispatch to every active user"""
        recipients = [(u.id, u.full_name) for u in await self.users.find_all_active()]

        sent = failed = 0
        for recipient_id, full_name in recipients:
            data = {"userName": full_name, "title": title, "message": message}
            try:
                await self.send(recipient_id, notification_type, data, priority)
                sent += 1
            except ERPException as e:
                failed += 1
                logger.error(f"Bulk notification to user {recipient_id} failed: {e.detail}")

        logger.info(f"Bulk {enum_value(notification_type)} notification: {sent} sent, {failed} failed")
        return {"total": len(recipients), "sent": sent, "failed": failed}

    async def send_test_notification(
        self,
        request: SendNotificationRequest,
        admin_user_id: Any,
    ) -> DispatchOutcome:
        """Send an announcement to a user (or the admin) and audit it"""
        target = request.user_id or admin_user_id

        data = {"message": request.message, "title": "Test Notification"}
        data.update(request.template_data or {})

        outcome = await self.send(target, NotificationType.ANNOUNCEMENT, data, NotificationPriority.NORMAL)

        await self._audit(
            actor_id=admin_user_id,
            action="SEND_TEST_NOTIFICATION",
            entity_id=outcome.notification_id,
            description=f"Sent test notification to user {target}",
            new_values={"user_id": str(target), "message": request.message},
        )
        return outcome

    async def _persist_record(self, ctx: DeliveryContext, outcome: DispatchOutcome) -> Notification:
        """Commit the one record that represents this dispatch"""
        in_app = next(
            (r for r in outcome.results if r.channel == NotificationChannel.IN_APP),
            None
        )

        try:
            if in_app is not None and in_app.notification is not None:
                record = in_app.notification
            else:
                if in_app is not None:
                    # The failed flush left the transaction unusable
                    await self.db.rollback()

                external = [c for c in outcome.channels if c != NotificationChannel.IN_APP]
                record = build_record(ctx, external[0] if external else NotificationChannel.IN_APP)
                if outcome.delivered:
                    record.mark_sent(utcnow())
                self.db.add(record)

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.exception(f"Failed to persist {ctx.type_tag} notification for user {ctx.user_id}")
            raise

        return record

    async def _audit(self, actor_id: Any, action: str, entity_id: Any, description: str, new_values: Dict[str, Any]) -> None:
        try:
            await self.audit_service.log_action(
                actor_id=actor_id,
                action=action,
                entity_type="NOTIFICATION",
                entity_id=entity_id,
                description=description,
                new_values=new_values,
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to write {action} audit entry: {str(e)}")

    def _fail(self, outcome: DispatchOutcome, stage: DispatchStage) -> None:
        outcome.stage = stage
        logger.error(
            f"Notification {outcome.notification_type} to user {outcome.user_id} "
            f"aborted: {stage.value}"
        )
