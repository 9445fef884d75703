"""Dispatch orchestration: routing, fault isolation, persistence and audit."""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import NotificationDeliveryError, TemplateNotFoundException, UserNotFoundException
from app.models import (
    AuditLog,
    Notification,
    NotificationChannel,
    NotificationPriority,
    NotificationType,
)
from app.models.notification import TITLE_MAX_LENGTH
from app.schemas.notification import SendNotificationRequest
from app.services.audit_service import AuditService
from app.services.channels import DeliveryStatus
from app.services.notification_dispatcher import DispatchStage, NotificationDispatcher
from app.services.preference_service import PreferenceService
from app.utils.helpers import utcnow
from tests.conftest import audit_actions, count_rows, make_user, notifications_for

PAYMENT_DATA = {"reference": "P-1", "amount": "500 SAR", "userName": "Ana Silva"}
BUDGET_DATA = {"project": "Tower B", "percent": 97}

ALL_OFF = {"email_enabled": False, "sms_enabled": False, "in_app_enabled": False, "push_enabled": False}


async def test_high_priority_payment_reaches_email_and_in_app(db, user, templates, dispatcher, email_service, sms_service):
    outcome = await dispatcher.send(
        user.id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA, NotificationPriority.HIGH
    )

    assert outcome.stage == DispatchStage.DONE
    assert outcome.channels == [NotificationChannel.EMAIL, NotificationChannel.IN_APP]
    assert outcome.delivered_channels == [NotificationChannel.EMAIL, NotificationChannel.IN_APP]

    rows = await notifications_for(db, user.id)
    assert len(rows) == 1
    assert rows[0].id == outcome.notification_id
    assert rows[0].channel == NotificationChannel.IN_APP
    assert rows[0].is_sent is True
    assert rows[0].sent_at is not None
    assert rows[0].title == "Payment P-1 completed"
    assert rows[0].message == "Payment of 500 SAR completed"
    assert rows[0].template_data == PAYMENT_DATA

    assert await audit_actions(db) == ["NOTIFICATION_SENT"]
    entry = (await db.execute(AuditLog.__table__.select())).one()
    assert entry.entity_id == str(outcome.notification_id)

    email_service.send_html_email.assert_awaited_once_with(
        "a@x.com", "Payment P-1 received", "<p>Hello Ana Silva, we received 500 SAR.</p>"
    )
    sms_service.send_sms.assert_not_awaited()


async def test_critical_bypasses_disabled_toggles(db, reachable_user, templates, dispatcher, email_service, sms_service):
    await PreferenceService(db).update(reachable_user.id, ALL_OFF)

    outcome = await dispatcher.send(
        reachable_user.id, NotificationType.BUDGET_CRITICAL, BUDGET_DATA, NotificationPriority.CRITICAL
    )

    assert outcome.channels == [
        NotificationChannel.EMAIL,
        NotificationChannel.SMS,
        NotificationChannel.IN_APP,
        NotificationChannel.PUSH,
    ]
    email_service.send_html_email.assert_awaited_once()
    sms_service.send_sms.assert_awaited_once_with("+966501234567", "Tower B budget at 97%")

    push = [r for r in outcome.results if r.channel == NotificationChannel.PUSH]
    assert push[0].status == DeliveryStatus.SKIPPED


async def test_low_priority_never_uses_external_channels(db, reachable_user, templates, dispatcher, email_service, sms_service):
    await PreferenceService(db).update(reachable_user.id, {"email_enabled": True, "sms_enabled": True})

    outcome = await dispatcher.send(
        reachable_user.id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA, NotificationPriority.LOW
    )

    assert outcome.channels == [NotificationChannel.IN_APP]
    email_service.send_html_email.assert_not_awaited()
    sms_service.send_sms.assert_not_awaited()


async def test_unknown_priority_routes_as_normal(db, user, templates, dispatcher, email_service):
    outcome = await dispatcher.send(user.id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA, "URGENT")

    assert outcome.priority == NotificationPriority.NORMAL
    assert outcome.channels == [NotificationChannel.IN_APP]
    email_service.send_html_email.assert_not_awaited()


async def test_unregistered_type_aborts_without_side_effects(db, user, templates, dispatcher, email_service):
    with pytest.raises(TemplateNotFoundException):
        await dispatcher.send(user.id, NotificationType.REPORT_READY, {}, NotificationPriority.HIGH)

    assert await count_rows(db, Notification) == 0
    assert await count_rows(db, AuditLog) == 0
    email_service.send_html_email.assert_not_awaited()


async def test_unknown_user_aborts(db, templates, dispatcher, email_service):
    with pytest.raises(UserNotFoundException):
        await dispatcher.send("3f1c1d5e-0000-4000-8000-000000000000", NotificationType.PAYMENT_COMPLETED)

    assert await count_rows(db, Notification) == 0
    assert await count_rows(db, AuditLog) == 0


async def test_email_failure_does_not_block_in_app(db, user, templates, dispatcher, email_service):
    email_service.send_html_email.side_effect = NotificationDeliveryError("EMAIL", "a@x.com", "connection refused")

    outcome = await dispatcher.send(
        user.id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA, NotificationPriority.HIGH
    )

    assert outcome.stage == DispatchStage.DONE
    assert outcome.failed_channels == [NotificationChannel.EMAIL]
    assert outcome.delivered_channels == [NotificationChannel.IN_APP]

    rows = await notifications_for(db, user.id)
    assert len(rows) == 1
    assert rows[0].is_sent is True
    assert await audit_actions(db) == ["NOTIFICATION_SENT"]


async def test_external_only_route_persists_delivery_record(db, user, templates, dispatcher):
    await PreferenceService(db).update(user.id, {"in_app_enabled": False})

    outcome = await dispatcher.send(
        user.id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA, NotificationPriority.HIGH
    )

    rows = await notifications_for(db, user.id)
    assert outcome.channels == [NotificationChannel.EMAIL]
    assert len(rows) == 1
    assert rows[0].channel == NotificationChannel.EMAIL
    assert rows[0].is_sent is True


async def test_failed_external_only_route_is_recorded_unsent(db, user, templates, dispatcher, email_service):
    await PreferenceService(db).update(user.id, {"in_app_enabled": False})
    email_service.send_html_email.side_effect = NotificationDeliveryError("EMAIL", "a@x.com", "timeout")

    outcome = await dispatcher.send(
        user.id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA, NotificationPriority.HIGH
    )

    rows = await notifications_for(db, user.id)
    assert not outcome.delivered
    assert len(rows) == 1
    assert rows[0].is_sent is False
    assert rows[0].sent_at is None


async def test_in_app_failure_falls_back_to_external_record(db, user, templates, dispatcher, monkeypatch):
    user_id = user.id
    in_app = dispatcher.senders[NotificationChannel.IN_APP]
    monkeypatch.setattr(in_app, "_send", AsyncMock(side_effect=RuntimeError("flush failed")))

    outcome = await dispatcher.send(
        user_id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA, NotificationPriority.HIGH
    )

    assert outcome.stage == DispatchStage.DONE
    assert outcome.failed_channels == [NotificationChannel.IN_APP]
    assert outcome.delivered_channels == [NotificationChannel.EMAIL]

    rows = await notifications_for(db, user_id)
    assert len(rows) == 1
    assert rows[0].id == outcome.notification_id
    assert rows[0].channel == NotificationChannel.EMAIL
    assert rows[0].is_sent is True
    assert await audit_actions(db) == ["NOTIFICATION_SENT"]


async def test_in_app_and_email_failure_records_unsent(db, user, templates, dispatcher, email_service, monkeypatch):
    user_id = user.id
    email_service.send_html_email.side_effect = NotificationDeliveryError("EMAIL", "a@x.com", "timeout")
    in_app = dispatcher.senders[NotificationChannel.IN_APP]
    monkeypatch.setattr(in_app, "_send", AsyncMock(side_effect=RuntimeError("flush failed")))

    outcome = await dispatcher.send(
        user_id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA, NotificationPriority.HIGH
    )

    assert not outcome.delivered
    rows = await notifications_for(db, user_id)
    assert len(rows) == 1
    assert rows[0].is_sent is False
    assert rows[0].sent_at is None
    assert await audit_actions(db) == ["NOTIFICATION_SENT"]


async def test_empty_route_persists_nothing(db, user, templates, dispatcher):
    await PreferenceService(db).update(user.id, ALL_OFF)

    outcome = await dispatcher.send(user.id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA)

    assert outcome.channels == []
    assert outcome.notification_id is None
    assert await count_rows(db, Notification) == 0
    assert await audit_actions(db) == ["UPDATE_NOTIFICATION_PREFERENCES"]


async def test_audit_failure_is_not_raised(db, user, templates, email_service, sms_service):
    audit = AsyncMock(spec=AuditService)
    audit.log_action.side_effect = RuntimeError("audit store unavailable")
    dispatcher = NotificationDispatcher(db, email_service=email_service, sms_service=sms_service, audit_service=audit)

    outcome = await dispatcher.send(user.id, NotificationType.PAYMENT_COMPLETED, PAYMENT_DATA)

    assert outcome.stage == DispatchStage.DONE
    assert outcome.notification_id is not None
    assert await count_rows(db, Notification) == 1


async def test_create_in_app_ignores_preferences(db, user, dispatcher):
    await PreferenceService(db).update(user.id, ALL_OFF)

    notification = await dispatcher.create_in_app(
        user.id, "Report ready", "Q3 report is ready", NotificationType.REPORT_READY
    )

    assert notification.channel == NotificationChannel.IN_APP
    assert notification.priority == NotificationPriority.NORMAL
    assert notification.is_sent is True


async def test_create_in_app_clips_long_title(db, user, dispatcher):
    notification = await dispatcher.create_in_app(
        user.id, "T" * 300, "Body", NotificationType.ANNOUNCEMENT
    )

    assert len(notification.title) == TITLE_MAX_LENGTH
    assert notification.title.endswith("...")


async def test_create_in_app_with_future_schedule_stays_unsent(db, user, dispatcher):
    later = utcnow() + timedelta(hours=2)

    notification = await dispatcher.create_in_app(
        user.id, "Maintenance", "Tonight at 22:00", NotificationType.SYSTEM_MAINTENANCE,
        scheduled_time=later,
    )

    assert notification.is_sent is False
    assert notification.scheduled_time == later


async def test_send_bulk_reaches_every_active_user(db, user, other_user, templates, dispatcher):
    await make_user(db, email="gone@x.com", full_name="Former Staff", is_active=False)

    result = await dispatcher.send_bulk(NotificationType.ANNOUNCEMENT, "Holiday", "Office closed Sunday")

    assert result == {"total": 2, "sent": 2, "failed": 0}
    for recipient in (user, other_user):
        rows = await notifications_for(db, recipient.id)
        assert [(r.title, r.message) for r in rows] == [("Holiday", "Office closed Sunday")]


async def test_send_bulk_counts_failures(db, user, dispatcher):
    result = await dispatcher.send_bulk(NotificationType.ANNOUNCEMENT, "Holiday", "Office closed Sunday")

    assert result == {"total": 1, "sent": 0, "failed": 1}


async def test_send_test_notification_defaults_to_admin(db, user, templates, dispatcher):
    outcome = await dispatcher.send_test_notification(SendNotificationRequest(message="Hello from ops"), user.id)

    rows = await notifications_for(db, user.id)
    assert outcome.notification_id == rows[0].id
    assert rows[0].type == "ANNOUNCEMENT"
    assert rows[0].message == "Hello from ops"
    assert sorted(await audit_actions(db)) == ["NOTIFICATION_SENT", "SEND_TEST_NOTIFICATION"]
