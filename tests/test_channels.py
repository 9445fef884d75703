"""Channel senders report outcomes instead of raising."""

import asyncio
import uuid
from unittest.mock import AsyncMock

from app.core.exceptions import NotificationDeliveryError
from app.models import NotificationChannel, NotificationPriority, NotificationTemplate, User
from app.models.notification import TITLE_MAX_LENGTH
from app.services.channels import (
    DeliveryContext,
    DeliveryStatus,
    EmailChannelSender,
    PushChannelSender,
    SmsChannelSender,
    snapshot,
    truncate_sms,
)


def context(**overrides):
    user = User(id=uuid.uuid4(), email="a@x.com", phone="+966501234567", full_name="Ana Silva")
    template = NotificationTemplate(
        type="PAYMENT_COMPLETED",
        title="Payment {{reference}}",
        email_subject="Payment {{reference}} received",
        email_body="<p>{{amount}}</p>",
        sms_body=overrides.pop("sms_body", "Paid {{amount}}"),
        in_app_body="{{amount}} paid",
    )
    data = overrides.pop("data", {"reference": "P-1", "amount": "500 SAR"})
    return DeliveryContext.build(user, template, "PAYMENT_COMPLETED", NotificationPriority.HIGH, data)


def test_truncate_sms_cuts_long_bodies_to_limit():
    result = truncate_sms("x" * 200)

    assert len(result) == 160
    assert result.endswith("...")
    assert result[:157] == "x" * 157


def test_truncate_sms_keeps_short_bodies():
    assert truncate_sms("x" * 160) == "x" * 160


def test_context_renders_every_field():
    ctx = context()

    assert ctx.title == "Payment P-1"
    assert ctx.email_subject == "Payment P-1 received"
    assert ctx.email_body == "<p>500 SAR</p>"
    assert ctx.sms_body == "Paid 500 SAR"
    assert ctx.message == "500 SAR paid"


def test_context_truncates_sms_body():
    ctx = context(sms_body="{{body}}", data={"body": "y" * 200})

    assert len(ctx.sms_body) == 160
    assert ctx.sms_body.endswith("...")


def test_context_clips_title_to_column_length():
    ctx = context(data={"reference": "R" * 400, "amount": "500 SAR"})

    assert len(ctx.title) == TITLE_MAX_LENGTH
    assert ctx.title.startswith("Payment RRR")
    assert ctx.title.endswith("...")


def test_snapshot_stringifies_non_json_values():
    ref = uuid.uuid4()

    assert snapshot({"id": ref, "count": 2, "note": None}) == {"id": str(ref), "count": 2, "note": None}


async def test_email_sender_invokes_transport():
    transport = AsyncMock()
    sender = EmailChannelSender(transport)

    result = await sender.deliver(context())

    assert result.status == DeliveryStatus.DELIVERED
    transport.send_html_email.assert_awaited_once_with("a@x.com", "Payment P-1 received", "<p>500 SAR</p>")


async def test_email_failure_becomes_failed_result():
    transport = AsyncMock()
    transport.send_html_email.side_effect = NotificationDeliveryError("EMAIL", "a@x.com", "relay refused")

    result = await EmailChannelSender(transport).deliver(context())

    assert result.status == DeliveryStatus.FAILED
    assert result.channel == NotificationChannel.EMAIL
    assert "relay refused" in result.error


async def test_sms_timeout_becomes_failed_result():
    async def hang(*args, **kwargs):
        await asyncio.sleep(1)

    transport = AsyncMock()
    transport.send_sms.side_effect = hang

    result = await SmsChannelSender(transport, timeout=0.01).deliver(context())

    assert result.status == DeliveryStatus.FAILED
    assert "timed out" in result.error


async def test_sms_sender_uses_phone_and_rendered_body():
    transport = AsyncMock()

    result = await SmsChannelSender(transport).deliver(context())

    assert result.ok
    transport.send_sms.assert_awaited_once_with("+966501234567", "Paid 500 SAR")


async def test_push_is_always_skipped():
    result = await PushChannelSender().deliver(context())

    assert result.status == DeliveryStatus.SKIPPED
    assert not result.ok
