"""Response and request schemas."""

import pytest
from pydantic import ValidationError

from app.models import NotificationChannel, NotificationType
from app.schemas.notification import (
    NotificationPreferenceResponse,
    NotificationResponse,
    SendNotificationRequest,
)
from app.services.preference_service import PreferenceService


async def test_notification_response_from_record(db, user, templates, dispatcher):
    notification = await dispatcher.create_in_app(
        user.id, "Report ready", "Q3 report is ready", NotificationType.REPORT_READY, priority="high"
    )

    response = NotificationResponse.model_validate(notification)

    assert response.id == notification.id
    assert response.priority == "HIGH"
    assert response.channel == NotificationChannel.IN_APP.value
    assert response.is_sent is True


async def test_preference_response_from_record(db, user):
    preference = await PreferenceService(db).get_or_create(user.id)

    response = NotificationPreferenceResponse.model_validate(preference)

    assert response.user_id == user.id
    assert response.sms_enabled is False
    assert "PAYMENT_COMPLETED" in response.enabled_types


@pytest.mark.parametrize("message", ["", "x" * 2001])
def test_send_request_bounds_message_length(message):
    with pytest.raises(ValidationError):
        SendNotificationRequest(message=message)
