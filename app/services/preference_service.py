"""Notification preference store"""

from typing import Any, Mapping, Optional, Union
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from app.core.config import settings
from app.core.exceptions import ValidationException
from app.models.notification_preference import (
    NotificationPreference,
    DEFAULT_QUIET_HOURS_START,
    DEFAULT_QUIET_HOURS_END,
    all_notification_types,
)
from app.schemas.notification import NotificationPreferenceUpdate
from app.services.audit_service import AuditService
from app.utils.helpers import parse_uuid

logger = logging.getLogger(__name__)

class PreferenceService:
    """Reads and writes per-user notification preferences"""

    def __init__(self, db: AsyncSession, audit_service: AuditService = None):
        self.db = db
        self.audit_service = audit_service or AuditService(db)

    async def _find(self, key) -> Optional[NotificationPreference]:
        result = await self.db.execute(
            select(NotificationPreference).where(NotificationPreference.user_id == key)
        )
        return result.scalar_one_or_none()

    async def get_or_create(self, user_id: Any) -> NotificationPreference:
        """
        Get the user's preferences, creating the default row when absent

        Never reports "not found": a missing row is replaced by a persisted
        default (email on, SMS off, in-app on, push on, quiet hours 22:00-07:00).
        """
        key = parse_uuid(user_id)
        preference = await self._find(key)
        if preference is not None:
            return preference

        preference = NotificationPreference(
            user_id=key,
            email_enabled=True,
            sms_enabled=False,
            in_app_enabled=True,
            push_enabled=True,
            quiet_hours_start=DEFAULT_QUIET_HOURS_START,
            quiet_hours_end=DEFAULT_QUIET_HOURS_END,
            timezone=settings.NOTIFICATION_DEFAULT_TIMEZONE,
            enabled_types=all_notification_types(),
        )
        try:
            async with self.db.begin_nested():
                self.db.add(preference)
        except IntegrityError:
            # A concurrent dispatch created the row first
            logger.info(f"Notification preferences for user {user_id} already created")
            return await self._find(key)

        await self.db.commit()

        logger.info(f"Created default notification preferences for user {user_id}")
        return preference

    async def update(
        self,
        user_id: Any,
        new_values: Union[NotificationPreferenceUpdate, Mapping[str, Any]]
    ) -> NotificationPreference:
        """Apply only the fields explicitly supplied"""
        if not isinstance(new_values, NotificationPreferenceUpdate):
            try:
                new_values = NotificationPreferenceUpdate(**dict(new_values))
            except ValidationError as e:
                raise ValidationException(f"Invalid notification preferences: {e.errors()}")

        changes = new_values.model_dump(exclude_unset=True)
        preference = await self.get_or_create(user_id)

        old_values = {}
        for field, value in changes.items():
            old_values[field] = getattr(preference, field)
            setattr(preference, field, value)

        await self.db.commit()

        await self.audit_service.log_action(
            actor_id=user_id,
            action="UPDATE_NOTIFICATION_PREFERENCES",
            entity_type="NOTIFICATION_PREFERENCE",
            entity_id=preference.id,
            description="Updated notification preferences",
            old_values=_jsonable(old_values),
            new_values=_jsonable(changes),
        )

        return preference

def _jsonable(values: Mapping[str, Any]) -> dict:
    """Times are stored as ISO strings in audit JSON"""
    return {
        k: v.isoformat() if hasattr(v, "isoformat") else v
        for k, v in values.items()
    }
