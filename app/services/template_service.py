"""Notification template lookup and placeholder rendering"""

from typing import Any, Mapping, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import logging
import re

from app.core.exceptions import TemplateNotFoundException
from app.models.notification_template import NotificationTemplate
from app.utils.helpers import enum_value

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{(.*?)\}\}")

TEMPLATE_FIELDS = ("title", "email_subject", "email_body", "sms_body", "in_app_body")

def render(template_field: Optional[str], data: Optional[Mapping[str, Any]]) -> str:
    """
    Substitute {{key}} tokens with values from data

    Tokens whose key is absent from data are left in place. A None value
    renders as an empty string and a None template renders as "".
    Substituted text is not scanned again.
    """
    if template_field is None:
        return ""
    if not data:
        return template_field

    def _replace(match: "re.Match") -> str:
        key = match.group(1)
        if key not in data:
            return match.group(0)
        value = data[key]
        return "" if value is None else str(value)

    return PLACEHOLDER_PATTERN.sub(_replace, template_field)

class TemplateService:
    """Resolves templates for notification types"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve(self, notification_type: Any) -> NotificationTemplate:
        """Get the active template for a type or raise TemplateNotFoundException"""
        type_tag = enum_value(notification_type)
        result = await self.db.execute(
            select(NotificationTemplate).where(
                NotificationTemplate.type == type_tag,
                NotificationTemplate.is_active == True  # noqa: E712
            )
        )
        template = result.scalar_one_or_none()

        if template is None:
            logger.error(f"No notification template registered for type {type_tag}")
            raise TemplateNotFoundException(type_tag)

        return template

    async def register(self, notification_type: Any, **fields: Optional[str]) -> NotificationTemplate:
        """Create or replace the template for a type"""
        unknown = set(fields) - set(TEMPLATE_FIELDS)
        if unknown:
            raise ValueError(f"Unknown template fields: {', '.join(sorted(unknown))}")

        type_tag = enum_value(notification_type)
        result = await self.db.execute(
            select(NotificationTemplate).where(NotificationTemplate.type == type_tag)
        )
        template = result.scalar_one_or_none()

        if template is None:
            template = NotificationTemplate(type=type_tag)
            self.db.add(template)

        for name in TEMPLATE_FIELDS:
            setattr(template, name, fields.get(name))
        template.is_active = True

        await self.db.commit()
        logger.info(f"Registered notification template for {type_tag}")

        return template
