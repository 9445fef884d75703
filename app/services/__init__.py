"""Services package"""

from .audit_service import AuditService
from .email_service import EmailService
from .sms_service import SMSService
from .user_service import UserService
from .preference_service import PreferenceService
from .template_service import TemplateService
from .notification_dispatcher import NotificationDispatcher, DispatchOutcome
from .notification_service import NotificationService

__all__ = [
    "AuditService",
    "EmailService",
    "SMSService",
    "UserService",
    "PreferenceService",
    "TemplateService",
    "NotificationDispatcher",
    "DispatchOutcome",
    "NotificationService",
]
