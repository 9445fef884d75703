"""
Custom exception classes and error handlers
Provides consistent error responses across the application
"""

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional

class ERPException(HTTPException):
    """Base exception class for the ERP application"""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code

class BadRequestException(ERPException):
    """400 Bad Request"""

    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            error_code=error_code
        )

class ForbiddenException(ERPException):
    """403 Forbidden"""

    def __init__(self, detail: str = "Forbidden", error_code: str = "FORBIDDEN"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
            error_code=error_code
        )

class NotFoundException(ERPException):
    """404 Not Found"""

    def __init__(self, detail: str = "Not found", error_code: str = "NOT_FOUND"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            error_code=error_code
        )

class ValidationException(ERPException):
    """422 Unprocessable Entity"""

    def __init__(self, detail: str, error_code: str = "VALIDATION_ERROR"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=detail,
            error_code=error_code
        )

# Notification domain exceptions
class UserNotFoundException(NotFoundException):
    """Recipient does not exist in the user directory"""

    def __init__(self, user_id: Any):
        super().__init__(
            detail=f"User not found with id: {user_id}",
            error_code="USER_NOT_FOUND"
        )
        self.user_id = user_id

class TemplateNotFoundException(NotFoundException):
    """No template registered for a notification type"""

    def __init__(self, notification_type: str):
        super().__init__(
            detail=f"Template not found for type: {notification_type}",
            error_code="TEMPLATE_NOT_FOUND"
        )
        self.notification_type = notification_type

class NotificationNotFoundException(NotFoundException):
    """Notification missing or deactivated"""

    def __init__(self, notification_id: Any):
        super().__init__(
            detail=f"Notification not found: {notification_id}",
            error_code="NOTIFICATION_NOT_FOUND"
        )

class NotificationAccessDeniedException(ForbiddenException):
    """Notification belongs to another user"""

    def __init__(self, detail: str = "Notification does not belong to user"):
        super().__init__(detail=detail, error_code="NOTIFICATION_ACCESS_DENIED")

# Delivery exceptions
class NotificationDeliveryError(Exception):
    """Raised by a transport when a message could not be handed off"""

    def __init__(self, channel: str, recipient: Optional[str], reason: str):
        super().__init__(f"{channel} delivery to {recipient} failed: {reason}")
        self.channel = channel
        self.recipient = recipient
        self.reason = reason

async def erp_exception_handler(request: Request, exc: ERPException) -> JSONResponse:
    """Render application exceptions with a stable error envelope"""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.error_code,
                "message": exc.detail,
            }
        },
        headers=exc.headers,
    )
