"""
User model
Directory record consumed by the notification engine
"""

from sqlalchemy import Column, String, Boolean

from .base import Base, TimestampedModel, UUIDModel, SerializableModel

class User(Base, TimestampedModel, UUIDModel, SerializableModel):
    """Notification recipient"""

    __tablename__ = "users"

    email = Column(String(255), unique=True, index=True, nullable=True)
    phone = Column(String(20), index=True, nullable=True)
    full_name = Column(String(200), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
