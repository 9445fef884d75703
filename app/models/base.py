"""Base models and mixins for database models"""

from sqlalchemy import Column, DateTime, Uuid
from sqlalchemy.orm import DeclarativeBase, declared_attr
from sqlalchemy.sql import func
from datetime import datetime
from typing import Any, Dict, Optional
import uuid

from app.utils.helpers import utcnow

# Create declarative base
class Base(DeclarativeBase):
    pass

class TimestampedModel:
    """Mixin for adding created_at and updated_at timestamps"""

    @declared_attr
    def created_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            server_default=func.now(),
            index=True
        )

    @declared_attr
    def updated_at(cls):
        return Column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            server_default=func.now(),
            onupdate=utcnow
        )

class UUIDModel:
    """Mixin for adding UUID primary key"""

    @declared_attr
    def id(cls):
        return Column(
            Uuid(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False
        )

class SerializableModel:
    """Mixin converting mapped columns to plain dictionaries"""

    def to_dict(self, exclude: Optional[list] = None) -> Dict[str, Any]:
        """Convert model instance to dictionary"""
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            if column.name not in exclude:
                value = getattr(self, column.name)

                # Handle special types
                if isinstance(value, datetime):
                    value = value.isoformat()
                elif isinstance(value, uuid.UUID):
                    value = str(value)
                elif hasattr(value, "value"):
                    value = value.value

                result[column.name] = value

        return result

    def __repr__(self):
        """String representation"""
        class_name = self.__class__.__name__
        attributes = []

        for column in self.__table__.columns:
            if column.primary_key:
                value = getattr(self, column.name)
                attributes.append(f"{column.name}={value!r}")

        return f"<{class_name}({', '.join(attributes)})>"

__all__ = [
    'Base',
    'TimestampedModel',
    'UUIDModel',
    'SerializableModel',
]
