"""Audit logging service"""

from typing import Any, Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog
from app.utils.helpers import parse_uuid

class AuditService:
    """Service for recording user and system actions"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log_action(
        self,
        actor_id: Optional[Any],
        action: str,
        entity_type: str,
        entity_id: Optional[Any] = None,
        description: Optional[str] = None,
        old_values: Optional[Dict[str, Any]] = None,
        new_values: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """Log an action"""
        log = AuditLog(
            actor_id=parse_uuid(actor_id) if actor_id is not None else None,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id) if entity_id is not None else None,
            description=description,
            old_values=old_values,
            new_values=new_values,
        )

        self.db.add(log)
        await self.db.commit()

        return log

    async def get_logs(
        self,
        actor_id: Optional[Any] = None,
        action: Optional[str] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[AuditLog]:
        """Get audit logs with filters"""
        stmt = select(AuditLog)

        if actor_id:
            stmt = stmt.where(AuditLog.actor_id == parse_uuid(actor_id))
        if action:
            stmt = stmt.where(AuditLog.action == action)
        if entity_type:
            stmt = stmt.where(AuditLog.entity_type == entity_type)
        if entity_id:
            stmt = stmt.where(AuditLog.entity_id == str(entity_id))

        stmt = stmt.order_by(AuditLog.created_at.desc())
        stmt = stmt.offset(offset).limit(limit)

        result = await self.db.execute(stmt)
        return list(result.scalars().all())
