"""
Notification record management

Listing, read state, soft deletion, search and the scheduled sweeps over
stored notifications. Every read or write is scoped to the owning user.
"""

from typing import Any, Iterable, Optional
from datetime import datetime, timedelta
import logging

from sqlalchemy import select, update, delete, func, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    NotificationAccessDeniedException,
    NotificationNotFoundException,
)
from app.models.notification import Notification, NotificationPriority
from app.schemas.notification import NotificationResponse, NotificationStatistics, SearchResult
from app.services.audit_service import AuditService
from app.services.search import SearchDocument, relevance_score, search_boost, search_summary, highlight
from app.utils.helpers import day_bounds, enum_value, parse_uuid, utcnow, week_start
from app.utils.pagination import paginate, paginate_list

logger = logging.getLogger(__name__)

def _delivered_or_unscheduled():
    """Rows still waiting for their scheduled time stay hidden from the owner"""
    return or_(
        Notification.is_sent == True,  # noqa: E712
        Notification.scheduled_time.is_(None)
    )

def _pending(notification: Notification) -> bool:
    return not notification.is_sent and notification.scheduled_time is not None

class NotificationService:
    """Service for managing stored notifications"""

    def __init__(self, db: AsyncSession, audit_service: Optional[AuditService] = None):
        self.db = db
        self.audit_service = audit_service or AuditService(db)

    def _owned_active(self, user_id: Any):
        return select(Notification).where(
            Notification.user_id == parse_uuid(user_id),
            Notification.is_active == True,  # noqa: E712
            _delivered_or_unscheduled()
        )

    async def list_notifications(
        self,
        user_id: Any,
        is_read: Optional[bool] = None,
        notification_type: Optional[Any] = None,
        priority: Optional[Any] = None,
        page: int = 1,
        size: int = None
    ) -> dict:
        """Active notifications for a user, newest first"""
        size = min(size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)

        query = self._owned_active(user_id)
        if is_read is not None:
            query = query.where(Notification.is_read == is_read)
        if notification_type is not None:
            query = query.where(Notification.type == enum_value(notification_type))
        if priority is not None:
            query = query.where(Notification.priority == NotificationPriority.parse(priority))

        query = query.order_by(Notification.created_at.desc())
        return await paginate(self.db, query, page, size)

    async def get_notification(self, notification_id: Any, user_id: Any) -> Notification:
        """
        Get a notification owned by user_id

        Raises:
            NotificationNotFoundException: Missing or deleted
            NotificationAccessDeniedException: Owned by someone else
        """
        key = parse_uuid(notification_id)
        notification = await self.db.get(Notification, key) if key else None

        if notification is None or not notification.is_active or _pending(notification):
            raise NotificationNotFoundException(notification_id)

        if notification.user_id != parse_uuid(user_id):
            logger.warning(f"User {user_id} denied access to notification {notification_id}")
            raise NotificationAccessDeniedException()

        return notification

    async def get_unread_count(self, user_id: Any) -> int:
        result = await self.db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == parse_uuid(user_id),
                Notification.is_active == True,  # noqa: E712
                Notification.is_read == False,  # noqa: E712
                _delivered_or_unscheduled()
            )
        )
        return result or 0

    async def get_statistics(self, user_id: Any, now: Optional[datetime] = None) -> NotificationStatistics:
        """Counts by read state, recency and type"""
        now = now or utcnow()
        today, _ = day_bounds(now)
        monday = week_start(now)

        owner = Notification.user_id == parse_uuid(user_id)
        active = and_(Notification.is_active == True, _delivered_or_unscheduled())  # noqa: E712

        async def count(*conditions) -> int:
            return await self.db.scalar(
                select(func.count(Notification.id)).where(owner, active, *conditions)
            ) or 0

        total = await count()
        unread = await count(Notification.is_read == False)  # noqa: E712
        today_count = await count(Notification.created_at >= today)
        week_count = await count(Notification.created_at >= monday)

        result = await self.db.execute(
            select(Notification.type, func.count(Notification.id))
            .where(owner, active)
            .group_by(Notification.type)
        )
        breakdown = {row[0]: row[1] for row in result.all()}

        return NotificationStatistics(
            total_notifications=total,
            unread_count=unread,
            read_count=total - unread,
            today_count=today_count,
            this_week_count=week_count,
            type_breakdown=breakdown,
        )

    async def mark_as_read(self, notification_id: Any, user_id: Any) -> Notification:
        notification = await self.get_notification(notification_id, user_id)

        if not notification.is_read:
            notification.mark_read(utcnow())
            await self.db.commit()
            logger.info(f"Notification {notification_id} marked as read by user {user_id}")

        return notification

    async def mark_all_as_read(self, user_id: Any) -> int:
        """Mark every unread notification of the user; returns how many changed"""
        now = utcnow()
        owner = Notification.user_id == parse_uuid(user_id)
        unread = [
            owner,
            Notification.is_active == True,  # noqa: E712
            Notification.is_read == False,  # noqa: E712
            _delivered_or_unscheduled(),
        ]

        # Read implies sent
        await self.db.execute(
            update(Notification)
            .where(*unread, Notification.is_sent == False)  # noqa: E712
            .values(is_sent=True, sent_at=now)
            .execution_options(synchronize_session="evaluate")
        )
        result = await self.db.execute(
            update(Notification)
            .where(*unread)
            .values(is_read=True, read_at=now)
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.commit()

        count = result.rowcount or 0
        logger.info(f"Marked {count} notifications as read for user {user_id}")
        return count

    async def delete_notification(self, notification_id: Any, user_id: Any) -> None:
        """Soft delete a notification owned by user_id"""
        notification = await self.get_notification(notification_id, user_id)
        notification.deactivate()
        await self.db.commit()

        logger.info(f"Notification {notification_id} deleted by user {user_id}")

    async def bulk_delete(self, notification_ids: Iterable[Any], user_id: Any) -> int:
        """Soft delete the listed notifications that belong to user_id"""
        keys = [k for k in (parse_uuid(i) for i in notification_ids) if k is not None]
        if not keys:
            return 0

        result = await self.db.execute(
            update(Notification)
            .where(
                Notification.id.in_(keys),
                Notification.user_id == parse_uuid(user_id),
                Notification.is_active == True  # noqa: E712
            )
            .values(is_active=False)
            .execution_options(synchronize_session="evaluate")
        )
        await self.db.commit()
        count = result.rowcount or 0

        try:
            await self.audit_service.log_action(
                actor_id=user_id,
                action="BULK_DELETE_NOTIFICATIONS",
                entity_type="NOTIFICATION",
                description=f"Deleted {count} notifications",
                new_values={"notification_ids": [str(k) for k in keys], "deleted": count},
            )
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to write BULK_DELETE_NOTIFICATIONS audit entry: {str(e)}")

        return count

    async def search(
        self,
        user_id: Any,
        query: str,
        page: int = 1,
        size: int = None
    ) -> dict:
        """
        Free-text search over the user's notifications

        Candidates match any query term in title, message, type or
        reference type; they are kept when
        their relevance reaches NOTIFICATION_SEARCH_THRESHOLD and ranked by
        relevance times boost.
        """
        size = min(size or settings.DEFAULT_PAGE_SIZE, settings.MAX_PAGE_SIZE)
        terms = [t for t in query.lower().split() if t]
        if not terms:
            return paginate_list([], page, size)

        conditions = []
        for term in terms:
            pattern = f"%{term}%"
            conditions.append(Notification.title.ilike(pattern))
            conditions.append(Notification.message.ilike(pattern))
            conditions.append(Notification.type.ilike(pattern))
            conditions.append(Notification.reference_type.ilike(pattern))

        result = await self.db.execute(
            self._owned_active(user_id).where(or_(*conditions))
        )

        now = utcnow()
        ranked = []
        for notification in result.scalars().all():
            document = _document(notification)
            score = relevance_score(query, document)
            if score < settings.NOTIFICATION_SEARCH_THRESHOLD:
                continue
            ranked.append((
                score * search_boost(document, now),
                SearchResult(
                    **NotificationResponse.model_validate(notification).model_dump(),
                    score=round(score, 4),
                    highlighted_summary=highlight(search_summary(document), query),
                ),
            ))

        ranked.sort(key=lambda r: r[0], reverse=True)
        return paginate_list([r[1] for r in ranked], page, size)

    async def process_scheduled_notifications(self, now: Optional[datetime] = None) -> int:
        """Mark due scheduled notifications as sent"""
        now = now or utcnow()
        result = await self.db.execute(
            select(Notification).where(
                Notification.is_sent == False,  # noqa: E712
                Notification.is_active == True,  # noqa: E712
                Notification.scheduled_time.is_not(None),
                Notification.scheduled_time <= now
            )
        )

        processed = 0
        for notification in result.scalars().all():
            try:
                notification.mark_sent(now)
                await self.db.commit()
                processed += 1
            except Exception as e:
                await self.db.rollback()
                logger.error(f"Failed to process scheduled notification {notification.id}: {str(e)}")

        logger.info(f"Processed {processed} scheduled notifications")
        return processed

    async def cleanup_old_notifications(
        self,
        retention_days: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> int:
        """Retire read notifications older than the retention window"""
        days = retention_days if retention_days is not None else settings.NOTIFICATION_RETENTION_DAYS
        cutoff = (now or utcnow()) - timedelta(days=days)

        stale = [
            Notification.is_read == True,  # noqa: E712
            Notification.created_at < cutoff,
        ]

        if settings.NOTIFICATION_CLEANUP_HARD_DELETE:
            stmt = delete(Notification).where(*stale)
        else:
            stmt = (
                update(Notification)
                .where(*stale, Notification.is_active == True)  # noqa: E712
                .values(is_active=False)
            )

        result = await self.db.execute(stmt.execution_options(synchronize_session=False))
        await self.db.commit()

        count = result.rowcount or 0
        logger.info(f"Cleaned up {count} notifications older than {days} days")
        return count

def _document(notification: Notification) -> SearchDocument:
    keywords = {notification.type}
    if notification.reference_type:
        keywords.add(notification.reference_type)

    return SearchDocument(
        title=notification.title,
        description=notification.message,
        keywords=keywords,
        created_at=notification.created_at,
        status="ACTIVE" if notification.is_active else "INACTIVE",
    )
