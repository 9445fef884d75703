"""Shared fixtures: in-memory database, seeded users and templates, fake transports."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import AuditLog, Base, Notification, NotificationType, User
from app.services.email_service import EmailService
from app.services.notification_dispatcher import NotificationDispatcher
from app.services.notification_service import NotificationService
from app.services.sms_service import SMSService
from app.services.template_service import TemplateService


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db(engine):
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )
    async with session_factory() as session:
        yield session


async def make_user(db, email="a@x.com", phone=None, full_name="Ana Silva", is_active=True):
    user = User(email=email, phone=phone, full_name=full_name, is_active=is_active)
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def user(db):
    """Email contact point only"""
    return await make_user(db)


@pytest_asyncio.fixture
async def reachable_user(db):
    """Both email and phone"""
    return await make_user(db, email="omar@x.com", phone="+966501234567", full_name="Omar Haddad")


@pytest_asyncio.fixture
async def other_user(db):
    return await make_user(db, email="lina@x.com", full_name="Lina Saleh")


@pytest_asyncio.fixture
async def templates(db):
    service = TemplateService(db)
    await service.register(
        NotificationType.PAYMENT_COMPLETED,
        title="Payment {{reference}} completed",
        email_subject="Payment {{reference}} received",
        email_body="<p>Hello {{userName}}, we received {{amount}}.</p>",
        sms_body="Payment {{reference}} of {{amount}} received",
        in_app_body="Payment of {{amount}} completed",
    )
    await service.register(
        NotificationType.BUDGET_CRITICAL,
        title="Budget critical: {{project}}",
        email_subject="Budget critical for {{project}}",
        email_body="<p>{{project}} has used {{percent}}% of its budget.</p>",
        sms_body="{{project}} budget at {{percent}}%",
        in_app_body="{{project}} has used {{percent}}% of its budget",
    )
    await service.register(
        NotificationType.ANNOUNCEMENT,
        title="{{title}}",
        email_subject="{{title}}",
        email_body="<p>{{message}}</p>",
        sms_body="{{message}}",
        in_app_body="{{message}}",
    )
    return service


@pytest.fixture
def email_service():
    return AsyncMock(spec=EmailService)


@pytest.fixture
def sms_service():
    return AsyncMock(spec=SMSService)


@pytest.fixture
def dispatcher(db, email_service, sms_service):
    return NotificationDispatcher(db, email_service=email_service, sms_service=sms_service)


@pytest.fixture
def notification_service(db):
    return NotificationService(db)


async def count_rows(db, model, *conditions) -> int:
    return await db.scalar(select(func.count()).select_from(model).where(*conditions))


async def notifications_for(db, user_id):
    result = await db.execute(select(Notification).where(Notification.user_id == user_id))
    return list(result.scalars().all())


async def audit_actions(db):
    result = await db.execute(select(AuditLog.action).order_by(AuditLog.created_at))
    return list(result.scalars().all())
