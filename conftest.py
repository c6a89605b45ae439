import os
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

# Tests run against a private in-memory database, never the configured one
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["TIMEZONE"] = "Asia/Karachi"
os.environ["ATTENDANCE_CUTOFF_TIME"] = "07:00"
os.environ["ON_TIME_THRESHOLD"] = ""

from libs.common.config import get_settings

# Clear cached settings to reload with new env vars
get_settings.cache_clear()

from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.emails.client import DispatchResult, EmailClient, get_email_client
from libs.db.base import Base
from libs.db.config import build_session_factory
from libs.db.session import get_async_db
from services.attendance_service import models as _attendance_models  # noqa: F401
from services.attendance_service.app.main import app


class FakeEmailClient(EmailClient):
    """Records every message instead of talking to the Communications Service."""

    def __init__(self):
        super().__init__(base_url="http://communications.test")
        self.sent: list[dict] = []
        self.fail = False
        self.raise_error: Optional[Exception] = None

    async def send(self, recipients, subject, html_body, body=None) -> DispatchResult:
        if self.raise_error is not None:
            raise self.raise_error
        if self.fail:
            return DispatchResult(
                success=False, failed_count=len(recipients), error="provider down"
            )
        self.sent.append(
            {"recipients": list(recipients), "subject": subject, "html": html_body}
        )
        return DispatchResult(success=True, sent_count=len(recipients))

    def subjects(self) -> list[str]:
        return [message["subject"] for message in self.sent]


def auth_user_for(user) -> AuthUser:
    """Token claims matching a ``User`` row."""
    return AuthUser(
        sub=user.id,
        email=user.email,
        role=user.role.value,
        active=user.active,
        approved=user.approved,
    )


@pytest_asyncio.fixture
async def test_engine():
    """
    One in-memory SQLite database per test.

    pysqlite's own transaction handling breaks SAVEPOINT, so BEGIN is
    emitted by SQLAlchemy instead.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session = build_session_factory(test_engine)()
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture
def email_client() -> FakeEmailClient:
    return FakeEmailClient()


@pytest_asyncio.fixture
async def client(db_session, email_client) -> AsyncGenerator[AsyncClient, None]:
    """
    Yield an AsyncClient with the app and overridden DB and email dependencies.
    Authenticate with the ``login`` fixture.
    """
    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_email_client] = lambda: email_client

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Make subsequent requests run as the given ``User`` row."""

    def _login(user) -> AuthUser:
        auth_user = auth_user_for(user)
        app.dependency_overrides[get_current_user] = lambda: auth_user
        return auth_user

    yield _login
    app.dependency_overrides.pop(get_current_user, None)
