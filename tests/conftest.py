"""Shared pytest fixtures: in-memory database, store, manager and a seeded catalog."""

from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from rbac_core.models import Base
from rbac_core.repositories.sqlalchemy_store import SqlAlchemyRbacStore
from rbac_core.services import catalog_service
from rbac_core.services.permission_manager import PermissionManager

ARTICLE_EDIT = "PERMISSION_ARTICLE_EDIT"
ARTICLE_VIEW = "PERMISSION_ARTICLE_VIEW"
ARTICLE_PUBLISH = "PERMISSION_ARTICLE_PUBLISH"
UNUSED = "PERMISSION_UNUSED"


class RecordingAuditLogger:
    """Audit logger double that keeps every event in memory."""

    def __init__(self) -> None:
        self.changes: list[tuple[str, dict[str, Any]]] = []
        self.checks: list[tuple[str, str, bool]] = []
        self._counter = 0

    def log_permission_change(self, action: str, data: dict[str, Any]) -> None:
        self.changes.append((action, data))

    def log_permission_check(self, permission_code: str, user_id: str, result: bool) -> None:
        self.checks.append((permission_code, user_id, result))

    def generate_operation_id(self) -> str:
        self._counter += 1
        return f"op_{self._counter}"

    @property
    def actions(self) -> list[str]:
        return [action for action, _ in self.changes]


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs nest correctly.
    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    factory = async_sessionmaker(engine, expire_on_commit=False, autoflush=False)
    async with factory() as session:
        yield session


@pytest.fixture
def store(session) -> SqlAlchemyRbacStore:
    return SqlAlchemyRbacStore(session)


@pytest.fixture
def audit() -> RecordingAuditLogger:
    return RecordingAuditLogger()


@pytest.fixture
def manager(store, audit) -> PermissionManager:
    return PermissionManager(store, audit)


@pytest_asyncio.fixture
async def catalog(store, session) -> None:
    """
    Seed data:
        ROLE_EDITOR   → ARTICLE_EDIT, ARTICLE_VIEW
        ROLE_REVIEWER → ARTICLE_VIEW, ARTICLE_PUBLISH
        ROLE_EMPTY    → (nothing)
        PERMISSION_UNUSED is granted by no role.
    """
    permissions = {}
    for code, name in [
        (ARTICLE_EDIT, "Edit articles"),
        (ARTICLE_VIEW, "View articles"),
        (ARTICLE_PUBLISH, "Publish articles"),
        (UNUSED, "Unused"),
    ]:
        permissions[code] = await catalog_service.create_permission(store, code, name)

    editor = await catalog_service.create_role(store, "ROLE_EDITOR", "Editor")
    reviewer = await catalog_service.create_role(store, "ROLE_REVIEWER", "Reviewer")
    await catalog_service.create_role(store, "ROLE_EMPTY", "Empty")

    editor.add_permission(permissions[ARTICLE_EDIT])
    editor.add_permission(permissions[ARTICLE_VIEW])
    reviewer.add_permission(permissions[ARTICLE_VIEW])
    reviewer.add_permission(permissions[ARTICLE_PUBLISH])
    await session.commit()
