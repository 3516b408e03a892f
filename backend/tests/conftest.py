"""Shared pytest fixtures: in-memory database, recording notifier, row factories."""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("APP_BASE_URL", "http://app.test")
os.environ.setdefault("ONBOARDING_PORTAL_URL", "http://portal.test")

from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.errors import UpstreamDeliveryFailure
from app.models import Client, Comment, Project, ProjectMember, Task, User, Workspace, WorkspaceMember
from app.services.auth import create_access_token, hash_password
from app.services.notifier import DeliveryResult, get_notifier
from app.services.tokens import generate_id


class RecordingNotifier:
    """Stands in for the SMTP/webhook notifier and records every call."""

    def __init__(self, webhook_url: Optional[str] = None, fail_webhook: bool = False):
        self.webhook_url = webhook_url
        self.fail_webhook = fail_webhook
        self.emails: list[tuple[str, str]] = []
        self.webhooks: list[dict[str, Any]] = []

    async def send_invitation_email(self, email: str, link: str) -> DeliveryResult:
        self.emails.append((email, link))
        return DeliveryResult(True)

    async def post_intake_webhook(self, payload: dict[str, Any]) -> None:
        self.webhooks.append(payload)
        if self.fail_webhook:
            raise UpstreamDeliveryFailure("Webhook responded with status 500")


class QueryCounter:
    def __init__(self):
        self.statements: list[str] = []

    def __call__(self, conn, cursor, statement, parameters, context, executemany):
        self.statements.append(statement)

    @property
    def selects(self) -> list[str]:
        return [s for s in self.statements if s.lstrip().upper().startswith("SELECT")]

    def reset(self):
        self.statements.clear()


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def query_counter(engine):
    counter = QueryCounter()
    event.listen(engine.sync_engine, "before_cursor_execute", counter)
    yield counter
    event.remove(engine.sync_engine, "before_cursor_execute", counter)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest_asyncio.fixture
async def client(session_factory, notifier):
    from app.main import app

    async def _get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Row factories
# ---------------------------------------------------------------------------

def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


async def make_user(
    db: AsyncSession,
    email: str,
    role: str = "USER",
    password: Optional[str] = "secret-pass",
    name: Optional[str] = None,
) -> User:
    user = User(
        id=generate_id("user"),
        name=name or email.split("@")[0],
        email=email,
        role=role,
        password_hash=hash_password(password) if password else None,
    )
    db.add(user)
    await db.commit()
    return user


async def make_workspace(db: AsyncSession, owner: User, name: str = "Acme", slug: Optional[str] = None) -> Workspace:
    ws = Workspace(id=generate_id("ws"), name=name, slug=slug or generate_id("slug"), owner_id=owner.id, settings={})
    db.add(ws)
    db.add(WorkspaceMember(id=generate_id("wm"), workspace_id=ws.id, user_id=owner.id, role="ADMIN"))
    await db.commit()
    return ws


async def add_member(db: AsyncSession, ws: Workspace, user: User, role: str = "USER") -> WorkspaceMember:
    member = WorkspaceMember(id=generate_id("wm"), workspace_id=ws.id, user_id=user.id, role=role)
    db.add(member)
    await db.commit()
    return member


async def make_project(db: AsyncSession, ws: Workspace, name: str = "Launch", team_lead: Optional[User] = None) -> Project:
    project = Project(
        id=generate_id("proj"),
        workspace_id=ws.id,
        name=name,
        priority="HIGH",
        status="ACTIVE",
        team_lead=team_lead.id if team_lead else None,
        progress=10,
    )
    db.add(project)
    await db.commit()
    return project


async def add_project_member(db: AsyncSession, project: Project, user: User) -> ProjectMember:
    member = ProjectMember(id=generate_id("pm"), project_id=project.id, user_id=user.id)
    db.add(member)
    await db.commit()
    return member


async def make_task(db: AsyncSession, project: Project, title: str = "Task", assignee: Optional[User] = None) -> Task:
    task = Task(
        id=generate_id("task"),
        project_id=project.id,
        title=title,
        status="TODO",
        type="TASK",
        priority="MEDIUM",
        assignee_id=assignee.id if assignee else None,
    )
    db.add(task)
    await db.commit()
    return task


async def make_comment(db: AsyncSession, task: Task, author: User, content: str = "Looks good") -> Comment:
    comment = Comment(id=generate_id("comment"), task_id=task.id, user_id=author.id, content=content)
    db.add(comment)
    await db.commit()
    return comment


async def make_client(db: AsyncSession, ws: Workspace, name: str = "Globex") -> Client:
    client = Client(id=generate_id("client"), workspace_id=ws.id, name=name)
    db.add(client)
    await db.commit()
    return client


