"""
Shared fixtures.

Every test gets its own SQLite file database; the app's `get_db`
dependency is overridden to use it, so no PostgreSQL server is needed.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from autocrew.db.postgres import Base, get_db
from autocrew.main import app
from autocrew.models import Client, Conversation, Crew, KnowledgeBaseDocument, Membership, User
from autocrew.models.role import UserRole
from autocrew.security import create_session, get_password_hash
from autocrew.services.workflow import WorkflowClient, get_workflow_client

DEFAULT_PASSWORD = "correct-horse-battery"


class Seeder:
    """Writes fixture rows straight to the database, one committed session per call."""

    def __init__(self, session_factory):
        self.session_factory = session_factory
        self._counter = 0

    def _next(self) -> int:
        self._counter += 1
        return self._counter

    async def _save(self, obj):
        async with self.session_factory() as session:
            session.add(obj)
            await session.commit()
            await session.refresh(obj)
        return obj

    async def client(self, company_name: str = "Acme Corporation", client_code: str | None = None,
                     slug: str | None = None, plan: str = "starter", status: str = "active") -> Client:
        n = self._next()
        return await self._save(Client(
            company_name=company_name,
            client_code=client_code or f"SEED{n}-001",
            slug=slug or f"seed-client-{n}",
            contact_person_name="Pat Doe",
            contact_email=f"contact{n}@example.com",
            plan=plan,
            status=status,
        ))

    async def user(self, role: UserRole = UserRole.ORGANIZATION_ADMIN, orgs: tuple = (),
                   email: str | None = None, password: str | None = DEFAULT_PASSWORD,
                   is_active: bool = True) -> User:
        n = self._next()
        user = await self._save(User(
            email=email or f"user{n}@example.com",
            name=f"User {n}",
            role=role.value,
            hashed_password=get_password_hash(password) if password else None,
            is_active=is_active,
        ))
        for org in orgs:
            await self._save(Membership(user_id=user.id, org_id=org.id))
        return user

    async def crew(self, org: Client, crew_type: str = "customer_support", name: str = "Support Bot",
                   crew_code: str | None = None, config: dict | None = None) -> Crew:
        n = self._next()
        return await self._save(Crew(
            name=name,
            crew_code=crew_code or f"{org.client_code}-SUP-{n:03d}",
            type=crew_type,
            status="active",
            webhook_url="https://hooks.example.com/crew",
            config=config or {},
            org_id=org.id,
        ))

    async def conversation(self, crew: Crew, sentiment: str | None = "neutral",
                           resolved: bool = False) -> Conversation:
        n = self._next()
        return await self._save(Conversation(
            org_id=crew.org_id,
            crew_id=crew.id,
            visitor_id=f"visitor-{n}",
            transcript=[{"role": "user", "content": "Hello", "timestamp": "2026-01-01T00:00:00Z"}],
            sentiment=sentiment,
            resolved=resolved,
        ))

    async def document(self, crew: Crew, filename: str = "faq.pdf") -> KnowledgeBaseDocument:
        return await self._save(KnowledgeBaseDocument(
            org_id=crew.org_id,
            crew_id=crew.id,
            filename=filename,
            mime_type="application/pdf",
            file_size=1024,
            status="indexed",
            chunk_count=4,
        ))

    async def auth_headers(self, user: User) -> dict:
        async with self.session_factory() as session:
            db_user = await session.get(User, user.id)
            _, token = await create_session(session, db_user)
        return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'autocrew.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


class WorkflowStub:
    """Scripted document workflow: records each upload and answers as told."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.payload = {"status": "success", "document": {"chunk_count": 12}}
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json=self.payload)


@pytest.fixture
def workflow() -> WorkflowStub:
    return WorkflowStub()


@pytest.fixture
def seed(session_factory) -> Seeder:
    return Seeder(session_factory)


@pytest.fixture
async def client(session_factory, workflow):
    """Create FastAPI test client."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    async def override_get_workflow_client():
        workflow_client = WorkflowClient(
            "https://workflow.example.com/documents",
            "test-api-key",
            transport=httpx.MockTransport(workflow.handler),
        )
        try:
            yield workflow_client
        finally:
            await workflow_client.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_workflow_client] = override_get_workflow_client
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
async def super_admin(seed):
    return await seed.user(role=UserRole.SUPER_ADMIN, email="root@example.com")


@pytest.fixture
async def super_headers(seed, super_admin):
    return await seed.auth_headers(super_admin)
