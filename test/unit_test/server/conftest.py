from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import AsyncGenerator, Awaitable, Callable, Dict, Optional
from unittest.mock import patch

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlmodel import select
from sqlmodel.pool import StaticPool

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@dataclass
class Account:
    """A registered test user."""

    id: str
    email: str
    role: str
    token: str
    profile_id: str

    @property
    def headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest_asyncio.fixture
async def test_engine():
    """Create a fresh in-memory database with the milestone catalogue for each test."""
    from indaba.core.database import create_all, create_sessionmaker
    from indaba.core.database.seed import seed_milestones

    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_all(engine)
    async with create_sessionmaker(engine)() as seed_session:
        await seed_milestones(seed_session)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(name="session")
async def session_fixture(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a new session for each test."""
    from indaba.core.database import create_sessionmaker

    async with create_sessionmaker(test_engine)() as session:
        yield session


@pytest_asyncio.fixture(name="client")
async def client_fixture(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client with mocked lifespan and overridden dependencies."""
    from indaba.server.core.database import get_session
    from indaba.server.main import app

    async def get_session_override() -> AsyncGenerator[AsyncSession, None]:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

    app.dependency_overrides[get_session] = get_session_override

    # Mock the lifespan to prevent database initialization during tests
    async def mock_lifespan(app):
        yield

    with patch("indaba.server.main.lifespan", mock_lifespan):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://localhost") as client:
            yield client

    app.dependency_overrides.clear()


RegisterFn = Callable[..., Awaitable[Account]]


@pytest_asyncio.fixture
async def register(client: AsyncClient, session: AsyncSession) -> RegisterFn:
    """Factory registering an account through the API and returning its token and profile id."""
    from indaba.core.database.entities.users import UserRole
    from indaba.core.database.repositories.users import PROFILE_MODELS

    counter = {"n": 0}

    async def _register(
        role: str,
        email: Optional[str] = None,
        first_name: str = "Test",
        last_name: Optional[str] = None,
        password: str = "password123",
    ) -> Account:
        counter["n"] += 1
        email = email or f"{role.lower()}{counter['n']}@example.com"
        response = await client.post(
            "/api/v1/auth/register",
            json={
                "email": email,
                "password": password,
                "role": role,
                "first_name": first_name,
                "last_name": last_name or role.title(),
            },
        )
        assert response.status_code == 201, response.text
        data = response.json()
        model = PROFILE_MODELS[UserRole(role)]
        profile = (await session.execute(select(model).where(model.user_id == data["user"]["id"]))).scalars().one()
        return Account(id=data["user"]["id"], email=email, role=role, token=data["token"], profile_id=profile.id)

    return _register


@pytest_asyncio.fixture
async def nanny(register: RegisterFn) -> Account:
    return await register("NANNY", first_name="Nora", last_name="Nanny")


@pytest_asyncio.fixture
async def parent(register: RegisterFn) -> Account:
    return await register("PARENT", first_name="Paula", last_name="Parent")


@pytest_asyncio.fixture
async def admin(register: RegisterFn) -> Account:
    return await register("ADMIN", first_name="Ada", last_name="Admin")


@dataclass
class FamilySetup:
    family_id: str
    child_id: str


@pytest_asyncio.fixture
async def family(client: AsyncClient, session: AsyncSession, parent: Account, nanny: Account) -> FamilySetup:
    """A parent with one child and the nanny actively assigned to their family."""
    from indaba.core.database.entities.families import FamilyNanny

    birth_date = (datetime.utcnow() - timedelta(days=400)).isoformat()
    response = await client.post(
        "/api/v1/parent/children",
        json={"first_name": "Kim", "last_name": "Parent", "birth_date": birth_date},
        headers=parent.headers,
    )
    assert response.status_code == 201, response.text
    child = response.json()

    session.add(FamilyNanny(family_id=child["family_id"], nanny_id=nanny.profile_id, start_date=datetime.utcnow()))
    await session.commit()
    return FamilySetup(family_id=child["family_id"], child_id=child["id"])
