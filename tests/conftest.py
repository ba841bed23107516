import os

os.environ["SECRET_KEY"] = "test-signing-key-with-more-than-thirty-two-bytes"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["DEV_MODE"] = "true"
os.environ["SMTP_HOST"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import authserver.models  # noqa: F401
from authserver.core.security import slugify
from authserver.database import get_session
from authserver.main import app
from authserver.models.organization import Organization
from authserver.models.user import User, RoleName, UserStatus
from authserver.repositories.organization_repo import SubscriptionPlanRepository
from authserver.seeders import seed_roles, seed_plans
from authserver.services.credential_store import SQLCredentialStore
from authserver.services.email_service import MockEmailService, set_email_service

PASSWORD = "Passw0rdOk"


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture(autouse=True)
async def seeded(session_maker):
    async with session_maker() as session:
        await seed_roles(session)
        await seed_plans(session)


@pytest.fixture(autouse=True)
def email_service():
    service = MockEmailService()
    set_email_service(service)
    yield service
    set_email_service(None)


@pytest.fixture
async def client(session_maker):
    async def override_get_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(session_maker):
    async def _make_user(
        email,
        password=PASSWORD,
        role=RoleName.DEFAULT_USER.value,
        status=UserStatus.ACTIVE.value,
        **fields
    ) -> User:
        async with session_maker() as session:
            store = SQLCredentialStore(session)
            user = await store.create_user(email=email, password=password, status=status, **fields)
            await store.assign_role(user, role)
            await session.commit()
            await session.refresh(user)
            return user
    return _make_user


@pytest.fixture
def make_org(session_maker, make_user):
    """Create an organization with an active OrganizationAdmin owner."""
    async def _make_org(name="Acme", plan_name="starter", owner_email=None, **fields):
        owner = await make_user(
            owner_email or f"owner@{slugify(name)}.com",
            role=RoleName.ORGANIZATION_ADMIN.value
        )
        async with session_maker() as session:
            plan = await SubscriptionPlanRepository(session).get_by_name(plan_name)
            org = Organization(
                name=name,
                slug=slugify(name),
                owner_id=owner.id,
                subscription_plan_id=plan.id,
                **fields
            )
            session.add(org)
            await session.flush()

            db_owner = await session.get(User, owner.id)
            db_owner.organization_id = org.id
            session.add(db_owner)
            await session.commit()
            await session.refresh(org)
            await session.refresh(db_owner)
            return org, db_owner
    return _make_org


@pytest.fixture
def add_member(session_maker, make_user):
    async def _add_member(org, email, role=RoleName.ORGANIZATION_USER.value, status=UserStatus.ACTIVE.value):
        return await make_user(email, role=role, status=status, organization_id=org.id)
    return _add_member


@pytest.fixture
def login(client):
    async def _login(email, password=PASSWORD):
        response = await client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        return response.json()
    return _login


@pytest.fixture
def headers_for(login):
    async def _headers_for(email, password=PASSWORD):
        tokens = await login(email, password)
        return {"Authorization": f"Bearer {tokens['access_token']}"}
    return _headers_for


@pytest.fixture
async def super_admin(make_user):
    return await make_user("root@corp.com", role=RoleName.SUPER_ADMIN.value)


@pytest.fixture
async def admin_headers(super_admin, headers_for):
    return await headers_for(super_admin.email)
