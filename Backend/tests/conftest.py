import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from umamii.database import get_db
from umamii.dependencies import get_current_user
from umamii.main import app
from umamii.models import Base
from umamii.models.restaurant import Restaurant
from umamii.models.user import User

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class FakeRedis:
    """In-memory Redis mock for testing."""

    def __init__(self):
        self._store: dict[str, str] = {}
        self._ttls: dict[str, int] = {}
        self.published: list[tuple[str, str]] = []

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self._store[key] = str(value)
        if ex:
            self._ttls[key] = ex

    async def setex(self, key: str, seconds: int, value: str) -> None:
        await self.set(key, value, ex=seconds)

    async def incr(self, key: str) -> int:
        val = int(self._store.get(key, "0")) + 1
        self._store[key] = str(val)
        return val

    async def expire(self, key: str, seconds: int) -> None:
        self._ttls[key] = seconds

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        pass


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory for extra users: ``await make_user("handle", friends_count=3)``."""

    async def _make_user(username: str, **fields) -> User:
        user = User(
            id=fields.pop("id", uuid.uuid4()),
            email=fields.pop("email", f"{username}@example.com"),
            name=fields.pop("name", username.title()),
            username=username,
            preferences=fields.pop("preferences", []),
            created_at=datetime.now(timezone.utc),
            updated_at=datetime.now(timezone.utc),
            **fields,
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def make_restaurant(db_session: AsyncSession):
    async def _make_restaurant(name: str, **fields) -> Restaurant:
        restaurant = Restaurant(
            name=name,
            address=fields.pop("address", "80 Feet Road, Koramangala, Bengaluru"),
            latitude=fields.pop("latitude", 12.9352),
            longitude=fields.pop("longitude", 77.6245),
            cuisine=fields.pop("cuisine", []),
            **fields,
        )
        db_session.add(restaurant)
        await db_session.commit()
        await db_session.refresh(restaurant)
        return restaurant

    return _make_restaurant


@pytest.fixture
async def test_user(make_user) -> User:
    return await make_user(
        "test_user",
        email="test@example.com",
        name="Test User",
        bio="Always hungry",
    )


@pytest.fixture
async def second_user(make_user) -> User:
    return await make_user(
        "friend_user",
        email="friend@example.com",
        name="Friend User",
        recommendations_count=4,
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
async def anon_client(db_engine, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    """Client with a real database session but no authentication override."""
    session_factory = async_sessionmaker(
        db_engine, class_=AsyncSession, expire_on_commit=False
    )

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.state.redis = fake_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def client(anon_client, test_user: User) -> AsyncClient:
    async def override_get_current_user():
        return test_user

    app.dependency_overrides[get_current_user] = override_get_current_user
    return anon_client


@pytest.fixture
def act_as():
    """Switch the authenticated user for subsequent requests."""

    def _act_as(user: User) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    return _act_as
