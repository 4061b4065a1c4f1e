"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Must be set before the application modules read settings
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import asyncio

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from rest_api.main import app
from rest_api.models import Base, MenuItem
from rest_api.seed import seed_demo_menu
from rest_api.services.domain import UserService
from shared.config.constants import Roles
from shared.infrastructure.db import enable_sqlite_transactions, get_db, get_session_factory
from shared.infrastructure.events import get_redis
from shared.security.rate_limit import limiter
from shared.utils.admin_schemas import UserCreate


# SQLite in-memory database shared by every session of a test, with the
# same BEGIN handling as the application engine
SQLALCHEMY_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_transactions(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "testpass123"


# =============================================================================
# In-memory Redis
# =============================================================================


class FakePubSub:
    """Just enough of redis.asyncio.client.PubSub for ChannelSubscription."""

    def __init__(self, broker: "FakeRedis"):
        self._broker = broker
        self.channels: set[str] = set()
        self.queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    async def subscribe(self, *channels: str) -> None:
        if self._broker.fail_subscribe:
            raise ConnectionError("redis down")
        self.channels.update(channels)

    async def unsubscribe(self, *channels: str) -> None:
        self.channels.difference_update(channels)

    async def aclose(self) -> None:
        self.closed = True
        self._broker.pubsubs.remove(self)

    async def listen(self):
        while True:
            yield await self.queue.get()


class FakeRedis:
    """Records publishes and fans them out to in-process subscribers."""

    def __init__(self):
        self.published: list[tuple[str, str]] = []
        self.pubsubs: list[FakePubSub] = []
        self.fail_publish = False
        self.fail_subscribe = False

    def pubsub(self) -> FakePubSub:
        pubsub = FakePubSub(self)
        self.pubsubs.append(pubsub)
        return pubsub

    async def publish(self, channel: str, message: str) -> int:
        if self.fail_publish:
            raise ConnectionError("redis down")
        self.published.append((channel, message))
        receivers = 0
        for pubsub in self.pubsubs:
            if channel in pubsub.channels:
                pubsub.queue.put_nowait({"type": "message", "channel": channel, "data": message})
                receivers += 1
        return receivers

    async def ping(self) -> bool:
        return True

    def channels_published(self) -> list[str]:
        return [channel for channel, _ in self.published]


# =============================================================================
# Database and client
# =============================================================================


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture(scope="function")
def client(db_session, fake_redis):
    """
    Create a test client with database, session factory and Redis overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    async def override_get_redis():
        return fake_redis

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestingSessionLocal
    app.dependency_overrides[get_redis] = override_get_redis
    limiter.enabled = False

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# Users
# =============================================================================


def create_staff(db_session, email: str, role: str, permissions=None):
    """Provision a staff account through the user service."""
    return UserService(db_session).create_user(
        UserCreate(email=email, password=PASSWORD, nome="Equipe Teste", role=role, permissions=permissions),
        actor_id=None,
        actor_email=None,
    )


def login(client, email: str) -> dict:
    response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, f"Login failed: {response.json()}"
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def admin_user(db_session):
    return create_staff(db_session, "admin@test.com", Roles.ADMIN)


@pytest.fixture
def attendant_user(db_session):
    return create_staff(db_session, "atendente@test.com", Roles.ATTENDANT)


@pytest.fixture
def kitchen_user(db_session):
    return create_staff(db_session, "cozinha@test.com", Roles.KITCHEN)


@pytest.fixture
def auth_headers(client, admin_user):
    """Admin authentication headers for API calls."""
    return login(client, admin_user.email)


@pytest.fixture
def attendant_headers(client, attendant_user):
    return login(client, attendant_user.email)


@pytest.fixture
def kitchen_headers(client, kitchen_user):
    return login(client, kitchen_user.email)


# =============================================================================
# Catalog
# =============================================================================


@pytest.fixture
def seed_menu(db_session):
    """
    Demo menu: store config (fee 500, minimum 1500, free shipping from
    10000), three categories, six items and two complement groups.
    """
    seed_demo_menu(db_session)
    items = db_session.scalars(select(MenuItem)).all()
    return {item.nome: item for item in items}


@pytest.fixture
def picanha(seed_menu):
    """Espeto de Picanha (2600): required 'Ponto da carne', optional 'Adicionais'."""
    return seed_menu["Espeto de Picanha"]


def option_ids(item, *names: str) -> list[int]:
    """Ids of the named complement options offered with a menu item."""
    by_name = {o.nome: o.id for group in item.complement_groups for o in group.options}
    return [by_name[name] for name in names]


def checkout_payload(item, quantity: int = 1, options=(), **overrides) -> dict:
    payload = {
        "items": [
            {"menu_item_id": item.id, "quantity": quantity, "option_ids": option_ids(item, *options)}
        ],
        "tipo_entrega": "retirada",
        "nome": "Ana Souza",
        "whatsapp": "(75) 99999-0001",
    }
    payload.update(overrides)
    return payload
