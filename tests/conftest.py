import os
from datetime import datetime, timedelta, timezone
from fnmatch import fnmatch

# Settings must be in place before studio_inbox.config is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["REDIS_URL"] = ""
os.environ["AUTH_JWT_SECRET"] = "test-secret-for-pytest-only"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"

import pytest
from fastapi.testclient import TestClient
from jose import jwt as jose_jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from studio_inbox.config import AUTH_JWT_ALGORITHM, AUTH_JWT_AUDIENCE, AUTH_JWT_SECRET
from studio_inbox.database import Base, enable_sqlite_foreign_keys, get_db
from studio_inbox.domain.messaging.service import MessagingService
from studio_inbox.main import app
from studio_inbox.models import Profile, ProfileRole, QuickReply, Service

OWNER_ID = "00000000-0000-4000-8000-000000000001"
ASSISTANT_ID = "00000000-0000-4000-8000-000000000002"
ALICE_ID = "00000000-0000-4000-8000-00000000000a"
BOB_ID = "00000000-0000-4000-8000-00000000000b"


class FakeClock:
    """Deterministic clock; each call returns the current time, advance() moves it"""

    def __init__(self, start=datetime(2025, 3, 1, 9, 0, 0)):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    yield session
    session.close()


@pytest.fixture
def profiles(db):
    rows = {
        "owner": Profile(
            id=OWNER_ID,
            role=ProfileRole.OWNER.value,
            first_name="Olivia",
            last_name="Owner",
            email="olivia@studio.test",
        ),
        "assistant": Profile(
            id=ASSISTANT_ID,
            role=ProfileRole.ASSISTANT.value,
            first_name="Sam",
            last_name="Assistant",
            email="sam@studio.test",
        ),
        "alice": Profile(
            id=ALICE_ID,
            role=ProfileRole.CLIENT.value,
            first_name="Alice",
            last_name="Client",
            email="alice@example.test",
            phone="555-0101",
        ),
        "bob": Profile(
            id=BOB_ID,
            role=ProfileRole.CLIENT.value,
            first_name="Bob",
            last_name="Client",
            email="bob@example.test",
        ),
    }
    db.add_all(rows.values())
    db.commit()
    return rows


@pytest.fixture
def lash_service(db):
    service = Service(name="Classic Lash Set", price_in_cents=12000, duration_minutes=120)
    db.add(service)
    db.commit()
    return service


@pytest.fixture
def quick_replies(db):
    db.add_all(
        [
            QuickReply(label="Thanks", body="Thanks for reaching out!", sort_order=2),
            QuickReply(label="Hours", body="We are open 9-5.", sort_order=1),
            QuickReply(label="Old", body="Retired reply", sort_order=0, is_active=False),
        ]
    )
    db.commit()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def service(db, clock):
    return MessagingService(db, clock=clock)


def make_token(profile_id: str, expires_in: timedelta = timedelta(hours=1), **extra) -> str:
    claims = {
        "sub": profile_id,
        "aud": AUTH_JWT_AUDIENCE,
        "exp": datetime.now(timezone.utc) + expires_in,
        **extra,
    }
    return jose_jwt.encode(claims, AUTH_JWT_SECRET, algorithm=AUTH_JWT_ALGORITHM)


def auth_headers(profile_id: str) -> dict:
    return {"Authorization": f"Bearer {make_token(profile_id)}"}


@pytest.fixture
def client(db):
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


class FakeRedis:
    """In-memory stand-in for the handful of redis commands the cache uses"""

    def __init__(self):
        self.store = {}

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value

    def scan_iter(self, match="*"):
        return [key for key in list(self.store) if fnmatch(key, match)]

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


@pytest.fixture
def fake_redis(monkeypatch):
    """Point the shared inbox cache at an in-memory redis for one test"""
    from studio_inbox.cache import cache

    fake = FakeRedis()
    monkeypatch.setattr(cache, "redis_client", fake)
    monkeypatch.setattr(cache, "_initialized", True)
    return fake


@pytest.fixture
def headers():
    return auth_headers


@pytest.fixture
def token_factory():
    return make_token
