import os

# must be set before gameservers.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("EMAIL_HOST", "")

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from gameservers.core.db import Base, enable_sqlite_foreign_keys, get_db
from gameservers.core.security import create_access_token
from gameservers.main import app
from gameservers.models.listing import Listing
from gameservers.models.user import User
from gameservers.services.games import seed_games
from gameservers.services.query import OFFLINE
from gameservers.services.status import get_prober


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(eng)
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    seed_games(session)
    yield session
    session.close()


@pytest.fixture
def probe_results():
    """Maps (host, port) to a ProbeResult or an exception for the fake prober."""
    return {}


@pytest.fixture
def fake_prober(probe_results):
    calls = []

    async def prober(game, host, port):
        calls.append((game, host, port))
        outcome = probe_results.get((host, port), OFFLINE)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    prober.calls = calls
    return prober


@pytest.fixture
def client(db, session_factory, fake_prober):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_prober] = lambda: fake_prober
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db):
    counter = {"n": 0}

    def factory(username=None, is_admin=False, is_verified=True, **kwargs):
        counter["n"] += 1
        username = username or f"player{counter['n']}"
        user = User(
            username=username,
            email=kwargs.pop("email", f"{username}@example.com"),
            # never used to log in
            password_hash=kwargs.pop("password_hash", "not-a-real-hash"),
            is_admin=is_admin,
            is_verified=is_verified,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return factory


@pytest.fixture
def owner(make_user):
    return make_user("owner")


@pytest.fixture
def make_listing(db, owner):
    base_time = datetime(2024, 1, 1, 12, 0, 0)
    counter = {"n": 0}

    def factory(name=None, approved=True, **overrides):
        counter["n"] += 1
        n = counter["n"]
        fields = dict(
            user_id=owner.id,
            name=name or f"Server {n}",
            description=f"A friendly community server number {n}",
            game="cs2",
            ip=f"10.0.0.{n}",
            port=27015,
            region="eu",
            is_approved=approved,
            is_featured=False,
            is_online=False,
            current_players=0,
            max_players=0,
            created_at=base_time + timedelta(minutes=n),
            last_updated=base_time + timedelta(minutes=n),
        )
        fields.update(overrides)
        listing = Listing(**fields)
        db.add(listing)
        db.commit()
        db.refresh(listing)
        return listing

    return factory


@pytest.fixture
def auth_headers():
    def headers_for(user):
        return {"Authorization": f"Bearer {create_access_token(user.id, user.is_admin)}"}

    return headers_for
