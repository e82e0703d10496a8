# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from contextlib import nullcontext
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("DEBUG", "true")
os.environ.pop("MAINTENANCE_SECRET", None)
os.environ.pop("REDIS_URL", None)
os.environ.pop("IGDB_CLIENT_ID", None)
os.environ.pop("IGDB_CLIENT_SECRET", None)

from gamebox.core.security import create_access_token
from gamebox.db.session import Base, dumps_json
from gamebox.db.session import get_db as app_get_session
from gamebox.db.session import get_session_factory
from gamebox.db.time import utcnow
from gamebox.main import app as fastapi_app
from gamebox.models import Game, Post, Profile, Review
from gamebox.services.mutes import get_mute_cache
from gamebox.services.rate_limit import get_rate_limiter

TEST_DB_URL = "sqlite://"

_USER_COUNTER = count(1)
_IGDB_COUNTER = count(1000)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        json_serializer=dumps_json,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        # Services commit as they go, so each test wipes every table afterwards.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(autouse=True)
def reset_process_state() -> Iterator[None]:
    get_rate_limiter().reset()
    get_mute_cache().invalidate()
    yield
    get_rate_limiter().reset()
    get_mute_cache().invalidate()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    # Short-lived sessions share the test session and leave closing to db_session.
    app.dependency_overrides[get_session_factory] = lambda: lambda: nullcontext(db_session)
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)
        app.dependency_overrides.pop(get_session_factory, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def _auth_headers(user: Profile, tab_id: str | None = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {create_access_token(user.id)}"}
    if tab_id:
        headers["X-Tab-Id"] = tab_id
    return headers


@pytest.fixture()
def make_user(db_session: Session) -> Callable[..., Profile]:
    """Factory creating persisted profiles with unique usernames."""

    def _make(username: str | None = None, **fields: Any) -> Profile:
        n = next(_USER_COUNTER)
        name = username or f"user{n}"
        profile = Profile(
            email=fields.pop("email", f"{name}@example.com"),
            username=name,
            display_name=fields.pop("display_name", name.title()),
            **fields,
        )
        db_session.add(profile)
        db_session.commit()
        db_session.refresh(profile)
        return profile

    return _make


@pytest.fixture()
def alice(make_user: Callable[..., Profile]) -> Profile:
    return make_user("alice")


@pytest.fixture()
def bob(make_user: Callable[..., Profile]) -> Profile:
    return make_user("bob")


@pytest.fixture()
def carol(make_user: Callable[..., Profile]) -> Profile:
    return make_user("carol")


@pytest.fixture()
def headers_for() -> Callable[..., dict[str, str]]:
    """Return a helper building bearer headers, optionally tagged with a tab id."""
    return _auth_headers


@pytest.fixture()
def alice_headers(alice: Profile) -> dict[str, str]:
    return _auth_headers(alice)


@pytest.fixture()
def bob_headers(bob: Profile) -> dict[str, str]:
    return _auth_headers(bob)


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Factory creating posts; ``created_at`` defaults to now."""

    def _make(author: Profile, body: str = "hello world", **fields: Any) -> Post:
        post = Post(
            user_id=author.id,
            body=body,
            tags=fields.pop("tags", []),
            media_urls=fields.pop("media_urls", []),
            created_at=fields.pop("created_at", utcnow()),
            **fields,
        )
        db_session.add(post)
        db_session.commit()
        db_session.refresh(post)
        return post

    return _make


@pytest.fixture()
def make_game(db_session: Session) -> Callable[..., Game]:
    def _make(name: str = "Celeste", **fields: Any) -> Game:
        game = Game(
            name=name,
            igdb_id=fields.pop("igdb_id", next(_IGDB_COUNTER)),
            aliases=fields.pop("aliases", []),
            **fields,
        )
        db_session.add(game)
        db_session.commit()
        db_session.refresh(game)
        return game

    return _make


@pytest.fixture()
def make_review(db_session: Session) -> Callable[..., Review]:
    def _make(author: Profile, game: Game, rating: int = 80, **fields: Any) -> Review:
        review = Review(
            user_id=author.id,
            game_id=game.id,
            rating=rating,
            body=fields.pop("body", None),
            **fields,
        )
        db_session.add(review)
        db_session.commit()
        db_session.refresh(review)
        return review

    return _make


@pytest.fixture()
def game(make_game: Callable[..., Game]) -> Game:
    return make_game("Hollow Knight", cover_url="https://img.example/hk.jpg", release_year=2017)
