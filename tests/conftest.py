"""
Shared pytest fixtures.

Uses a file-backed SQLite database so no Postgres is required for tests.
SQLite ignores FOR UPDATE; row locking itself is not exercised here.
"""
import threading
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from ecoscore.db.base import Base, get_db
from ecoscore.main import app
from ecoscore.models.user import UserAggregate
from ecoscore.services.achievements import ACHIEVEMENTS
from ecoscore.services.mail import get_mailer

SQLITE_URL = "sqlite:///./test_ecoscore.db"

engine = create_engine(SQLITE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# A Wednesday; its week window starts Monday 2026-03-09.
TODAY = date(2026, 3, 11)


class FakeMailer:
    """Records every message instead of sending it."""

    def __init__(self, fail_for: tuple[str, ...] = ()):
        self.sent: list[tuple[str, str, str]] = []
        self.fail_for = set(fail_for)
        self._lock = threading.Lock()

    def send(self, recipient: str, subject: str, body: str) -> bool:
        if recipient in self.fail_for:
            raise ConnectionError(f"SMTP refused {recipient}")
        with self._lock:
            self.sent.append((recipient, subject, body))
        return True

    def recipients(self) -> list[str]:
        return [r for r, _, _ in self.sent]


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


def _make_user(db, user_id: str, earned_all_except: tuple[str, ...] | None = None, **fields) -> UserAggregate:
    """
    Insert a committed user row. With `earned_all_except` set, every catalog
    achievement except the named ones is pre-earned, so point totals in a test
    only move by what the test itself does.
    """
    user = UserAggregate(
        id=user_id,
        display_name=fields.pop("display_name", user_id.capitalize()),
        email=fields.pop("email", f"{user_id}@example.com"),
        total_points=fields.pop("total_points", 0),
        weekly_points=fields.pop("weekly_points", 0),
        last_weekly_reset=fields.pop("last_weekly_reset", None),
        is_private=fields.pop("is_private", False),
        email_notifications=fields.pop("email_notifications", True),
        **fields,
    )
    user.badges = []
    user.friend_ids = []
    if earned_all_except is not None:
        user.earned_achievement_ids = [a.id for a in ACHIEVEMENTS if a.id not in earned_all_except]
    else:
        user.earned_achievement_ids = []
    db.add(user)
    db.commit()
    return user


@pytest.fixture(scope="session", autouse=True)
def create_tables():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def clean_tables():
    yield
    session = TestingSessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            session.execute(table.delete())
        session.commit()
    finally:
        session.close()


@pytest.fixture()
def db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def mailer():
    return FakeMailer()


@pytest.fixture()
def make_mailer():
    return FakeMailer


@pytest.fixture()
def make_user(db):
    def factory(user_id: str, **fields) -> UserAggregate:
        return _make_user(db, user_id, **fields)
    return factory


@pytest.fixture()
def today() -> date:
    return TODAY


@pytest.fixture()
def client(db, mailer):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
