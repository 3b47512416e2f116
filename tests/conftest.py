"""
Shared fixtures: an in-memory SQLite database behind ``get_db`` and a
recording mailer behind ``get_mailer``.
"""

import re
import smtplib

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.dependencies import get_mailer
from app.db import Base, get_db
from app.main import app
from app.models.user import User
from app.services.auth import hash_password

VERIFY_LINK = re.compile(r'/verify-email/([^"\s<]+)')


class RecordingMailer:
    """Stands in for the SMTP mailer; keeps every message it is asked to send."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, to, subject, html):
        if self.fail:
            raise smtplib.SMTPException("SMTP unavailable")
        self.sent.append({"to": to, "subject": subject, "html": html})

    def close(self):
        pass

    def last_verification_token(self):
        match = VERIFY_LINK.search(self.sent[-1]["html"])
        assert match, "no verification link in the last email"
        return match.group(1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def client(session_factory, mailer):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db_session):
    """Insert a user directly, bypassing signup."""

    def _make_user(
        email="jane@example.com",
        password="Passw0rd!",
        full_name="Jane Doe",
        verified=True,
    ):
        user = User(
            full_name=full_name,
            email=email,
            password_hash=hash_password(password),
            verified=verified,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user
