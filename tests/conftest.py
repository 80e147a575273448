"""Shared fixtures: in-memory SQLite, temp storage, a few profiles with points."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import gyanshare.models  # noqa: F401  registers every table on Base.metadata
from gyanshare.config import Settings, get_settings
from gyanshare.database import Base
from gyanshare.models.points import PointsReason
from gyanshare.models.profile import Profile
from gyanshare.services import points_ledger
from gyanshare.services.workflow import RequestWorkflow

KB = 1024


@pytest.fixture
def settings(tmp_path, monkeypatch) -> Settings:
    s = get_settings()
    monkeypatch.setattr(s, "storage_dir", str(tmp_path / "uploads"))
    return s


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory, settings):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def workflow(db) -> RequestWorkflow:
    return RequestWorkflow(db)


def make_profile(db, email: str, points: int = 0) -> Profile:
    profile = Profile(email=email, full_name=email.split("@")[0], referral_code=email.split("@")[0][:12].upper())
    db.add(profile)
    db.flush()
    if points:
        points_ledger.credit(db, profile.id, points, PointsReason.SIGNUP_BONUS, profile.id)
    db.commit()
    return profile


def pdf_bytes(size: int) -> bytes:
    head = b"%PDF-1.4\n"
    return head + b"0" * max(size - len(head), 0)


@pytest.fixture
def alice(db) -> Profile:
    """Requester."""
    return make_profile(db, "alice@example.com", points=100)


@pytest.fixture
def bob(db) -> Profile:
    """Fulfiller."""
    return make_profile(db, "bob@example.com")


@pytest.fixture
def voters(db) -> list[Profile]:
    return [make_profile(db, f"voter{i}@example.com") for i in range(5)]
