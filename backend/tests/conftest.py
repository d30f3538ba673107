import os
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
import pytest

# Load environment variables for tests before the app reads its settings
load_dotenv(Path(__file__).resolve().parents[1] / '.env.test')
os.environ.setdefault("PYTEST_RUN", "1")

from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app import models  # noqa: E402
from app.core.config import settings  # noqa: E402
from app.database import Base, build_engine  # noqa: E402
from app.models import UserRole  # noqa: E402
from app.services import (  # noqa: E402
    booking_lifecycle,
    contract_service,
    participation_service,
)


def setup_db():
    """Fresh in-memory database with the production connection settings."""
    engine = build_engine("sqlite:///:memory:", poolclass=StaticPool)
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    return Session()


@pytest.fixture
def db():
    session = setup_db()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(autouse=True)
def default_lifecycle_settings(monkeypatch):
    """Pin the settings the tests rely on regardless of the local .env."""
    monkeypatch.setattr(settings, "REQUIRE_GUARDIAN_COSIGN", True)
    monkeypatch.setattr(settings, "REQUIRE_CLIENT_COSIGN", False)
    monkeypatch.setattr(settings, "EMAIL_NOTIFICATIONS_ENABLED", False)
    monkeypatch.setattr(settings, "CONTRACT_DUE_DAYS", 7)
    monkeypatch.setattr(settings, "CONFLICT_RETRY_BACKOFF_MS", 1)


def make_user(db, email: str, role: UserRole, **kwargs) -> models.User:
    first, _, _ = email.partition("@")
    user = models.User(
        email=email,
        role=role,
        first_name=kwargs.pop("first_name", first.title()),
        last_name=kwargs.pop("last_name", "Tester"),
        **kwargs,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def admin(db):
    return make_user(db, "admin@example.com", UserRole.ADMIN)


@pytest.fixture
def client_user(db):
    return make_user(db, "client@example.com", UserRole.CLIENT)


@pytest.fixture
def talent(db):
    return make_user(db, "talent@example.com", UserRole.TALENT)


@pytest.fixture
def guardian(db):
    return make_user(db, "guardian@example.com", UserRole.CLIENT)


@pytest.fixture
def minor_talent(db, guardian):
    return make_user(db, "minor@example.com", UserRole.TALENT, guardian_id=guardian.id)


def create_booking(db, admin, client_user, **overrides):
    fields = dict(
        title="Spring Campaign",
        start_date=datetime(2025, 1, 10, 9, 0),
        end_date=datetime(2025, 1, 12, 17, 0),
        rate="1500.00",
        location="Studio 4",
    )
    fields.update(overrides)
    return booking_lifecycle.create_booking(db, admin.id, client_user.id, **fields)


def accepted_participation(db, admin, booking, talent):
    participation = participation_service.invite_talent(db, booking.id, talent.id, admin.id)
    return participation_service.respond_to_invitation(db, participation.id, talent.id, "accept")


def sent_contract(db, admin, booking, participation, **kwargs):
    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id, **kwargs)
    return contract_service.send_contract(db, contract.id, admin.id)


def notifications_of(db, ntype, user_id=None):
    query = db.query(models.Notification).filter(models.Notification.type == ntype)
    if user_id is not None:
        query = query.filter(models.Notification.user_id == user_id)
    return query.order_by(models.Notification.id).all()
