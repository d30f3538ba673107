import threading

import pytest
from sqlalchemy.orm import sessionmaker

from app import models
from app.core.config import settings
from app.database import Base, build_engine
from app.models import BookingStatus, ContractStatus, NotificationType, UserRole
from app.services import contract_service, signature_service

from conftest import accepted_participation, create_booking, make_user, notifications_of


@pytest.fixture
def session_factory(tmp_path):
    # Threads need a real file so each session gets its own connection
    engine = build_engine(f"sqlite:///{tmp_path / 'concurrency.db'}")
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _sign_all_at_once(session_factory, pairs):
    barrier = threading.Barrier(len(pairs))
    errors: list[Exception] = []

    def worker(signature_id, signer_id):
        session = session_factory()
        try:
            barrier.wait()
            signature_service.sign_signature(session, signature_id, signer_id)
        except Exception as exc:
            errors.append(exc)
        finally:
            session.close()

    threads = [threading.Thread(target=worker, args=pair) for pair in pairs]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=60)
    return errors


def test_concurrent_final_signatures_complete_exactly_once(
    db, session_factory, admin, client_user, talent, monkeypatch
):
    monkeypatch.setattr(settings, "REQUIRE_CLIENT_COSIGN", True)
    agents = [make_user(db, f"agent{i}@example.com", UserRole.ADMIN) for i in range(3)]
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id)
    contract = contract_service.send_contract(
        db, contract.id, admin.id, co_signer_ids=[a.id for a in agents]
    )
    pairs = [(s.id, s.signer_id) for s in contract.signatures]
    assert len(pairs) == 5
    # release the write lock this session holds before the signers start
    db.commit()

    errors = _sign_all_at_once(session_factory, pairs)

    assert errors == []
    db.expire_all()
    contract = db.get(models.Contract, contract.id)
    booking = db.get(models.Booking, booking.id)
    assert contract.status == ContractStatus.SIGNED
    # created, sent, signed
    assert contract.version == 3
    assert booking.status == BookingStatus.SIGNED

    completed = notifications_of(db, NotificationType.CONTRACT_FULLY_SIGNED)
    recipients = [n.user_id for n in completed]
    assert sorted(recipients) == sorted({*(p[1] for p in pairs), client_user.id, admin.id})

    to_signed = [
        n
        for n in notifications_of(db, NotificationType.BOOKING_STATUS_CHANGED, client_user.id)
        if n.data.get("to_status") == "signed"
    ]
    assert len(to_signed) == 1


def test_concurrent_double_sign_of_one_row_is_idempotent(db, session_factory, admin, client_user, talent):
    booking = create_booking(db, admin, client_user)
    participation = accepted_participation(db, admin, booking, talent)
    contract = contract_service.create_contract(db, booking.id, participation.id, admin.id)
    contract = contract_service.send_contract(db, contract.id, admin.id)
    pairs = [(contract.signatures[0].id, talent.id)] * 4
    db.commit()

    errors = _sign_all_at_once(session_factory, pairs)

    assert errors == []
    db.expire_all()
    assert db.get(models.Contract, contract.id).version == 3
    assert len(notifications_of(db, NotificationType.CONTRACT_FULLY_SIGNED, talent.id)) == 1
