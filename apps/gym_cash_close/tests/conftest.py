from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import UTC, datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from gym_cash_close.api.app import create_app
from gym_cash_close.db.base import Base, import_orm_models
from gym_cash_close.db.models.cash_movement import CashMovement, CashMovementType
from gym_cash_close.db.models.cash_period import CashPeriod, PeriodStatus
from gym_cash_close.db.models.payment import Payment, Refund
from gym_cash_close.db.models.trainer import TrainerPayout
from gym_cash_close.db.session import get_db_session

PERIOD_START = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)
LEDGER_AT = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
PERIOD_END = datetime(2026, 3, 2, 20, 0, tzinfo=UTC)


@pytest.fixture
def sqlite_session_factory() -> Generator[sessionmaker[Session], None, None]:
    import_orm_models()
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        Base.metadata.drop_all(engine)


@pytest.fixture
def client(
    sqlite_session_factory: sessionmaker[Session],
) -> Generator[TestClient, None, None]:
    app = create_app()

    def override_get_db_session() -> Generator[Session, None, None]:
        with sqlite_session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db_session
    with TestClient(app) as test_client:
        yield test_client


def seed_open_period(session: Session, start_at: datetime = PERIOD_START) -> int:
    period = CashPeriod(status=PeriodStatus.OPEN, start_at=start_at)
    session.add(period)
    session.commit()
    return period.id


def seed_reference_ledger(session: Session, occurred_at: datetime = LEDGER_AT) -> None:
    """Payments 100 cash / 200 card, refunds 10 / 20, IN 50, OUT 20, payouts 30 / 40."""

    cash_payment = Payment(amount=Decimal("100.00"), method="cash", paid_at=occurred_at)
    card_payment = Payment(
        amount=Decimal("200.00"),
        method="Visa Credit",
        paid_at=occurred_at,
    )
    session.add_all([cash_payment, card_payment])
    session.flush()
    session.add_all(
        [
            Refund(
                payment_id=cash_payment.id,
                amount=Decimal("10.00"),
                created_at=occurred_at,
            ),
            Refund(
                payment_id=card_payment.id,
                amount=Decimal("20.00"),
                created_at=occurred_at,
            ),
            CashMovement(
                type=CashMovementType.IN,
                amount=Decimal("50.00"),
                reason="float",
                created_at=occurred_at,
            ),
            CashMovement(
                type=CashMovementType.OUT,
                amount=Decimal("20.00"),
                reason="cleaning supplies",
                created_at=occurred_at,
            ),
            TrainerPayout(
                trainer_id=1,
                total_amount=Decimal("30.00"),
                method="CASH",
                paid_at=occurred_at,
            ),
            TrainerPayout(
                trainer_id=2,
                total_amount=Decimal("40.00"),
                method="TRANSFER",
                paid_at=occurred_at,
            ),
        ]
    )
    session.commit()


@pytest.fixture
def open_period_id(sqlite_session_factory: sessionmaker[Session]) -> int:
    with sqlite_session_factory() as session:
        return seed_open_period(session)


@pytest.fixture
def reference_ledger(sqlite_session_factory: sessionmaker[Session]) -> None:
    with sqlite_session_factory() as session:
        seed_reference_ledger(session)


@pytest.fixture
def seed_period(
    sqlite_session_factory: sessionmaker[Session],
) -> Callable[[datetime], int]:
    def _seed(start_at: datetime = PERIOD_START) -> int:
        with sqlite_session_factory() as session:
            return seed_open_period(session, start_at)

    return _seed
