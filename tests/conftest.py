from decimal import Decimal
from typing import Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from db.models import Base
from domain.ledger import LedgerState

engine: Engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
session_factory = sessionmaker(engine)


@pytest.fixture(scope="function")
def test_session() -> Generator[Session, None, None]:
    with session_factory() as session:
        yield session


@pytest.fixture(scope="function", autouse=True)
def reset_db() -> Generator[None, None, None]:
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def ledger_state() -> LedgerState:
    """20 MXN/USD, 1000 gallons, base price 2.5 USD/gal."""
    state = LedgerState.initial()
    return state.model_copy(
        update={
            "exchange_rate": Decimal("20"),
            "gallons": Decimal("1000"),
            "liters": Decimal("3785.41"),
            "base_price": Decimal("2.5"),
        }
    )
