from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from approval_rules.db.connection import init_db, make_session_factory
from approval_rules.domain.pending import PendingActionStore
from approval_rules.domain.rules.repository import RuleRepository
from approval_rules.runtime import RuleLifecycleManager

from tests.fixtures.fake_clock import FakeClock


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def repository(engine) -> RuleRepository:
    return RuleRepository(make_session_factory(engine))


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock) -> PendingActionStore:
    return PendingActionStore(clock=clock)


@pytest.fixture
def manager(repository, store) -> RuleLifecycleManager:
    return RuleLifecycleManager(repository=repository, store=store)


@pytest.fixture
def rule_payload() -> dict:
    return {
        "name": "Finance Review",
        "description": "Compras de finanzas",
        "document_type": "requerimiento",
        "conditions": {"min_amount": 100000, "purchase_type": "directa"},
        "priority": 2,
        "levels": [
            {
                "name": "Jefe de área",
                "mode": "ANY",
                "approvers": [{"user_id": "u_boss"}, {"role": "PURCHASE_APPROVER"}],
            },
            {"name": "Finanzas", "mode": "ALL", "approvers": [{"user_id": "u_cfo"}]},
        ],
    }
