"""Pytest fixtures for testing"""

import pytest
from fastapi.testclient import TestClient

from incubator_gateway.api.main import create_app
from incubator_gateway.api.dependencies import get_deposit_service
from incubator_gateway.infrastructure.cache.deposit_cache import DepositCache
from incubator_gateway.services.deposits import DepositService
from factories import INCUBATOR, RETENTION_SECONDS, TTL_SECONDS, USDT, FakeClock, FakeLedger, scenario_details


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def ledger() -> FakeLedger:
    """In-memory ledger holding the two-deposits-one-withdrawal history"""
    return FakeLedger(scenario_details())


@pytest.fixture
def cache() -> DepositCache:
    return DepositCache(ttl_seconds=TTL_SECONDS, retention_seconds=RETENTION_SECONDS)


@pytest.fixture
def service(ledger: FakeLedger, cache: DepositCache, clock: FakeClock) -> DepositService:
    """Deposit service wired to the fake ledger, single attempt, no backoff"""
    return DepositService(
        client=ledger,
        cache=cache,
        incubator_wallet=INCUBATOR,
        asset_mint=USDT,
        scan_limit=1000,
        batch_size=10,
        max_attempts=1,
        backoff_base=0.0,
        clock=clock,
    )


@pytest.fixture
def client(service: DepositService) -> TestClient:
    """Create FastAPI test client backed by the fake ledger"""
    app = create_app()
    app.dependency_overrides[get_deposit_service] = lambda: service
    return TestClient(app)
