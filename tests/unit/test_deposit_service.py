"""Unit tests for the deposit lookup orchestration"""

import asyncio
import gc
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, patch

from incubator_gateway.domain.exceptions import InvalidAccount, NoDataAvailable, SourceUnavailable
from incubator_gateway.infrastructure.cache.deposit_cache import DepositCache
from incubator_gateway.services.deposits import DepositService
from factories import INCUBATOR, OTHER_USER, TTL_SECONDS, USDT, USER, FakeClock, FakeLedger, make_detail


async def test_scenario_total_from_ledger(service: DepositService, ledger: FakeLedger):
    """Two deposits by the wallet are summed, the foreign withdrawal is ignored"""
    total = await service.get_user_deposit(USER)

    assert total == Decimal("120")
    assert ledger.signature_calls == 1
    assert ledger.detail_calls == 3


async def test_wallet_without_deposits(service: DepositService):
    assert await service.get_user_deposit(OTHER_USER) == Decimal("0")


async def test_second_call_within_ttl_served_from_cache(service: DepositService, ledger: FakeLedger, clock: FakeClock):
    first = await service.get_user_deposit(USER)
    clock.advance(TTL_SECONDS - 1)
    second = await service.get_user_deposit(USER)

    assert second == first
    assert ledger.signature_calls == 1
    assert ledger.detail_calls == 3


async def test_cached_quote_reports_source_and_time(service: DepositService, clock: FakeClock):
    fresh = await service.get_deposit_quote(USER)
    clock.advance(10)
    cached = await service.get_deposit_quote(USER)

    assert fresh.source == "ledger"
    assert cached.source == "cache"
    assert cached.stale is False
    assert cached.as_of == fresh.as_of
    assert cached.as_of.timestamp() == pytest.approx(clock.now - 10)


async def test_expired_entry_triggers_new_scan(service: DepositService, ledger: FakeLedger, clock: FakeClock):
    await service.get_user_deposit(USER)
    clock.advance(TTL_SECONDS + 1)
    await service.get_user_deposit(USER)

    assert ledger.signature_calls == 2


async def test_stale_fallback_after_ttl_when_ledger_fails(
    service: DepositService,
    ledger: FakeLedger,
    cache: DepositCache,
    clock: FakeClock,
):
    """Expired entry of 70 plus a ledger outage: 70 is returned instead of an error"""
    cache.put(USER, Decimal("70"), clock.now)
    clock.advance(TTL_SECONDS + 60)
    ledger.fail_listing = True

    quote = await service.get_deposit_quote(USER)

    assert quote.amount == Decimal("70")
    assert quote.stale is True
    assert quote.source == "stale_cache"
    assert ledger.signature_calls == 1


async def test_detail_failure_also_falls_back(
    service: DepositService,
    ledger: FakeLedger,
    cache: DepositCache,
    clock: FakeClock,
):
    cache.put(USER, Decimal("70"), clock.now)
    clock.advance(TTL_SECONDS + 60)
    ledger.failing_signatures = {"sig-tx2"}

    assert await service.get_user_deposit(USER) == Decimal("70")


async def test_failure_without_cache_raises_no_data(service: DepositService, ledger: FakeLedger):
    ledger.fail_listing = True

    with pytest.raises(NoDataAvailable) as exc_info:
        await service.get_user_deposit(USER)

    assert isinstance(exc_info.value.__cause__, SourceUnavailable)


async def test_failed_scan_does_not_touch_cache(service: DepositService, ledger: FakeLedger, cache: DepositCache):
    ledger.fail_listing = True

    with pytest.raises(NoDataAvailable):
        await service.get_user_deposit(USER)

    assert cache.get(USER) is None


async def test_invalid_wallet_fails_before_network(service: DepositService, ledger: FakeLedger):
    with pytest.raises(InvalidAccount):
        await service.get_user_deposit("not-a-wallet")

    assert ledger.signature_calls == 0


async def test_invalid_wallet_not_absorbed_by_stale_cache(service: DepositService, cache: DepositCache, clock: FakeClock):
    cache.put("not-a-wallet", Decimal("5"), clock.now)

    with pytest.raises(InvalidAccount):
        await service.get_user_deposit("not-a-wallet")


async def test_retry_recovers_from_transient_failure(ledger: FakeLedger, cache: DepositCache, clock: FakeClock):
    service = DepositService(
        client=ledger,
        cache=cache,
        incubator_wallet=INCUBATOR,
        asset_mint=USDT,
        max_attempts=3,
        backoff_base=1.0,
        clock=clock,
    )
    original = ledger.get_signatures_for_address

    async def flaky(address, limit, before=None):
        if ledger.signature_calls == 0:
            ledger.signature_calls += 1
            raise SourceUnavailable("rate limited")
        return await original(address, limit, before=before)

    ledger.get_signatures_for_address = flaky

    with patch("incubator_gateway.services.deposits.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        total = await service.get_user_deposit(USER)

    assert total == Decimal("120")
    backoffs = [c.args[0] for c in mock_sleep.await_args_list if c.args[0] > 0]
    assert backoffs == [1.0]


async def test_retry_backoff_is_exponential(ledger: FakeLedger, cache: DepositCache, clock: FakeClock):
    service = DepositService(
        client=ledger,
        cache=cache,
        incubator_wallet=INCUBATOR,
        asset_mint=USDT,
        max_attempts=3,
        backoff_base=0.5,
        clock=clock,
    )
    ledger.fail_listing = True

    with patch("incubator_gateway.services.deposits.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        with pytest.raises(NoDataAvailable):
            await service.get_user_deposit(USER)

    assert ledger.signature_calls == 3
    backoffs = [c.args[0] for c in mock_sleep.await_args_list if c.args[0] > 0]
    assert backoffs == [0.5, 1.0]


async def test_concurrent_misses_share_one_scan(service: DepositService, ledger: FakeLedger):
    totals = await asyncio.gather(*(service.get_user_deposit(USER) for _ in range(5)))

    assert totals == [Decimal("120")] * 5
    assert ledger.signature_calls == 1
    assert ledger.detail_calls == 3


async def test_concurrent_misses_for_different_wallets_are_independent(service: DepositService, ledger: FakeLedger):
    user_total, other_total = await asyncio.gather(
        service.get_user_deposit(USER),
        service.get_user_deposit(OTHER_USER),
    )

    assert user_total == Decimal("120")
    assert other_total == Decimal("0")
    assert ledger.signature_calls == 2


async def test_in_flight_marker_cleared_after_failure(service: DepositService, ledger: FakeLedger):
    ledger.fail_listing = True
    with pytest.raises(NoDataAvailable):
        await service.get_user_deposit(USER)

    await asyncio.sleep(0)
    ledger.fail_listing = False

    assert await service.get_user_deposit(USER) == Decimal("120")
    assert ledger.signature_calls == 2


def _service_for(ledger: FakeLedger, cache: DepositCache, clock: FakeClock, max_attempts: int = 1) -> DepositService:
    return DepositService(
        client=ledger,
        cache=cache,
        incubator_wallet=INCUBATOR,
        asset_mint=USDT,
        max_attempts=max_attempts,
        backoff_base=0.0,
        clock=clock,
    )


async def test_corrupt_ledger_amount_falls_back_to_stale(cache: DepositCache, clock: FakeClock):
    """A NaN incubator balance breaks aggregation; the expired 70 is still served"""
    corrupt = make_detail(
        "sig-corrupt",
        [USER, INCUBATOR],
        pre=[(4, INCUBATOR, 50)],
        post=[(4, INCUBATOR, "NaN")],
    )
    service = _service_for(FakeLedger([corrupt]), cache, clock)
    cache.put(USER, Decimal("70"), clock.now)
    clock.advance(TTL_SECONDS + 60)

    quote = await service.get_deposit_quote(USER)

    assert quote.amount == Decimal("70")
    assert quote.stale is True
    assert quote.source == "stale_cache"


async def test_unexpected_error_is_not_retried(ledger: FakeLedger, cache: DepositCache, clock: FakeClock):
    service = _service_for(ledger, cache, clock, max_attempts=3)

    async def broken(signature):
        ledger.detail_calls += 1
        raise KeyError("accountIndex")

    ledger.get_parsed_transaction = broken

    with pytest.raises(NoDataAvailable) as exc_info:
        await service.get_user_deposit(USER)

    assert isinstance(exc_info.value.__cause__, KeyError)
    assert ledger.signature_calls == 1


async def test_unexpected_error_falls_back_to_stale(ledger: FakeLedger, cache: DepositCache, clock: FakeClock):
    service = _service_for(ledger, cache, clock)
    cache.put(USER, Decimal("70"), clock.now)
    clock.advance(TTL_SECONDS + 60)

    async def broken(signature):
        raise RuntimeError("unexpected payload shape")

    ledger.get_parsed_transaction = broken

    assert await service.get_user_deposit(USER) == Decimal("70")


async def test_abandoned_refresh_failure_not_reported(service: DepositService, ledger: FakeLedger):
    """A failed scan whose only caller was cancelled does not log an unretrieved exception"""
    loop = asyncio.get_running_loop()
    reported = []
    loop.set_exception_handler(lambda _loop, context: reported.append(context))
    release = asyncio.Event()

    async def blocked_listing(address, limit, before=None):
        await release.wait()
        raise SourceUnavailable("Ledger RPC getSignaturesForAddress error: 503")

    ledger.get_signatures_for_address = blocked_listing

    caller = asyncio.create_task(service.get_user_deposit(USER))
    while USER not in service._in_flight:
        await asyncio.sleep(0)
    refresh = service._in_flight[USER]

    caller.cancel()
    with pytest.raises(asyncio.CancelledError):
        await caller

    release.set()
    await asyncio.wait({refresh})
    await asyncio.sleep(0)

    assert USER not in service._in_flight
    del refresh
    gc.collect()
    loop.set_exception_handler(None)

    assert not [c for c in reported if "never retrieved" in c.get("message", "")]
