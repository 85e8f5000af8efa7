"""Deposit lookup orchestration: cache, ledger scan, aggregation, stale fallback"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict

from incubator_gateway.config import settings
from incubator_gateway.domain.aggregation import aggregate_deposits
from incubator_gateway.domain.exceptions import NoDataAvailable, SourceUnavailable
from incubator_gateway.domain.models import CacheEntry, DepositQuote
from incubator_gateway.infrastructure.cache.deposit_cache import DepositCache
from incubator_gateway.infrastructure.clients.solana_rpc import SolanaRpcClient
from incubator_gateway.infrastructure.observability.logging import log_deposit_lookup
from incubator_gateway.infrastructure.observability.metrics import deposit_pipeline_histogram, record_lookup
from incubator_gateway.services.fetchers import fetch_details, fetch_recent_activity
from incubator_gateway.utils.account_utils import validate_account

logger = logging.getLogger(__name__)


def _quote(wallet: str, entry: CacheEntry, stale: bool, source: str) -> DepositQuote:
    return DepositQuote(
        wallet=wallet,
        amount=entry.amount,
        as_of=datetime.fromtimestamp(entry.timestamp, tz=timezone.utc),
        stale=stale,
        source=source,
    )


class DepositService:
    """
    Computes how much USDT a wallet has deposited into the incubator.

    Flow per call:
    1. Validate the wallet id (InvalidAccount, no network)
    2. Purge past-retention cache entries, serve a fresh entry if one exists
    3. Otherwise scan the incubator's recent signatures, fetch details in
       bounded batches and aggregate the wallet's deposits
    4. Store the total and return it
    5. If the scan fails on every attempt, fall back to the last cached total
       of any age, else raise NoDataAvailable

    Concurrent cache misses for the same wallet share a single scan.
    """

    def __init__(
        self,
        client: SolanaRpcClient,
        cache: DepositCache,
        incubator_wallet: str | None = None,
        asset_mint: str | None = None,
        scan_limit: int | None = None,
        batch_size: int | None = None,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.cache = cache
        self.incubator_wallet = incubator_wallet or settings.incubator_wallet
        self.asset_mint = asset_mint or settings.usdt_mint
        self.scan_limit = scan_limit or settings.signature_scan_limit
        self.batch_size = batch_size or settings.detail_batch_size
        self.max_attempts = max(1, max_attempts or settings.pipeline_max_attempts)
        self.backoff_base = settings.pipeline_backoff_base if backoff_base is None else backoff_base
        self.clock = clock
        self._in_flight: Dict[str, asyncio.Task] = {}

    async def get_user_deposit(self, wallet: str) -> Decimal:
        """Total deposited by the wallet within the scanned window"""
        quote = await self.get_deposit_quote(wallet)
        return quote.amount

    async def get_deposit_quote(self, wallet: str) -> DepositQuote:
        """
        Deposit total with its computation time and staleness flag.

        Raises:
            InvalidAccount: Wallet id is malformed
            NoDataAvailable: Ledger scan failed and nothing is cached for the wallet
        """
        wallet = validate_account(wallet)
        started = time.monotonic()

        entry = self.cache.lookup_fresh(wallet, self.clock())
        if entry is not None:
            record_lookup("cache_hit")
            log_deposit_lookup(wallet, "cache_hit", entry.amount, (time.monotonic() - started) * 1000)
            return _quote(wallet, entry, stale=False, source="cache")

        task = self._in_flight.get(wallet)
        if task is None:
            task = asyncio.create_task(self._refresh(wallet))
            self._in_flight[wallet] = task
            task.add_done_callback(lambda t: self._refresh_done(wallet, t))

        try:
            quote = await asyncio.shield(task)
        except NoDataAvailable:
            record_lookup("failed")
            log_deposit_lookup(wallet, "failed", None, (time.monotonic() - started) * 1000)
            raise

        outcome = "stale_fallback" if quote.stale else "ledger"
        record_lookup(outcome)
        log_deposit_lookup(wallet, outcome, quote.amount, (time.monotonic() - started) * 1000)
        return quote

    def _refresh_done(self, wallet: str, task: asyncio.Task) -> None:
        self._in_flight.pop(wallet, None)
        # Mark the outcome as retrieved even if every awaiter was cancelled
        if not task.cancelled():
            task.exception()

    async def _refresh(self, wallet: str) -> DepositQuote:
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                with deposit_pipeline_histogram.time():
                    total = await self._scan(wallet)
            except SourceUnavailable as e:
                last_error = e
                logger.warning(
                    f"Deposit scan failed: {e}",
                    extra={"wallet": wallet, "attempt": attempt, "max_attempts": self.max_attempts},
                )
                if attempt < self.max_attempts:
                    # Exponential backoff: base, 2*base, 4*base, ...
                    await asyncio.sleep(self.backoff_base * (2 ** (attempt - 1)))
                continue
            except Exception as e:
                # Not retried
                last_error = e
                logger.exception(f"Unexpected deposit scan error: {e}", extra={"wallet": wallet, "attempt": attempt})
                break

            now = self.clock()
            self.cache.put(wallet, total, now)
            return _quote(wallet, CacheEntry(amount=total, timestamp=now), stale=False, source="ledger")

        stale = self.cache.get_stale(wallet)
        if stale is not None:
            logger.warning(
                "Serving stale deposit total",
                extra={"wallet": wallet, "age_seconds": round(self.clock() - stale.timestamp, 1)},
            )
            return _quote(wallet, stale, stale=True, source="stale_cache")

        raise NoDataAvailable(f"No deposit data available for {wallet}: {last_error}") from last_error

    async def _scan(self, wallet: str) -> Decimal:
        records = await fetch_recent_activity(self.client, self.incubator_wallet, self.scan_limit)
        details = await fetch_details(self.client, records, self.batch_size)
        return aggregate_deposits(details, wallet, self.incubator_wallet, self.asset_mint)
