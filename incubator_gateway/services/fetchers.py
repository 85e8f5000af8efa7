"""Activity listing and bounded-concurrency transaction detail fetching"""

import asyncio
import logging
import time
from typing import List, Optional, Sequence

from incubator_gateway.domain.models import ActivityRecord, TransactionDetail
from incubator_gateway.infrastructure.clients.solana_rpc import MAX_SIGNATURES_PAGE, SolanaRpcClient
from incubator_gateway.infrastructure.observability.metrics import detail_batch_counter

logger = logging.getLogger(__name__)


async def fetch_recent_activity(
    client: SolanaRpcClient,
    address: str,
    limit: int,
) -> List[ActivityRecord]:
    """
    Retrieve up to `limit` activity records for an address, most recent first.

    Pages backwards with the `before` cursor when `limit` exceeds one RPC page.
    No retries: a failed page raises SourceUnavailable and the caller decides.
    """
    records: List[ActivityRecord] = []
    before = None

    while len(records) < limit:
        page_size = min(limit - len(records), MAX_SIGNATURES_PAGE)
        page = await client.get_signatures_for_address(address, page_size, before=before)
        records.extend(page[:page_size])

        if len(page) < page_size:
            break
        before = page[-1].signature

    return records


async def fetch_details(
    client: SolanaRpcClient,
    records: Sequence[ActivityRecord],
    batch_size: int,
) -> List[Optional[TransactionDetail]]:
    """
    Fetch parsed transaction detail for every record.

    Records are split into batches of `batch_size`. Requests inside a batch run
    concurrently; the next batch starts only after the whole previous batch has
    completed, so at most `batch_size` requests are outstanding at once.

    Each output slot corresponds to one input record, None where the ledger could
    not resolve it. Records the listing already marks as failed are not requested
    and come back as None. Any request failure fails the whole call.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")

    details: List[Optional[TransactionDetail]] = []

    for start in range(0, len(records), batch_size):
        batch = records[start:start + batch_size]
        batch_started = time.monotonic()

        results = await asyncio.gather(
            *(_fetch_one(client, record) for record in batch)
        )
        details.extend(results)

        detail_batch_counter.inc()
        logger.debug(
            "Fetched detail batch",
            extra={
                "batch_start": start,
                "batch_size": len(batch),
                "duration_ms": round((time.monotonic() - batch_started) * 1000, 2),
            },
        )

    return details


async def _fetch_one(client: SolanaRpcClient, record: ActivityRecord) -> Optional[TransactionDetail]:
    if record.failed:
        return None
    return await client.get_parsed_transaction(record.signature)
