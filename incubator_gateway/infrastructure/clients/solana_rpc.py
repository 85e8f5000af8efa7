"""Solana JSON-RPC client for reading incubator ledger history"""

import itertools
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

import httpx

from incubator_gateway.config import settings
from incubator_gateway.domain.exceptions import SourceUnavailable
from incubator_gateway.domain.models import ActivityRecord, TokenBalance, TransactionDetail
from incubator_gateway.infrastructure.observability.metrics import (
    ledger_rpc_failure_counter,
    ledger_rpc_latency_histogram,
)

logger = logging.getLogger(__name__)

# getSignaturesForAddress refuses larger pages
MAX_SIGNATURES_PAGE = 1000


class SolanaRpcClient:
    """Client for the ledger's JSON-RPC query interface"""

    def __init__(
        self,
        rpc_url: str | None = None,
        timeout: float | None = None,
        commitment: str | None = None,
        max_supported_transaction_version: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.rpc_url = rpc_url or settings.solana_rpc_url
        self.timeout = timeout or settings.http_timeout_seconds
        self.commitment = commitment or settings.rpc_commitment
        if max_supported_transaction_version is None:
            max_supported_transaction_version = settings.max_supported_transaction_version
        self.max_supported_transaction_version = max_supported_transaction_version
        self.transport = transport
        self._ids = itertools.count(1)

    async def get_signatures_for_address(
        self,
        address: str,
        limit: int,
        before: str | None = None,
    ) -> List[ActivityRecord]:
        """
        List recent signatures for an address, most recent first.

        Raises:
            SourceUnavailable: On network errors, RPC errors, or malformed response
        """
        options: Dict[str, Any] = {
            "limit": min(limit, MAX_SIGNATURES_PAGE),
            "commitment": self.commitment,
        }
        if before:
            options["before"] = before

        result = await self._call("getSignaturesForAddress", [address, options])
        try:
            return [
                ActivityRecord(
                    signature=item["signature"],
                    failed=item.get("err") is not None,
                )
                for item in result
            ]
        except (KeyError, TypeError, AttributeError) as e:
            raise SourceUnavailable(f"Invalid signature listing from ledger: {e}") from e

    async def get_parsed_transaction(self, signature: str) -> Optional[TransactionDetail]:
        """
        Fetch one transaction in jsonParsed encoding.

        Returns None when the ledger cannot resolve it (unknown, pruned,
        missing metadata) or when the transaction itself failed.

        Raises:
            SourceUnavailable: On network errors, RPC errors, or malformed response
        """
        options = {
            "encoding": "jsonParsed",
            "maxSupportedTransactionVersion": self.max_supported_transaction_version,
            "commitment": self.commitment,
        }
        result = await self._call("getTransaction", [signature, options])
        if result is None:
            return None

        try:
            meta = result.get("meta")
            if meta is None or meta.get("err") is not None:
                return None

            transaction = result["transaction"]
            account_keys = [
                key["pubkey"] if isinstance(key, dict) else key
                for key in transaction["message"]["accountKeys"]
            ]
            signatures = transaction.get("signatures") or [signature]

            return TransactionDetail(
                signature=signatures[0],
                account_keys=account_keys,
                pre_token_balances=[_parse_token_balance(b) for b in meta.get("preTokenBalances") or []],
                post_token_balances=[_parse_token_balance(b) for b in meta.get("postTokenBalances") or []],
            )
        except (KeyError, TypeError, AttributeError, IndexError, InvalidOperation) as e:
            raise SourceUnavailable(f"Invalid transaction data for {signature}: {e}") from e

    async def get_token_account_balance(self, token_account: str) -> Decimal:
        """
        Read the ui-scaled balance of a token account.

        Raises:
            SourceUnavailable: On network errors, RPC errors, or malformed response
        """
        result = await self._call("getTokenAccountBalance", [token_account, {"commitment": self.commitment}])
        try:
            return _parse_ui_amount(result["value"]) or Decimal("0")
        except (KeyError, TypeError, InvalidOperation) as e:
            raise SourceUnavailable(f"Invalid token balance for {token_account}: {e}") from e

    async def _call(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with ledger_rpc_latency_histogram.labels(method=method).time():
                    response = await client.post(self.rpc_url, json=payload)
                    response.raise_for_status()
                    body = response.json()

            except httpx.TimeoutException as e:
                ledger_rpc_failure_counter.labels(method=method).inc()
                raise SourceUnavailable(f"Ledger RPC {method} timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                ledger_rpc_failure_counter.labels(method=method).inc()
                raise SourceUnavailable(f"Ledger RPC {method} error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                ledger_rpc_failure_counter.labels(method=method).inc()
                raise SourceUnavailable(f"Ledger RPC {method} request failed: {e}") from e
            except ValueError as e:
                ledger_rpc_failure_counter.labels(method=method).inc()
                raise SourceUnavailable(f"Ledger RPC {method} returned invalid JSON") from e

        if not isinstance(body, dict):
            ledger_rpc_failure_counter.labels(method=method).inc()
            raise SourceUnavailable(f"Ledger RPC {method} returned unexpected payload")

        if body.get("error") is not None:
            ledger_rpc_failure_counter.labels(method=method).inc()
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise SourceUnavailable(f"Ledger RPC {method} failed: {message}")

        return body.get("result")


def _parse_ui_amount(token_amount: Dict[str, Any]) -> Optional[Decimal]:
    # uiAmountString keeps full precision; uiAmount is a float and may be null
    raw = token_amount.get("uiAmountString")
    if raw is None:
        raw = token_amount.get("uiAmount")
    if raw is None:
        return None
    value = Decimal(str(raw))
    if not value.is_finite():
        raise InvalidOperation(f"non-finite token amount {raw!r}")
    return value


def _parse_token_balance(entry: Dict[str, Any]) -> TokenBalance:
    account_index = entry["accountIndex"]
    if not isinstance(account_index, int) or isinstance(account_index, bool):
        raise TypeError(f"accountIndex must be an integer, got {account_index!r}")
    return TokenBalance(
        account_index=account_index,
        mint=entry["mint"],
        owner=entry.get("owner"),
        ui_amount=_parse_ui_amount(entry.get("uiTokenAmount") or {}),
    )
