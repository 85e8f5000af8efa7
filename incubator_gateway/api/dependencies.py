"""Dependency injection for FastAPI endpoints"""

from functools import lru_cache
from fastapi import Request
from incubator_gateway.config import settings
from incubator_gateway.infrastructure.cache.deposit_cache import DepositCache
from incubator_gateway.infrastructure.clients.solana_rpc import SolanaRpcClient
from incubator_gateway.services.deposits import DepositService
from incubator_gateway.services.incubator import IncubatorService


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_rpc_client() -> SolanaRpcClient:
    """Provide ledger JSON-RPC client instance"""
    return SolanaRpcClient()


@lru_cache
def get_deposit_service() -> DepositService:
    """Provide the process-wide deposit service (owns the deposit cache)"""
    cache = DepositCache(
        ttl_seconds=settings.cache_ttl_seconds,
        retention_seconds=settings.cache_retention_seconds,
        max_entries=settings.cache_max_entries,
    )
    return DepositService(client=get_rpc_client(), cache=cache)


def get_incubator_service() -> IncubatorService:
    """Provide incubator balance service instance"""
    return IncubatorService(client=get_rpc_client())
