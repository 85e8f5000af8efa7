"""Pydantic schemas for API responses"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class DepositResponse(BaseModel):
    """Response for GET /v1/deposits/{wallet}"""

    wallet: str
    amount: Decimal = Field(..., description="USDT deposited into the incubator within the scanned window")
    as_of: datetime = Field(..., description="When the total was computed")
    stale: bool = Field(False, description="True when served from an expired cache entry after a ledger failure")
    source: str


class IncubatorResponse(BaseModel):
    """Response for GET /v1/incubator"""

    wallet: str
    mint: str
    balance: Decimal
    goal: Decimal
    progress_pct: float
