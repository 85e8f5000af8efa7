"""Domain models - pure Python dataclasses representing ledger and deposit entities"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional


@dataclass
class ActivityRecord:
    """Reference to one historical ledger event touching an address"""

    signature: str
    failed: bool = False  # ledger reported an error for the transaction


@dataclass
class TokenBalance:
    """One per-account, per-mint balance slot of a transaction snapshot"""

    account_index: int
    mint: str
    owner: Optional[str]
    ui_amount: Optional[Decimal]  # None when the ledger reports no amount


@dataclass
class TransactionDetail:
    """Parsed transaction with its participants and token balance snapshots"""

    signature: str
    account_keys: List[str]
    pre_token_balances: List[TokenBalance] = field(default_factory=list)
    post_token_balances: List[TokenBalance] = field(default_factory=list)


@dataclass
class CacheEntry:
    """Last successfully computed deposit total for a wallet"""

    amount: Decimal
    timestamp: float  # epoch seconds


@dataclass
class DepositQuote:
    """Deposit total together with when it was computed"""

    wallet: str
    amount: Decimal
    as_of: datetime
    stale: bool
    source: str  # "cache" | "ledger" | "stale_cache"


@dataclass
class IncubatorStatus:
    """Current incubator balance and progress toward the funding goal"""

    wallet: str
    mint: str
    balance: Decimal
    goal: Decimal
    progress_pct: float
