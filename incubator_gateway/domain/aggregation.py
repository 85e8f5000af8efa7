"""Deposit aggregation - core logic attributing incubator credits to a wallet"""

from decimal import Decimal
from typing import Dict, Iterable, Iterator, Optional, Set
from incubator_gateway.domain.models import TokenBalance, TransactionDetail

ZERO = Decimal("0")


def _amount(balance: Optional[TokenBalance]) -> Decimal:
    if balance is None or balance.ui_amount is None:
        return ZERO
    return balance.ui_amount


def deposit_deltas(
    detail: TransactionDetail,
    custodial_address: str,
    asset_id: str,
) -> Iterator[Decimal]:
    """
    Yield the positive balance deltas crediting the custodial address in one transaction.

    Pre-balances are matched to post-balances by account index (the balance slot),
    not by owner, since the same owner can hold several slots. A missing pre-balance
    or a null amount counts as zero. Zero and negative deltas are not yielded.
    """
    pre_by_index: Dict[int, TokenBalance] = {b.account_index: b for b in detail.pre_token_balances}

    for post in detail.post_token_balances:
        if post.owner != custodial_address or post.mint != asset_id:
            continue

        delta = _amount(post) - _amount(pre_by_index.get(post.account_index))
        if delta > 0:
            yield delta


def aggregate_deposits(
    details: Iterable[Optional[TransactionDetail]],
    user: str,
    custodial_address: str,
    asset_id: str,
) -> Decimal:
    """
    Sum the deposits a wallet made into the custodial address.

    Rules:
    - Unresolved transactions (None) are skipped
    - Each signature is counted once, even if repeated in the input
    - The wallet must be a listed participant of the transaction
    - Only positive movement into the custodial address in the tracked asset counts

    Pure and deterministic: the same input always yields the same total.
    """
    total = ZERO
    seen: Set[str] = set()

    for detail in details:
        if detail is None or detail.signature in seen:
            continue
        seen.add(detail.signature)

        if user not in detail.account_keys:
            continue

        for delta in deposit_deltas(detail, custodial_address, asset_id):
            total += delta

    return total
