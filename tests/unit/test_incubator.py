"""Unit tests for incubator balance and goal progress"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock

from incubator_gateway.domain.exceptions import SourceUnavailable
from incubator_gateway.domain.progress import goal_progress_pct
from incubator_gateway.services.incubator import IncubatorService
from incubator_gateway.utils.account_utils import associated_token_address
from factories import INCUBATOR, USDT


def test_goal_progress_partial():
    assert goal_progress_pct(Decimal("8250"), Decimal("33000")) == 25.0


def test_goal_progress_rounds_to_two_places():
    assert goal_progress_pct(Decimal("1"), Decimal("3")) == 33.33


def test_goal_progress_capped_at_100():
    assert goal_progress_pct(Decimal("40000"), Decimal("33000")) == 100.0


def test_goal_progress_zero_goal():
    assert goal_progress_pct(Decimal("5"), Decimal("0")) == 100.0


async def test_status_reads_incubator_token_account():
    client = AsyncMock()
    client.get_token_account_balance.return_value = Decimal("16500")
    service = IncubatorService(client, incubator_wallet=INCUBATOR, asset_mint=USDT, goal_amount=33_000)

    status = await service.get_status()

    client.get_token_account_balance.assert_awaited_once_with(associated_token_address(INCUBATOR, USDT))
    assert status.balance == Decimal("16500")
    assert status.goal == Decimal("33000")
    assert status.progress_pct == 50.0
    assert status.wallet == INCUBATOR
    assert status.mint == USDT


async def test_status_propagates_ledger_failure():
    client = AsyncMock()
    client.get_token_account_balance.side_effect = SourceUnavailable("Ledger RPC getTokenAccountBalance error: 503")
    service = IncubatorService(client, incubator_wallet=INCUBATOR, asset_mint=USDT)

    with pytest.raises(SourceUnavailable):
        await service.get_status()
