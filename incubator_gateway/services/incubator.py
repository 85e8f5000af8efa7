"""Incubator balance and funding goal read path"""

from decimal import Decimal

from incubator_gateway.config import settings
from incubator_gateway.domain.models import IncubatorStatus
from incubator_gateway.domain.progress import goal_progress_pct
from incubator_gateway.infrastructure.clients.solana_rpc import SolanaRpcClient
from incubator_gateway.utils.account_utils import associated_token_address


class IncubatorService:
    """Reads the incubator's current USDT holdings"""

    def __init__(
        self,
        client: SolanaRpcClient,
        incubator_wallet: str | None = None,
        asset_mint: str | None = None,
        goal_amount: Decimal | int | None = None,
    ):
        self.client = client
        self.incubator_wallet = incubator_wallet or settings.incubator_wallet
        self.asset_mint = asset_mint or settings.usdt_mint
        self.goal = Decimal(goal_amount if goal_amount is not None else settings.incubator_goal_amount)
        self.token_account = associated_token_address(self.incubator_wallet, self.asset_mint)

    async def get_status(self) -> IncubatorStatus:
        """
        Current balance of the incubator's associated token account.

        Raises:
            SourceUnavailable: Ledger could not be read
        """
        balance = await self.client.get_token_account_balance(self.token_account)
        return IncubatorStatus(
            wallet=self.incubator_wallet,
            mint=self.asset_mint,
            balance=balance,
            goal=self.goal,
            progress_pct=goal_progress_pct(balance, self.goal),
        )
