"""
Wallet balance, transactions and the customer's own referral code.

Read-only: credits and debits are written by the hosted backend when
referrals are redeemed or bookings are paid.
"""
import asyncio
from typing import List, Optional

from hellofixo.clients.supabase import SupabaseGateway
from hellofixo.lib.logging import get_logger
from hellofixo.models.users import WalletSummary, WalletTransaction

logger = get_logger(__name__)


class WalletService:
    """Reads wallet data for a user."""

    def __init__(self, gateway: SupabaseGateway):
        self.gateway = gateway

    async def get_balance(self, user_id: str) -> float:
        """Current balance; a user without a wallet row has 0."""
        row = await self.gateway.select_one("wallets", filters={"user_id": f"eq.{user_id}"}, columns="balance")
        if not row:
            return 0.0
        return float(row.get("balance") or 0)

    async def get_transactions(self, user_id: str, limit: Optional[int] = None) -> List[WalletTransaction]:
        """Transactions, newest first."""
        rows = await self.gateway.select(
            "wallet_transactions",
            filters={"user_id": f"eq.{user_id}"},
            columns="type,source,note,created_at,amount",
            order="created_at.desc",
            limit=limit,
        )
        return [WalletTransaction.model_validate(row) for row in rows]

    async def get_referral_code(self, user_id: str) -> Optional[str]:
        row = await self.gateway.select_one("referral_codes", filters={"user_id": f"eq.{user_id}"}, columns="code")
        return row.get("code") if row else None

    async def get_summary(self, user_id: str) -> WalletSummary:
        """
        Balance, referral code and transactions, fetched concurrently.

        Raises:
            UpstreamError: If any of the three reads fails
        """
        balance, code, transactions = await asyncio.gather(
            self.get_balance(user_id),
            self.get_referral_code(user_id),
            self.get_transactions(user_id),
        )
        return WalletSummary(
            balance=balance,
            referral_code=code,
            transactions=transactions,
            recent_transaction=transactions[0] if transactions else None,
        )
