"""
Wallet API routes.
"""
from fastapi import APIRouter, Depends

from hellofixo.api.dependencies import get_current_user, get_wallet_service
from hellofixo.models.users import CurrentUser, WalletSummary
from hellofixo.services.wallet_service import WalletService


router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("", response_model=WalletSummary)
async def get_wallet(
    user: CurrentUser = Depends(get_current_user),
    wallet: WalletService = Depends(get_wallet_service),
) -> WalletSummary:
    """Balance, own referral code and transaction list of the signed-in customer."""
    return await wallet.get_summary(user.id)
