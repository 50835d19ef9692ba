"""
Referral API routes.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from hellofixo.api.dependencies import get_optional_user, get_referral_service
from hellofixo.lib.request_context import get_language
from hellofixo.models.users import CurrentUser
from hellofixo.services.referral_service import ReferralResult, ReferralService


class VerifyReferralRequest(BaseModel):
    code: str = Field("", description="Referral/coupon code as typed")
    mobile_number: Optional[str] = Field(None, description="Defaults to the signed-in customer's phone")


router = APIRouter(prefix="/referrals", tags=["referrals"])


@router.post("/verify", response_model=ReferralResult)
async def verify_referral(
    body: VerifyReferralRequest,
    request: Request,
    referrals: ReferralService = Depends(get_referral_service),
    user: Optional[CurrentUser] = Depends(get_optional_user),
) -> ReferralResult:
    """
    Check a referral code.

    Always answers 200: a rejected or unverifiable code comes back with
    ``status: error`` and a zero discount.
    """
    mobile = body.mobile_number or (user.phone if user else None)
    return await referrals.verify(body.code, mobile, get_language(request))
