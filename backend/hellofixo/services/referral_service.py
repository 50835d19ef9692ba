"""
Referral / coupon code verification against the ``check-referral`` function.

The function owns every rule (first booking only, self-referral, expiry).
This side only trims the code, forwards it with the customer's mobile
number and turns the answer into a discount.
"""
from typing import Literal, Optional

from pydantic import BaseModel

from hellofixo.clients.http import UpstreamError
from hellofixo.clients.supabase import SupabaseGateway
from hellofixo.lib.i18n import translate
from hellofixo.lib.logging import get_logger
from hellofixo.lib.metrics import get_metrics_collector

logger = get_logger(__name__)


class ReferralResult(BaseModel):
    code: str
    status: Literal["success", "error"]
    discount: float = 0
    message: str

    @property
    def is_valid(self) -> bool:
        return self.status == "success"


class ReferralService:
    """Verifies referral codes for a booking."""

    def __init__(self, gateway: SupabaseGateway):
        self.gateway = gateway
        self.metrics = get_metrics_collector()

    async def verify(self, code: Optional[str], mobile_number: Optional[str], lang: str = "en") -> ReferralResult:
        """
        Verify a referral code.

        A rejected or unverifiable code always yields ``discount == 0``, so
        it can never reduce the payable amount.

        Args:
            code: Code as typed by the customer
            mobile_number: Customer's mobile number
            lang: Response language

        Returns:
            ReferralResult with status, discount and a display message
        """
        code = (code or "").strip()
        if not code:
            return ReferralResult(code="", status="error", message=translate("referralEmpty", lang))

        try:
            payload = await self.gateway.invoke(
                "check-referral",
                json={"referral_code": code, "mobile_number": mobile_number or ""},
            )
        except UpstreamError as e:
            # Includes a 4xx answer from the function itself
            logger.warning(f"Referral check failed for code {code}: {e}")
            self.metrics.increment_referral_checks("error")
            return ReferralResult(code=code, status="error", message=translate("referralUnavailable", lang))

        payload = payload if isinstance(payload, dict) else {}
        message = payload.get("message")

        if payload.get("valid") is True:
            discount = max(float(payload.get("discount") or 0), 0)
            self.metrics.increment_referral_checks("success")
            logger.info(f"Referral code {code} applied", extra={"discount": discount})
            return ReferralResult(
                code=code,
                status="success",
                discount=discount,
                message=message or translate("referralApplied", lang),
            )

        self.metrics.increment_referral_checks("rejected")
        return ReferralResult(
            code=code,
            status="error",
            discount=0,
            message=message or translate("referralInvalid", lang),
        )
