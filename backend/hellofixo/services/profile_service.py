"""
Customer profile reads/updates and the role gate for the customer app.
"""
from typing import Any, Dict, Optional

from hellofixo.clients.http import UpstreamError
from hellofixo.clients.supabase import SupabaseGateway
from hellofixo.lib.logging import get_logger
from hellofixo.models.users import UserProfile

logger = get_logger(__name__)


class ProfileService:
    """Profile access backed by the ``profiles`` table."""

    def __init__(self, gateway: SupabaseGateway):
        self.gateway = gateway

    async def get_profile(self, user_id: str) -> Optional[UserProfile]:
        row = await self.gateway.select_one("profiles", filters={"id": f"eq.{user_id}"})
        return UserProfile.model_validate(row) if row else None

    async def update_profile(
        self,
        user_id: str,
        full_name: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[UserProfile]:
        """
        Update the editable profile fields. Fields left as None are not touched.

        Returns:
            The updated profile, or None if the user has no profile row
        """
        values: Dict[str, Any] = {}
        if full_name is not None:
            values["full_name"] = full_name.strip()
        if email is not None:
            values["email"] = email.strip()
        if not values:
            return await self.get_profile(user_id)

        rows = await self.gateway.update("profiles", filters={"id": f"eq.{user_id}"}, values=values)
        if not rows:
            return None
        logger.info(f"Profile updated for user {user_id}", extra={"fields": sorted(values)})
        return UserProfile.model_validate(rows[0])

    async def is_restricted(self, user_id: str) -> bool:
        """
        True for technician/admin accounts, which must use their own apps.

        A missing profile or a failed lookup is treated as unrestricted.
        """
        try:
            profile = await self.get_profile(user_id)
        except UpstreamError as e:
            logger.warning(f"Role check failed for user {user_id}: {e}")
            return False
        return profile is not None and profile.is_restricted
