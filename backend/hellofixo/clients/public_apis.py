"""
Clients for the public India Post pincode API and the Nominatim geocoder.
"""
from typing import Any, Dict, List, Optional

from hellofixo.clients.http import RetryingHttpClient, read_json
from hellofixo.lib.settings import settings


class PostalClient:
    """``GET /pincode/<pincode>`` on api.postalpincode.in."""

    def __init__(self, http: Optional[RetryingHttpClient] = None):
        self.http = http or RetryingHttpClient(
            service="postal",
            base_url=settings.postal_api_base_url.rstrip("/"),
        )

    async def lookup(self, pincode: str) -> Optional[Dict[str, Any]]:
        """
        Look up a pincode.

        Returns:
            The first record of the response (``Status``, ``Message``,
            ``PostOffice``), or None on a non-200 answer or an unexpected body
        """
        response = await self.http.get(f"/pincode/{pincode}")
        if response.status_code != 200:
            return None
        payload = read_json(response)
        if not isinstance(payload, list) or not payload or not isinstance(payload[0], dict):
            return None
        return payload[0]

    async def aclose(self) -> None:
        await self.http.aclose()


class GeocoderClient:
    """Reverse geocoding against Nominatim (``/reverse?format=jsonv2``)."""

    def __init__(self, http: Optional[RetryingHttpClient] = None):
        self.http = http or RetryingHttpClient(
            service="geocoder",
            base_url=settings.geocoder_base_url.rstrip("/"),
            headers={"User-Agent": settings.geocoder_user_agent},
        )

    async def reverse(self, latitude: float, longitude: float) -> Optional[Dict[str, Any]]:
        response = await self.http.get(
            "/reverse",
            params={"format": "jsonv2", "lat": latitude, "lon": longitude},
        )
        if response.status_code != 200:
            return None
        payload = read_json(response)
        return payload if isinstance(payload, dict) else None

    async def aclose(self) -> None:
        await self.http.aclose()


def post_offices(record: Dict[str, Any]) -> List[Dict[str, Any]]:
    """The ``PostOffice`` list of a lookup record (the API sends null when empty)."""
    return record.get("PostOffice") or []
