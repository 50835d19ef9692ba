"""
Outbound HTTP with an explicit timeout and a bounded retry policy.

Every remote call (hosted database, edge functions, postal API, geocoder)
goes through ``RetryingHttpClient``. Transport errors and 5xx responses are
retried with exponential backoff; 4xx responses are returned to the caller
untouched. When attempts run out an ``UpstreamError`` is raised.
"""
from typing import Any, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from hellofixo.lib.logging import get_logger, get_correlation_id
from hellofixo.lib.metrics import get_metrics_collector
from hellofixo.lib.settings import settings

logger = get_logger(__name__)


class UpstreamError(Exception):
    """A remote service could not be reached or kept failing."""

    def __init__(self, service: str, message: str, status_code: Optional[int] = None):
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class _RetryableStatus(Exception):
    """Internal marker raised for 5xx responses so tenacity retries them."""

    def __init__(self, response: httpx.Response):
        self.response = response
        super().__init__(f"HTTP {response.status_code}")


class RetryingHttpClient:
    """
    Wrapper around ``httpx.AsyncClient`` with timeout and retry policy.

    Args:
        service: Name used in logs and metrics (e.g. "supabase", "postal")
        base_url: Base URL prepended to relative request paths
        headers: Default headers for every request
        client: Optional pre-built AsyncClient (tests inject a MockTransport here)
        max_attempts: Attempts per request, including the first
        timeout: Per-request timeout in seconds
    """

    def __init__(
        self,
        service: str,
        base_url: str = "",
        headers: Optional[dict] = None,
        client: Optional[httpx.AsyncClient] = None,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
        backoff_min: Optional[float] = None,
        backoff_max: Optional[float] = None,
    ):
        self.service = service
        self.max_attempts = max_attempts or settings.http_max_attempts
        self.backoff_min = settings.http_backoff_min_seconds if backoff_min is None else backoff_min
        self.backoff_max = settings.http_backoff_max_seconds if backoff_max is None else backoff_max
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            base_url=base_url,
            headers=headers or {},
            timeout=timeout or settings.http_timeout_seconds,
        )
        self._metrics = get_metrics_collector()

    async def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """
        Send a request, retrying transport failures and 5xx responses.

        Returns:
            The final response (2xx-4xx)

        Raises:
            UpstreamError: When every attempt failed
        """
        correlation_id = get_correlation_id()
        if correlation_id:
            headers = dict(kwargs.pop("headers", None) or {})
            headers.setdefault("X-Correlation-ID", correlation_id)
            kwargs["headers"] = headers

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_min, min=self.backoff_min, max=self.backoff_max),
            retry=retry_if_exception_type((httpx.TransportError, _RetryableStatus)),
            before_sleep=self._log_retry,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._client.request(method, url, **kwargs)
                    if response.status_code >= 500:
                        raise _RetryableStatus(response)
        except RetryError as e:
            last = e.last_attempt.exception()
            self._metrics.increment_upstream(self.service, "failed")
            status_code = last.response.status_code if isinstance(last, _RetryableStatus) else None
            logger.error(
                f"{self.service} request failed after {self.max_attempts} attempts: {method} {url}",
                extra={"service": self.service, "error": str(last)},
            )
            raise UpstreamError(self.service, str(last), status_code=status_code) from last

        outcome = "ok" if response.status_code < 400 else "client_error"
        self._metrics.increment_upstream(self.service, outcome)
        return response

    async def get(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def patch(self, url: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    def _log_retry(self, retry_state) -> None:
        self._metrics.increment_upstream(self.service, "retry")
        logger.warning(
            f"Retrying {self.service} request (attempt {retry_state.attempt_number} failed)",
            extra={"service": self.service, "error": str(retry_state.outcome.exception())},
        )

    async def aclose(self) -> None:
        """Close the underlying client if this wrapper created it."""
        if self._owns_client:
            await self._client.aclose()


def read_json(response: httpx.Response, default: Any = None) -> Any:
    """Decode a JSON body, returning ``default`` for empty or non-JSON bodies."""
    try:
        return response.json()
    except ValueError:
        return default
