"""
Shared httpx plumbing for provider clients.
Owns the AsyncClient lifecycle, transient-error retries and the mapping of
transport failures onto ProviderFetchError / ProviderAuthError.
"""

from typing import Any

import httpx
import structlog

from aggregator.config import settings
from aggregator.integrations.errors import ProviderAuthError, ProviderFetchError
from aggregator.models.catalog import Provider
from aggregator.utils.retry import TransientError, retry_with_backoff

logger = structlog.get_logger()


class ProviderHTTP:
    """Async JSON transport for one provider."""

    def __init__(
        self,
        provider: Provider,
        base_url: str,
        headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float | None = None,
    ):
        """
        Initialize the provider transport.

        Args:
            provider: Provider the requests go to (used for errors and logs)
            base_url: Provider API base URL
            headers: Headers sent on every request
            transport: Optional httpx transport (tests use httpx.MockTransport)
            timeout: Request timeout in seconds (default from settings)
        """
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.headers = headers or {}
        self._transport = transport
        self._timeout = timeout or settings.http_timeout_seconds
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                headers=self.headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def request_json(
        self,
        method: str,
        path: str,
        *,
        auth: bool = False,
        retry: bool | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        """
        Send a request and decode the JSON body.

        Args:
            method: HTTP method
            path: Path relative to base_url, or an absolute URL
            auth: True for token endpoints (failures raise ProviderAuthError)
            retry: Retry transient failures; defaults to False on token endpoints,
                which are not safe to repeat
            **kwargs: Passed through to httpx (json, params, headers)

        Returns:
            Decoded JSON object

        Raises:
            ProviderFetchError: Non-2xx or undecodable response on data endpoints
            ProviderAuthError: Any failure on token endpoints
        """
        url = path if path.startswith("http") else f"{self.base_url}/{path.lstrip('/')}"
        error_cls = ProviderAuthError if auth else ProviderFetchError
        if retry is None:
            retry = not auth
        send = self._send_with_retry if retry else self._send
        try:
            response = await send(method, url, **kwargs)
        except (TransientError, httpx.HTTPError) as e:
            cause = e.__cause__ if isinstance(e, TransientError) and e.__cause__ else e
            status_code = (
                cause.response.status_code if isinstance(cause, httpx.HTTPStatusError) else None
            )
            logger.error(
                "Provider request failed",
                provider=self.provider.value,
                url=url,
                status_code=status_code,
                error=str(cause),
            )
            if auth:
                raise ProviderAuthError(self.provider, f"{method} {url} failed: {cause}") from e
            raise ProviderFetchError(
                self.provider, f"{method} {url} failed: {cause}", status_code=status_code
            ) from e

        try:
            data = response.json()
        except ValueError as e:
            logger.error(
                "Provider returned non-JSON body",
                provider=self.provider.value,
                url=url,
                body=response.text[:200],
            )
            raise error_cls(self.provider, f"{method} {url} returned invalid JSON") from e

        if not isinstance(data, dict):
            raise error_cls(self.provider, f"{method} {url} returned {type(data).__name__}")
        return data

    @retry_with_backoff()
    async def _send_with_retry(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        return await self._send(method, url, **kwargs)

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        response = await client.request(method, url, **kwargs)
        response.raise_for_status()
        return response
