"""
Provider C mobile API client.
Data endpoints take a `JWT <token>` authorization header. A new session is a
two-step flow: create a guest profile, then log in with its email.
"""

from typing import Any

import httpx
import structlog

from aggregator.config import settings
from aggregator.integrations.errors import ProviderAuthError, ProviderFetchError
from aggregator.integrations.http import ProviderHTTP
from aggregator.models.catalog import Provider

logger = structlog.get_logger()

DEFAULT_HEADERS = {
    "accept": "application/json",
    "content-type": "application/json",
    "x-support-nested-menu": "true",
}


class ProviderCAPIClient:
    """Async client for Provider C store, item and identity endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        identity_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.identity_url = (identity_url or settings.provider_c_identity_url).rstrip("/")
        self.http = ProviderHTTP(
            Provider.C,
            base_url or settings.provider_c_base_url,
            headers={**DEFAULT_HEADERS, "x-experience-id": settings.provider_c_experience_id},
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    @staticmethod
    def _auth_headers(access_token: str | None) -> dict[str, str]:
        if not access_token:
            raise ProviderFetchError(Provider.C, "access token required")
        return {"authorization": f"JWT {access_token}"}

    async def fetch_store(
        self,
        native_id: str,
        access_token: str | None = None,
        retail: bool = False,
    ) -> dict[str, Any]:
        """
        Fetch a store page.

        GET /v3/stores/{id} for restaurants, GET /v1/convenience/stores/{id} for retail.
        """
        path = f"/v1/convenience/stores/{native_id}" if retail else f"/v3/stores/{native_id}"
        return await self.http.request_json(
            "GET", path, headers=self._auth_headers(access_token)
        )

    async def fetch_item_detail(
        self,
        native_id: str,
        native_keys: dict[str, str],
        access_token: str | None = None,
    ) -> dict[str, Any]:
        """
        Fetch an item with its option lists.

        GET /v2/stores/{store_id}/items/{id}
        """
        store_id = native_keys.get("store_id")
        if not store_id:
            raise ProviderFetchError(Provider.C, "item lookup missing native key: store_id")
        return await self.http.request_json(
            "GET",
            f"/v2/stores/{store_id}/items/{native_id}",
            headers=self._auth_headers(access_token),
        )

    async def authenticate(self, credentials: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Log in, creating a guest profile first when no email is given.

        Returns:
            Identity response containing {"token": {"token", "refresh_token"}}
        """
        credentials = credentials or {}
        password = credentials.get("password") or settings.provider_c_guest_password
        email = credentials.get("email")
        if not password:
            raise ProviderAuthError(Provider.C, "guest password not configured")

        if not email:
            logger.info("Creating Provider C guest profile")
            profile = await self.http.request_json(
                "POST",
                "/v1/consumer_profile/create_full_guest",
                json={"password": password},
                auth=True,
            )
            email = profile.get("email")
            if not email:
                raise ProviderAuthError(Provider.C, "guest profile response has no email")

        return await self.http.request_json(
            "POST",
            f"{self.identity_url}/api/v1/auth/token",
            json={"credentials": {"email": email, "password": password}},
            headers={"authorization": settings.provider_c_default_auth_token},
            auth=True,
        )

    async def refresh(self, refresh_token: str) -> dict[str, Any]:
        """
        Exchange a refresh token for a new token pair.

        POST {identity}/api/v1/auth/token/refresh
        """
        return await self.http.request_json(
            "POST",
            f"{self.identity_url}/api/v1/auth/token/refresh",
            json={"refresh_token": refresh_token},
            auth=True,
        )
