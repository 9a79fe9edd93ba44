"""
Provider B mobile API client.
Data endpoints need a Bearer access token; tokens come from the anonymous
/auth endpoint and are renewed through /auth/refresh.
"""

from typing import Any

import httpx
import structlog

from aggregator.config import settings
from aggregator.integrations.errors import ProviderFetchError
from aggregator.integrations.http import ProviderHTTP
from aggregator.models.catalog import Provider

logger = structlog.get_logger()

DEFAULT_HEADERS = {
    "accept": "*/*",
    "content-type": "application/json",
    "accept-language": "en-us",
}


class ProviderBAPIClient:
    """Async client for Provider B restaurant, menu item and auth endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        client_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_id = client_id or settings.provider_b_client_id
        self.http = ProviderHTTP(
            Provider.B,
            base_url or settings.provider_b_base_url,
            headers=DEFAULT_HEADERS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    @staticmethod
    def _auth_headers(access_token: str | None) -> dict[str, str]:
        if not access_token:
            raise ProviderFetchError(Provider.B, "access token required")
        return {"authorization": f"Bearer {access_token}"}

    async def fetch_store(
        self,
        native_id: str,
        access_token: str | None = None,
        retail: bool = False,
    ) -> dict[str, Any]:
        """
        Fetch a restaurant with its menu and availability.

        GET /restaurants/{id}
        """
        return await self.http.request_json(
            "GET",
            f"/restaurants/{native_id}",
            params={"hideChoiceCategories": "true", "hideUnavailableMenuItems": "true"},
            headers=self._auth_headers(access_token),
        )

    async def fetch_item_detail(
        self,
        native_id: str,
        native_keys: dict[str, str],
        access_token: str | None = None,
    ) -> dict[str, Any]:
        """
        Fetch a menu item with its choice categories.

        GET /restaurants/{store_id}/menu_items/{id}
        """
        store_id = native_keys.get("store_id")
        if not store_id:
            raise ProviderFetchError(Provider.B, "item lookup missing native key: store_id")
        return await self.http.request_json(
            "GET",
            f"/restaurants/{store_id}/menu_items/{native_id}",
            params={"hideUnavailableMenuItems": "true"},
            headers=self._auth_headers(access_token),
        )

    async def authenticate(self, credentials: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Create an anonymous session.

        POST /auth {"brand", "client_id", "scope"}
        """
        body = {
            "brand": settings.provider_b_brand,
            "client_id": (credentials or {}).get("client_id") or self.client_id,
            "scope": "anonymous",
        }
        logger.info("Creating new Provider B session")
        return await self.http.request_json("POST", "/auth", json=body, auth=True)

    async def refresh(self, refresh_token: str) -> dict[str, Any]:
        """
        Exchange a refresh token for a new session.

        POST /auth/refresh
        """
        headers = {}
        if settings.provider_b_px_token:
            headers["x-px-original-token"] = settings.provider_b_px_token
        body = {
            "brand": settings.provider_b_brand,
            "client_id": self.client_id,
            "scope": "anonymous",
            "refresh_token": refresh_token,
        }
        return await self.http.request_json(
            "POST", "/auth/refresh", json=body, headers=headers, auth=True
        )
