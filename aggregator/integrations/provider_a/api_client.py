"""
Provider A web API client.
All endpoints are JSON POSTs; the session is anonymous so no token is needed.
"""

from typing import Any

import httpx

from aggregator.config import settings
from aggregator.integrations.errors import ProviderAuthError, ProviderFetchError
from aggregator.integrations.http import ProviderHTTP
from aggregator.models.catalog import Provider

DEFAULT_HEADERS = {
    "accept": "*/*",
    "content-type": "application/json",
    # Endpoints reject requests without a csrf header, any value works
    "x-csrf-token": "x",
}


class ProviderAAPIClient:
    """Async client for Provider A store and menu item endpoints."""

    def __init__(
        self,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.http = ProviderHTTP(
            Provider.A,
            base_url or settings.provider_a_base_url,
            headers=DEFAULT_HEADERS,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.http.aclose()

    async def fetch_store(
        self,
        native_id: str,
        access_token: str | None = None,
        retail: bool = False,
    ) -> dict[str, Any]:
        """
        Fetch a store with its catalog sections.

        POST /getStoreV1 {"storeUuid": ...}
        """
        return await self.http.request_json(
            "POST", "/getStoreV1", json={"storeUuid": native_id}
        )

    async def fetch_item_detail(
        self,
        native_id: str,
        native_keys: dict[str, str],
        access_token: str | None = None,
    ) -> dict[str, Any]:
        """
        Fetch a menu item with its customizations.

        POST /getMenuItemV1; needs store_id, section_id and subsection_id in native_keys.
        """
        missing = [
            key for key in ("store_id", "section_id", "subsection_id") if not native_keys.get(key)
        ]
        if missing:
            raise ProviderFetchError(Provider.A, f"item lookup missing native keys: {missing}")

        return await self.http.request_json(
            "POST",
            "/getMenuItemV1",
            json={
                "storeUuid": native_keys["store_id"],
                "sectionUuid": native_keys["section_id"],
                "subsectionUuid": native_keys["subsection_id"],
                "menuItemUuid": native_id,
            },
        )

    async def autocomplete_location(self, query: str) -> dict[str, Any]:
        """
        Suggest delivery addresses for a partial address.

        POST /getLocationAutocompleteV1 {"query": ...}
        """
        return await self.http.request_json(
            "POST", "/getLocationAutocompleteV1", json={"query": query}
        )

    async def fetch_location_details(self, location_data: dict[str, Any]) -> dict[str, Any]:
        """
        Resolve an autocomplete suggestion to a full delivery location.

        POST /getLocationDetailsV1 with the suggestion as body
        """
        return await self.http.request_json(
            "POST", "/getLocationDetailsV1", json=location_data
        )

    async def authenticate(self, credentials: dict[str, Any] | None = None) -> dict[str, Any]:
        raise ProviderAuthError(Provider.A, "provider does not support token authentication")

    async def refresh(self, refresh_token: str) -> dict[str, Any]:
        raise ProviderAuthError(Provider.A, "provider does not support token refresh")
