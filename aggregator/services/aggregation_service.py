"""
Aggregation service.
Fans out to every requested provider concurrently, normalizes what comes back
and hands the results to the merger. A provider that fails (auth, transport or
payload shape) simply contributes nothing.
"""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar

import structlog

from aggregator.config import settings
from aggregator.integrations.base import LocationClient
from aggregator.integrations.errors import (
    MalformedPayloadError,
    NoProviderDataError,
    ProviderError,
    ProviderFetchError,
)
from aggregator.integrations.registry import ProviderRegistry, provider_registry
from aggregator.integrations.token_store import TokenStore
from aggregator.models.catalog import ItemDetailResult, Provider, ProviderRequest, Store
from aggregator.services.merger import CatalogMerger
from aggregator.services.normalizer import CatalogNormalizer

logger = structlog.get_logger()

T = TypeVar("T")


class AggregationService:
    """Orchestrates provider fetches, normalization and merging."""

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        token_store: TokenStore | None = None,
        normalizer: CatalogNormalizer | None = None,
        merger: CatalogMerger | None = None,
    ):
        self.registry = registry or provider_registry
        self.token_store = token_store or TokenStore(self.registry)
        self.normalizer = normalizer or CatalogNormalizer(self.registry)
        self.merger = merger or CatalogMerger(self.normalizer)

    async def aclose(self) -> None:
        await self.registry.aclose()

    async def _access_token(self, provider: Provider) -> str | None:
        if not self.registry.get_adapter(provider).requires_auth:
            return None
        token = await self.token_store.get_valid_token(provider)
        return token.access_token

    async def _fan_out(
        self,
        requests: Sequence[ProviderRequest],
        call: Callable[[ProviderRequest], Awaitable[T]],
        operation: str,
    ) -> list[tuple[Provider, T]]:
        """
        Run `call` for every requested provider concurrently.

        Results keep request order regardless of completion order; providers
        that raised a ProviderError are logged and left out.
        """
        active = [request for request in requests if request.is_requested]
        skipped = [request.provider.value for request in requests if not request.is_requested]
        if skipped:
            logger.debug("Providers not requested", operation=operation, providers=skipped)

        async def guarded(request: ProviderRequest) -> T | None:
            try:
                return await call(request)
            except ProviderError as e:
                logger.warning(
                    "Provider contributed nothing",
                    operation=operation,
                    provider=request.provider.value,
                    native_id=request.native_id,
                    error=e.message,
                    error_type=type(e).__name__,
                )
                return None

        results = await asyncio.gather(*(guarded(request) for request in active))
        return [
            (request.provider, result)
            for request, result in zip(active, results)
            if result is not None
        ]

    async def detail_store(
        self, requests: Sequence[ProviderRequest], retail: bool = False
    ) -> Store:
        """
        Fetch, normalize and merge a store across providers.

        Args:
            requests: Ordered provider/native id pairs; the first provider with
                data supplies the store's scalar fields
            retail: Fetch convenience/retail store pages where supported

        Raises:
            NoProviderDataError: If no provider produced a store
        """

        async def fetch(request: ProviderRequest) -> Store:
            access_token = await self._access_token(request.provider)
            raw = await self.registry.get_client(request.provider).fetch_store(
                request.native_id, access_token=access_token, retail=retail
            )
            return self.normalizer.normalize_store(request.provider, raw, retail=retail)

        stores = await self._fan_out(requests, fetch, "detail_store")
        if not stores:
            raise NoProviderDataError("No provider returned store data")
        return self.merger.merge_stores(stores)

    async def detail_item(self, requests: Sequence[ProviderRequest]) -> ItemDetailResult:
        """
        Fetch and merge an item's details across providers.

        Args:
            requests: Ordered provider/native id pairs with any native keys
                the provider needs for item lookups

        Returns:
            Merged item plus each contributing provider's raw payload

        Raises:
            NoProviderDataError: If no provider produced usable item data
        """

        async def fetch(request: ProviderRequest) -> dict[str, Any]:
            access_token = await self._access_token(request.provider)
            return await self.registry.get_client(request.provider).fetch_item_detail(
                request.native_id, request.native_keys, access_token=access_token
            )

        payloads = await self._fan_out(requests, fetch, "detail_item")
        if not payloads:
            raise NoProviderDataError("No provider returned item data")
        return self.merger.merge_item_details(payloads)

    def _location_client(self) -> tuple[Provider, LocationClient]:
        provider = Provider(settings.location_provider)
        if not self.registry.is_available(provider):
            raise ProviderFetchError(provider, "location provider is not registered")
        client = self.registry.get_client(provider)
        if not isinstance(client, LocationClient):
            raise ProviderFetchError(provider, "provider does not support location lookups")
        return provider, client

    async def autocomplete_location(self, query: str) -> list[dict[str, Any]]:
        """
        Suggest delivery addresses for a partial address.

        Suggestions are passed through untouched; any of them can be sent
        back to detail_location.

        Raises:
            ProviderError: If the location provider fails or answers without data
        """
        provider, client = self._location_client()
        raw = await client.autocomplete_location(query)
        suggestions = raw.get("data")
        if not isinstance(suggestions, list):
            raise MalformedPayloadError(provider, "autocomplete response has no data list")
        logger.info("Location autocomplete", provider=provider.value, results=len(suggestions))
        return suggestions

    async def detail_location(self, location_data: dict[str, Any]) -> dict[str, Any]:
        """
        Resolve an autocomplete suggestion to a full delivery location.

        Raises:
            ProviderError: If the location provider fails or answers without data
        """
        provider, client = self._location_client()
        raw = await client.fetch_location_details(location_data)
        details = raw.get("data")
        if not isinstance(details, dict):
            raise MalformedPayloadError(provider, "location response has no data object")
        return details


_service: AggregationService | None = None


def get_aggregation_service() -> AggregationService:
    """Get or create the process-wide aggregation service."""
    global _service
    if _service is None:
        _service = AggregationService()
    return _service
