"""
Provider registry.
Maps each Provider tag to its adapter and transport client.
"""

import structlog

from aggregator.integrations.base import ProviderAdapter, ProviderClient
from aggregator.models.catalog import Provider

logger = structlog.get_logger()


class ProviderRegistry:
    """Registry that manages and provides access to provider adapters and clients."""

    def __init__(self, load_defaults: bool = True):
        """
        Initialize the provider registry.

        Args:
            load_defaults: Register the built-in adapters and httpx clients
        """
        self._adapters: dict[Provider, ProviderAdapter] = {}
        self._clients: dict[Provider, ProviderClient] = {}
        if load_defaults:
            self._load_providers()

    def _load_providers(self):
        """Load the built-in providers."""
        from aggregator.integrations.provider_a.adapter import ProviderAAdapter
        from aggregator.integrations.provider_a.api_client import ProviderAAPIClient
        from aggregator.integrations.provider_b.adapter import ProviderBAdapter
        from aggregator.integrations.provider_b.api_client import ProviderBAPIClient
        from aggregator.integrations.provider_c.adapter import ProviderCAdapter
        from aggregator.integrations.provider_c.api_client import ProviderCAPIClient

        self.register(ProviderAAdapter(), ProviderAAPIClient())
        self.register(ProviderBAdapter(), ProviderBAPIClient())
        self.register(ProviderCAdapter(), ProviderCAPIClient())

    def register(self, adapter: ProviderAdapter, client: ProviderClient | None = None):
        """
        Register a provider adapter and, optionally, its client.

        Args:
            adapter: Adapter instance; its `provider` attribute is the key
            client: Transport for the same provider
        """
        provider = adapter.provider
        if provider in self._adapters:
            logger.warning("Provider already registered, replacing", provider=provider.value)
        self._adapters[provider] = adapter
        if client is not None:
            self._clients[provider] = client
        logger.debug("Registered provider", provider=provider.value)

    def get_adapter(self, provider: Provider) -> ProviderAdapter:
        """
        Get the adapter for a provider.

        Raises:
            KeyError: If the provider is not registered
        """
        return self._adapters[provider]

    def get_client(self, provider: Provider) -> ProviderClient:
        """
        Get the transport client for a provider.

        Raises:
            KeyError: If no client is registered for the provider
        """
        return self._clients[provider]

    def list_available(self) -> list[str]:
        """List registered provider names."""
        return [provider.value for provider in self._adapters]

    def is_available(self, provider: Provider) -> bool:
        return provider in self._adapters and provider in self._clients

    async def aclose(self) -> None:
        """Close every registered client."""
        for client in self._clients.values():
            await client.aclose()


# Global registry instance
provider_registry = ProviderRegistry()
