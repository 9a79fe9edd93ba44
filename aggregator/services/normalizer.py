"""
Catalog normalization service.
Dispatches raw provider payloads to the matching adapter.
"""

from typing import Any

from aggregator.integrations.errors import MalformedPayloadError
from aggregator.integrations.registry import ProviderRegistry
from aggregator.models.catalog import ItemDetail, Provider, Store

# Errors an adapter raises when a payload does not have the shape it expects
_SHAPE_ERRORS = (KeyError, IndexError, TypeError, ValueError, AttributeError)


class CatalogNormalizer:
    """Convert raw provider payloads into canonical Store / ItemDetail shapes."""

    def __init__(self, registry: ProviderRegistry):
        self.registry = registry

    def normalize_store(
        self, provider: Provider, raw_data: dict[str, Any], retail: bool = False
    ) -> Store:
        """
        Normalize a raw store payload.

        Raises:
            MalformedPayloadError: If the adapter could not find the fields it needs
        """
        adapter = self.registry.get_adapter(provider)
        try:
            return adapter.parse_store(raw_data, retail=retail)
        except MalformedPayloadError:
            raise
        except _SHAPE_ERRORS as e:
            raise MalformedPayloadError(provider, f"unexpected store payload: {e!r}") from e

    def normalize_item(self, provider: Provider, raw_data: dict[str, Any]) -> ItemDetail:
        """
        Normalize a raw item detail payload.

        Raises:
            MalformedPayloadError: If the adapter could not find the fields it needs
        """
        adapter = self.registry.get_adapter(provider)
        try:
            return adapter.parse_item_detail(raw_data)
        except MalformedPayloadError:
            raise
        except _SHAPE_ERRORS as e:
            raise MalformedPayloadError(provider, f"unexpected item payload: {e!r}") from e
