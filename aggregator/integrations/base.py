"""
Provider adapter and client interfaces.
Adapters resolve every provider-specific field name; clients only move raw JSON.
"""

from datetime import UTC, datetime
from typing import Any, Protocol, runtime_checkable

import structlog

from aggregator.models.catalog import (
    CustomizationOption,
    ItemDetail,
    Provider,
    Store,
    TokenData,
    empty_provider_ids,
)

logger = structlog.get_logger()


class ProviderAdapter(Protocol):
    """Capabilities every provider adapter implements."""

    provider: Provider
    requires_auth: bool
    # Raw field holding cascading sub-options
    options_child_field: str

    def parse_store(self, raw_data: dict[str, Any], retail: bool = False) -> Store:
        """
        Transform a raw store payload into a Store.

        Args:
            raw_data: Raw store payload from the provider
            retail: True for convenience/retail store payloads

        Returns:
            Store whose ids/prices maps hold only this provider
        """
        ...

    def parse_item_detail(self, raw_data: dict[str, Any]) -> ItemDetail:
        """Transform a raw item detail payload into ItemDetail."""
        ...

    def parse_customization_group(self, raw_data: dict[str, Any]) -> dict[str, Any]:
        """
        Project a raw customization record to the common shape.

        Returns:
            Dict with max_permitted, min_permitted, title, id and price
        """
        ...

    def parse_customization_options(
        self, raw_options: list[dict[str, Any]]
    ) -> list[CustomizationOption]:
        """Parse a raw option list, following cascading sub-options."""
        ...

    def parse_token(self, raw_data: dict[str, Any]) -> TokenData:
        """Extract token data from an authenticate/refresh response."""
        ...


class ProviderClient(Protocol):
    """Transport to a provider. Returns raw JSON, never parses it."""

    async def fetch_store(
        self,
        native_id: str,
        access_token: str | None = None,
        retail: bool = False,
    ) -> dict[str, Any]: ...

    async def fetch_item_detail(
        self,
        native_id: str,
        native_keys: dict[str, str],
        access_token: str | None = None,
    ) -> dict[str, Any]: ...

    async def authenticate(self, credentials: dict[str, Any] | None = None) -> dict[str, Any]: ...

    async def refresh(self, refresh_token: str) -> dict[str, Any]: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class LocationClient(Protocol):
    """Delivery address lookups. Only some providers expose them."""

    async def autocomplete_location(self, query: str) -> dict[str, Any]: ...

    async def fetch_location_details(self, location_data: dict[str, Any]) -> dict[str, Any]: ...


def parse_customization_options_recursively(
    adapter: ProviderAdapter,
    raw_options: list[dict[str, Any]] | None,
    child_field: str,
) -> list[CustomizationOption]:
    """
    Build CustomizationOptions for a raw option list, recursing into child_field.

    Options are keyed by title at each level: a later option with the same
    title replaces the earlier one but keeps its position.

    Args:
        adapter: Adapter that projects each raw option to the common shape
        raw_options: Raw option records (may be None)
        child_field: Provider-specific field holding nested option lists

    Returns:
        Ordered list of options, nested to arbitrary depth
    """
    options_by_title: dict[Any, CustomizationOption] = {}

    for raw_option in raw_options or []:
        if not isinstance(raw_option, dict):
            logger.warning(
                "Skipping non-object customization option",
                provider=adapter.provider.value,
                option_type=type(raw_option).__name__,
            )
            continue

        general = adapter.parse_customization_group(raw_option)
        ids = empty_provider_ids()
        ids[adapter.provider] = general["id"]

        children = raw_option.get(child_field)
        nested = (
            parse_customization_options_recursively(adapter, children, child_field)
            if isinstance(children, list) and children
            else []
        )

        options_by_title[general["title"]] = CustomizationOption(
            ids=ids,
            title=general["title"],
            min_permitted=general["min_permitted"],
            max_permitted=general["max_permitted"],
            price=general["price"],
            options=nested,
        )

    return list(options_by_title.values())


def to_str_id(value: Any) -> str | None:
    """Provider ids come as ints or strings; keep them as strings."""
    if value is None or value == "":
        return None
    return str(value)


def to_minor_units(value: Any) -> int | None:
    """
    Convert a price to integer cents.

    Integers and plain digit strings are taken as already in cents; display
    strings like "$1.50" or "1.50" are parsed as dollars.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(round(value))

    text = str(value).replace(",", "").strip()
    try:
        if "$" in text or "." in text:
            return int(round(float(text.replace("$", "").strip()) * 100))
        return int(text)
    except ValueError:
        logger.warning("Invalid price format", price=value)
        return None


def parse_epoch(value: Any) -> datetime | None:
    """
    Parse a Unix timestamp in seconds or milliseconds to an aware datetime.

    Returns:
        UTC datetime, or None when the value is missing or invalid
    """
    if value is None or value == "":
        return None
    try:
        ts = float(value)
    except (TypeError, ValueError):
        logger.warning("Invalid token expiration value", expiration=value)
        return None
    if ts > 1e12:
        ts = ts / 1000.0
    return datetime.fromtimestamp(ts, tz=UTC)
