"""
Pydantic models for the canonical catalog shape shared by every provider.
Store/menu models come out of the store merge, detail models out of the item merge.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class Provider(str, Enum):
    """Delivery providers the aggregator knows how to talk to."""

    A = "provider_a"
    B = "provider_b"
    C = "provider_c"


def empty_provider_ids() -> dict[Provider, str | None]:
    """Id map with a slot for every known provider."""
    return {provider: None for provider in Provider}


def empty_provider_prices() -> dict[Provider, int]:
    """Price map with a slot for every known provider."""
    return {provider: 0 for provider in Provider}


class Location(BaseModel):
    """Street address of a store."""

    street_address: str | None = None
    city: str | None = None
    zip_code: str | None = None
    country: str | None = None


class MenuItem(BaseModel):
    """
    Menu entry of a store.
    Prices are integer minor-currency amounts (cents).
    ids/prices hold exactly the providers that listed an item with this exact name;
    a listed item whose price could not be read has a None price.
    """

    id: str | None = None
    ids: dict[Provider, str | None] = Field(default_factory=dict)
    name: str
    description: str | None = None
    prices: dict[Provider, int | None] = Field(default_factory=dict)
    image_url: str | None = None
    subsection_id: str | None = None
    section_id: str | None = None


class Category(BaseModel):
    """Menu category, merged across providers by name."""

    category_id: str | None = None
    category_ids: dict[Provider, str | None] = Field(default_factory=dict)
    name: str
    items: list[MenuItem] = Field(default_factory=list)


class Store(BaseModel):
    """Normalized store. Scalars come from the default provider after a merge."""

    id: str
    name: str | None = None
    image_url: str | None = None
    hours: Any = None
    location: Location = Field(default_factory=Location)
    delivery_fee: int | None = None
    menu: list[Category] = Field(default_factory=list)


class CustomizationOption(BaseModel):
    """Selectable customization option. Cascading sub-options nest in `options`."""

    ids: dict[Provider, str | None] = Field(default_factory=empty_provider_ids)
    title: str | None = None
    min_permitted: int | None = None
    max_permitted: int | None = None
    price: int | None = None
    options: list[CustomizationOption] = Field(default_factory=list)


class CustomizationGroup(BaseModel):
    """Customization group of a single provider, projected to the common shape."""

    id: str | None = None
    title: str
    min_permitted: int | None = None
    max_permitted: int | None = None
    options: list[CustomizationOption] = Field(default_factory=list)


class ItemDetail(BaseModel):
    """Item detail fields one provider contributes to a merged item."""

    id: str
    title: str | None = None
    description: str | None = None
    price: int = 0
    customizations: list[CustomizationGroup] = Field(default_factory=list)


class MergedCustomization(BaseModel):
    """Customization group after the item merge; `services` lists contributors."""

    title: str
    min_permitted: int | None = None
    max_permitted: int | None = None
    ids: dict[Provider, str | None] = Field(default_factory=empty_provider_ids)
    options: list[CustomizationOption] = Field(default_factory=list)
    services: list[Provider] = Field(default_factory=list)


class MergedDetailItem(BaseModel):
    """Detail view of one item across all providers."""

    title: str = ""
    description: str = ""
    ids: dict[Provider, str | None] = Field(default_factory=empty_provider_ids)
    prices: dict[Provider, int] = Field(default_factory=empty_provider_prices)
    customizations: dict[str, MergedCustomization] = Field(default_factory=dict)


class ItemDetailResult(BaseModel):
    """Merged item plus each contributing provider's untouched payload."""

    merged: MergedDetailItem
    originals: dict[Provider, dict[str, Any]] = Field(default_factory=dict)

    def to_response(self) -> dict[str, Any]:
        """Flatten to `{"merged": ..., "<provider>": raw, ...}` for the API."""
        data: dict[str, Any] = {"merged": self.merged.model_dump(mode="json")}
        for provider, raw in self.originals.items():
            data[provider.value] = raw
        return data


class TokenData(BaseModel):
    """Provider access/refresh token pair. Replaced wholesale, never mutated."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str | None = None
    access_token_expiry: datetime
    refresh_token_expiry: datetime


class ProviderRequest(BaseModel):
    """One provider's entry in an aggregation request."""

    provider: Provider
    native_id: str | None = None
    # Extra native identifiers some providers need (e.g. store/section ids for item lookups)
    native_keys: dict[str, str] = Field(default_factory=dict)

    @property
    def is_requested(self) -> bool:
        """False when the caller left this provider out (missing or "null" id)."""
        return bool(self.native_id) and self.native_id != "null"
