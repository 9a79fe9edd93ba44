"""
Provider B adapter.
Store payloads split into `restaurant` and `restaurant_availability`.
Tokens come back in a `session_handle` with epoch expirations.
"""

from typing import Any

import structlog

from aggregator.integrations.base import (
    parse_customization_options_recursively,
    parse_epoch,
    to_minor_units,
    to_str_id,
)
from aggregator.integrations.errors import MalformedPayloadError
from aggregator.models.catalog import (
    Category,
    CustomizationGroup,
    CustomizationOption,
    ItemDetail,
    Location,
    MenuItem,
    Provider,
    Store,
    TokenData,
)

logger = structlog.get_logger()


def _amount(value: Any) -> int | None:
    """Provider B nests money as {"amount": cents, "currency": ...}."""
    if isinstance(value, dict):
        return to_minor_units(value.get("amount"))
    return None


class ProviderBAdapter:
    """Transform Provider B restaurant and menu item payloads to the common shape."""

    provider = Provider.B
    requires_auth = True
    options_child_field = "choice_category_list"

    def parse_store(self, raw_data: dict[str, Any], retail: bool = False) -> Store:
        """Convert a Provider B restaurant payload to a Store."""
        restaurant = raw_data.get("restaurant")
        if not isinstance(restaurant, dict) or restaurant.get("id") is None:
            raise MalformedPayloadError(self.provider, "store payload has no restaurant.id")
        availability = raw_data.get("restaurant_availability") or {}
        address = restaurant.get("address") or {}

        return Store(
            id=str(restaurant["id"]),
            name=restaurant.get("name"),
            image_url=restaurant.get("logo"),
            hours=availability.get("available_hours"),
            location=Location(
                street_address=address.get("street_address"),
                city=address.get("locality"),
                zip_code=address.get("zipCode") or address.get("zip"),
                country=address.get("country"),
            ),
            delivery_fee=_amount(availability.get("delivery_fee")),
            menu=[
                self._parse_category(raw_category)
                for raw_category in restaurant.get("menu_category_list") or []
                if isinstance(raw_category, dict) and raw_category.get("name")
            ],
        )

    def _parse_category(self, raw_category: dict[str, Any]) -> Category:
        category_id = to_str_id(raw_category.get("menu_category_id"))
        items = []
        for raw_item in raw_category.get("menu_item_list") or []:
            if not isinstance(raw_item, dict) or not raw_item.get("name"):
                logger.warning(
                    "Skipping Provider B item without name",
                    category_id=category_id,
                )
                continue
            item_id = to_str_id(raw_item.get("id"))
            price = _amount(raw_item.get("price"))
            items.append(
                MenuItem(
                    id=item_id,
                    ids={self.provider: item_id},
                    name=raw_item["name"],
                    description=raw_item.get("description"),
                    prices={self.provider: price},
                    image_url=self._image_url(raw_item.get("media_image")),
                )
            )
        return Category(
            category_id=category_id,
            category_ids={self.provider: category_id},
            name=raw_category["name"],
            items=items,
        )

    @staticmethod
    def _image_url(media_image: Any) -> str | None:
        if not isinstance(media_image, dict):
            return None
        base_url = media_image.get("base_url") or ""
        public_id = media_image.get("public_id") or ""
        return f"{base_url}{public_id}" or None

    def parse_item_detail(self, raw_data: dict[str, Any]) -> ItemDetail:
        """Convert a Provider B menu item payload to ItemDetail."""
        if raw_data.get("id") is None:
            raise MalformedPayloadError(self.provider, "item payload has no id")

        customizations = [
            CustomizationGroup(
                id=to_str_id(group.get("id")),
                title=group["name"],
                min_permitted=group.get("min_choice_options"),
                max_permitted=group.get("max_choice_options"),
                options=self.parse_customization_options(group.get("choice_option_list")),
            )
            for group in raw_data.get("choice_category_list") or []
            if isinstance(group, dict) and group.get("name")
        ]

        return ItemDetail(
            id=str(raw_data["id"]),
            title=raw_data.get("name"),
            description=raw_data.get("description"),
            price=_amount(raw_data.get("minimum_price_variation")) or 0,
            customizations=customizations,
        )

    def parse_customization_group(self, raw_data: dict[str, Any]) -> dict[str, Any]:
        return {
            "max_permitted": raw_data.get("max_choice_options"),
            "min_permitted": raw_data.get("min_choice_options"),
            "title": raw_data.get("description"),
            "id": to_str_id(raw_data.get("id")),
            "price": _amount(raw_data.get("price")),
        }

    def parse_customization_options(
        self, raw_options: list[dict[str, Any]] | None
    ) -> list[CustomizationOption]:
        return parse_customization_options_recursively(
            self, raw_options, self.options_child_field
        )

    def parse_token(self, raw_data: dict[str, Any]) -> TokenData:
        """Read access/refresh tokens and their expirations from session_handle."""
        session = raw_data.get("session_handle")
        if not isinstance(session, dict) or not session.get("access_token"):
            raise MalformedPayloadError(self.provider, "token payload has no session_handle")

        access_expiry = parse_epoch(session.get("token_expire_time"))
        refresh_expiry = parse_epoch(session.get("refresh_token_expire_time"))
        if access_expiry is None or refresh_expiry is None:
            raise MalformedPayloadError(self.provider, "token payload has no expirations")

        return TokenData(
            access_token=session["access_token"],
            refresh_token=session.get("refresh_token"),
            access_token_expiry=access_expiry,
            refresh_token_expiry=refresh_expiry,
        )
