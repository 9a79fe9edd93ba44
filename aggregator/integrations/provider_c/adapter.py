"""
Provider C adapter.
Restaurant stores arrive as a list of typed display modules; retail (convenience)
stores use a lego section layout. Tokens carry no expiry, so configured
lifetimes are applied when they are issued.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import structlog

from aggregator.config import settings
from aggregator.integrations.base import (
    parse_customization_options_recursively,
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

MODULE_STORE_HEADER = "store_header"
MODULE_MENU_BOOK = "menu_book"
MODULE_ITEM_LIST = "item_list"


def _zip_from_display_address(display_address: str | None) -> str | None:
    """
    Pull the postal code out of "street, city, ST 12345, country".
    Some addresses drop the street part, so fall back to the second segment.
    """
    if not display_address:
        return None
    parts = [part.strip() for part in display_address.split(",")]
    segment = parts[2] if len(parts) > 2 else (parts[1] if len(parts) > 1 else "")
    tokens = segment.split()
    return tokens[-1] if tokens else None


def _country_from_display_address(display_address: str | None) -> str | None:
    if not display_address:
        return None
    parts = [part.strip() for part in display_address.split(",")]
    return parts[3] if len(parts) > 3 else None


class ProviderCAdapter:
    """Transform Provider C store modules and item payloads to the common shape."""

    provider = Provider.C
    requires_auth = True
    options_child_field = "optionLists"

    def __init__(
        self,
        access_token_ttl_seconds: int | None = None,
        refresh_token_ttl_seconds: int | None = None,
    ):
        self.access_token_ttl = timedelta(
            seconds=access_token_ttl_seconds or settings.provider_c_access_token_ttl_seconds
        )
        self.refresh_token_ttl = timedelta(
            seconds=refresh_token_ttl_seconds or settings.provider_c_refresh_token_ttl_seconds
        )

    def parse_store(self, raw_data: dict[str, Any], retail: bool = False) -> Store:
        """
        Convert a Provider C store payload to a Store.

        Args:
            raw_data: display_modules payload, or store + lego_section_body when retail
            retail: True for convenience store payloads
        """
        if retail:
            return self._parse_retail_store(raw_data)

        modules = raw_data.get("display_modules")
        if not isinstance(modules, list):
            raise MalformedPayloadError(self.provider, "store payload has no display_modules")

        fields: dict[str, Any] = {"menu": []}
        for module in modules:
            if not isinstance(module, dict):
                continue
            module_type = module.get("type")
            if module_type == MODULE_STORE_HEADER:
                fields.update(self._parse_store_header(module))
            elif module_type == MODULE_MENU_BOOK:
                menus = (module.get("data") or {}).get("menus") or []
                if menus and isinstance(menus[0], dict):
                    fields["hours"] = menus[0].get("open_hours")
            elif module_type == MODULE_ITEM_LIST:
                category = self._parse_item_list(module)
                if category is not None:
                    fields["menu"].append(category)

        if not fields.get("id"):
            raise MalformedPayloadError(self.provider, "store payload has no store_header id")
        return Store(**fields)

    def _parse_store_header(self, module: dict[str, Any]) -> dict[str, Any]:
        data = module.get("data") or {}
        address = data.get("address") or {}
        image = (module.get("header_image") or {}).get("url") or (
            module.get("cover_image") or {}
        ).get("url")
        return {
            "id": to_str_id(data.get("id")),
            "name": data.get("name"),
            "image_url": image,
            "location": Location(
                street_address=address.get("street"),
                city=address.get("city"),
                zip_code=_zip_from_display_address(address.get("display_address")),
                country=address.get("country_shortname"),
            ),
        }

    def _parse_item_list(self, module: dict[str, Any]) -> Category | None:
        data = module.get("data") or {}
        if not data.get("name"):
            logger.warning("Skipping Provider C item list without name", module_id=module.get("id"))
            return None

        category_id = to_str_id(module.get("id"))
        items = []
        for raw_item in data.get("content") or []:
            if not isinstance(raw_item, dict) or not raw_item.get("name"):
                continue
            item_id = to_str_id(raw_item.get("id"))
            price = to_minor_units(raw_item.get("display_price"))
            items.append(
                MenuItem(
                    id=item_id,
                    ids={self.provider: item_id},
                    name=raw_item["name"],
                    description=raw_item.get("description"),
                    prices={self.provider: price},
                    image_url=(raw_item.get("image") or {}).get("url"),
                )
            )
        return Category(
            category_id=category_id,
            category_ids={self.provider: category_id},
            name=data["name"],
            items=items,
        )

    def _parse_retail_store(self, raw_data: dict[str, Any]) -> Store:
        store = raw_data.get("store")
        if not isinstance(store, dict) or store.get("id") is None:
            raise MalformedPayloadError(self.provider, "retail payload has no store.id")
        address = store.get("address") or {}
        display_address = address.get("display_address")

        menu = []
        for section in raw_data.get("lego_section_body") or []:
            try:
                category_id = to_str_id(section["logging"]["id"])
                name = section["text"]["title"]
            except (KeyError, TypeError):
                logger.warning("Skipping Provider C retail section without title")
                continue
            items = []
            for child in section.get("children") or []:
                try:
                    item_id = to_str_id(child["custom"]["item_id"])
                    title = child["text"]["title"]
                except (KeyError, TypeError):
                    continue
                price = to_minor_units((child.get("logging") or {}).get("item_price"))
                items.append(
                    MenuItem(
                        id=item_id,
                        ids={self.provider: item_id},
                        name=title,
                        description=(child.get("text") or {}).get("description"),
                        prices={self.provider: price},
                        image_url=((child.get("images") or {}).get("main") or {}).get("uri"),
                    )
                )
            menu.append(
                Category(
                    category_id=category_id,
                    category_ids={self.provider: category_id},
                    name=name,
                    items=items,
                )
            )

        return Store(
            id=str(store["id"]),
            name=store.get("name"),
            image_url=store.get("cover_img_url"),
            location=Location(
                street_address=address.get("street"),
                city=address.get("city"),
                zip_code=_zip_from_display_address(display_address),
                country=_country_from_display_address(display_address),
            ),
            menu=menu,
        )

    def parse_item_detail(self, raw_data: dict[str, Any]) -> ItemDetail:
        """Convert a Provider C item payload (itemHeader + optionLists) to ItemDetail."""
        header = raw_data.get("itemHeader")
        if not isinstance(header, dict) or header.get("id") is None:
            raise MalformedPayloadError(self.provider, "item payload has no itemHeader.id")

        customizations = [
            CustomizationGroup(
                id=to_str_id(group.get("id")),
                title=group["name"],
                min_permitted=group.get("minNumOptions"),
                max_permitted=group.get("maxNumOptions"),
                options=self.parse_customization_options(group.get("options")),
            )
            for group in raw_data.get("optionLists") or []
            if isinstance(group, dict) and group.get("name")
        ]

        return ItemDetail(
            id=str(header["id"]),
            title=header.get("name"),
            description=header.get("description"),
            price=to_minor_units(header.get("unitAmount")) or 0,
            customizations=customizations,
        )

    def parse_customization_group(self, raw_data: dict[str, Any]) -> dict[str, Any]:
        return {
            "max_permitted": raw_data.get("maxNumOptions"),
            "min_permitted": raw_data.get("minNumOptions"),
            "title": raw_data.get("name"),
            "id": to_str_id(raw_data.get("id")),
            "price": to_minor_units(raw_data.get("unitAmount")),
        }

    def parse_customization_options(
        self, raw_options: list[dict[str, Any]] | None
    ) -> list[CustomizationOption]:
        return parse_customization_options_recursively(
            self, raw_options, self.options_child_field
        )

    def parse_token(self, raw_data: dict[str, Any]) -> TokenData:
        """Read the token pair and stamp it with the configured lifetimes."""
        token = raw_data.get("token")
        if not isinstance(token, dict) or not token.get("token"):
            raise MalformedPayloadError(self.provider, "token payload has no token.token")

        issued_at = datetime.now(UTC)
        return TokenData(
            access_token=token["token"],
            refresh_token=token.get("refresh_token"),
            access_token_expiry=issued_at + self.access_token_ttl,
            refresh_token_expiry=issued_at + self.refresh_token_ttl,
        )
