"""
Provider A adapter.
Store payloads are wrapped in `data`; menu sections live in catalogSectionsMap
under the first section's uuid. Provider A needs no access token.
"""

from typing import Any

import structlog

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

STANDARD_ITEMS_SECTION = "standardItemsPayload"


class ProviderAAdapter:
    """Transform Provider A store and item payloads to the common shape."""

    provider = Provider.A
    requires_auth = False
    options_child_field = "childCustomizationList"

    def parse_store(self, raw_data: dict[str, Any], retail: bool = False) -> Store:
        """
        Convert a Provider A store payload to a Store.

        Only catalog sections of type standardItemsPayload become categories;
        a missing hero image leaves image_url empty.
        """
        data = raw_data.get("data")
        if not isinstance(data, dict) or not data.get("uuid"):
            raise MalformedPayloadError(self.provider, "store payload has no data.uuid")

        location = data.get("location") or {}
        return Store(
            id=str(data["uuid"]),
            name=data.get("title"),
            image_url=self._hero_image(data.get("heroImageUrls")),
            hours=data.get("hours"),
            location=Location(
                street_address=location.get("streetAddress"),
                city=location.get("city"),
                zip_code=location.get("postalCode"),
                country=location.get("country"),
            ),
            menu=self._parse_menu(data),
        )

    @staticmethod
    def _hero_image(hero_images: Any) -> str | None:
        # Last entry is the largest rendition
        if not isinstance(hero_images, list) or not hero_images:
            return None
        last = hero_images[-1]
        return last.get("url") if isinstance(last, dict) else None

    def _parse_menu(self, data: dict[str, Any]) -> list[Category]:
        sections = data.get("sections") or []
        sections_map = data.get("catalogSectionsMap") or {}
        if not sections or not isinstance(sections[0], dict):
            logger.warning("Provider A store has no sections", store_id=data.get("uuid"))
            return []

        menu: list[Category] = []
        for catalog_section in sections_map.get(sections[0].get("uuid"), []) or []:
            if catalog_section.get("type") != STANDARD_ITEMS_SECTION:
                continue
            try:
                payload = catalog_section["payload"][STANDARD_ITEMS_SECTION]
                name = payload["title"]["text"]
            except (KeyError, TypeError):
                logger.warning(
                    "Skipping Provider A section without title",
                    section_id=catalog_section.get("catalogSectionUUID"),
                )
                continue

            category_id = to_str_id(catalog_section.get("catalogSectionUUID"))
            menu.append(
                Category(
                    category_id=category_id,
                    category_ids={self.provider: category_id},
                    name=name,
                    items=[
                        item
                        for item in (
                            self._parse_menu_item(raw_item)
                            for raw_item in payload.get("catalogItems") or []
                        )
                        if item is not None
                    ],
                )
            )
        return menu

    def _parse_menu_item(self, raw_item: dict[str, Any]) -> MenuItem | None:
        if not isinstance(raw_item, dict) or not raw_item.get("title"):
            logger.warning("Skipping Provider A item without title")
            return None
        item_id = to_str_id(raw_item.get("uuid"))
        price = to_minor_units(raw_item.get("price"))
        return MenuItem(
            id=item_id,
            ids={self.provider: item_id},
            name=raw_item["title"],
            description=raw_item.get("itemDescription"),
            prices={self.provider: price},
            image_url=raw_item.get("imageUrl"),
            subsection_id=to_str_id(raw_item.get("subsectionUuid")),
            section_id=to_str_id(raw_item.get("sectionUuid")),
        )

    def parse_item_detail(self, raw_data: dict[str, Any]) -> ItemDetail:
        """Convert a Provider A item payload (`data` envelope) to ItemDetail."""
        data = raw_data.get("data")
        if not isinstance(data, dict) or not data.get("uuid"):
            raise MalformedPayloadError(self.provider, "item payload has no data.uuid")

        customizations = [
            CustomizationGroup(
                id=to_str_id(group.get("uuid")),
                title=group["title"],
                min_permitted=group.get("minPermitted"),
                max_permitted=group.get("maxPermitted"),
                options=self.parse_customization_options(group.get("options")),
            )
            for group in data.get("customizationsList") or []
            if isinstance(group, dict) and group.get("title")
        ]

        return ItemDetail(
            id=str(data["uuid"]),
            title=data.get("title"),
            description=data.get("itemDescription"),
            price=to_minor_units(data.get("price")) or 0,
            customizations=customizations,
        )

    def parse_customization_group(self, raw_data: dict[str, Any]) -> dict[str, Any]:
        return {
            "max_permitted": raw_data.get("maxPermitted"),
            "min_permitted": raw_data.get("minPermitted"),
            "title": raw_data.get("title"),
            "id": to_str_id(raw_data.get("uuid")),
            "price": to_minor_units(raw_data.get("price")),
        }

    def parse_customization_options(
        self, raw_options: list[dict[str, Any]] | None
    ) -> list[CustomizationOption]:
        return parse_customization_options_recursively(
            self, raw_options, self.options_child_field
        )

    def parse_token(self, raw_data: dict[str, Any]) -> TokenData:
        raise MalformedPayloadError(self.provider, "provider does not issue tokens")
