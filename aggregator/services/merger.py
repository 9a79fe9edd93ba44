"""
Catalog merge service.
Folds normalized stores into one menu and provider item details into one
merged item. Categories, items and customization groups are matched by
name/title only; two providers spelling a name differently stay separate,
and unrelated items sharing a name are merged.
"""

from collections.abc import Sequence
from typing import Any

import structlog

from aggregator.config import settings
from aggregator.integrations.errors import MalformedPayloadError, NoProviderDataError
from aggregator.models.catalog import (
    Category,
    ItemDetail,
    ItemDetailResult,
    MenuItem,
    MergedCustomization,
    MergedDetailItem,
    Provider,
    Store,
    empty_provider_ids,
)
from aggregator.services.normalizer import CatalogNormalizer

logger = structlog.get_logger()


class CatalogMerger:
    """Merge policy for stores and item details across providers."""

    def __init__(
        self,
        normalizer: CatalogNormalizer,
        category_denylist: Sequence[str] | None = None,
    ):
        """
        Initialize the merger.

        Args:
            normalizer: Used to project raw item payloads before merging
            category_denylist: Category names dropped from merged menus
        """
        self.normalizer = normalizer
        self.category_denylist = set(
            settings.merge_category_denylist if category_denylist is None else category_denylist
        )

    def merge_stores(self, stores: Sequence[tuple[Provider, Store]]) -> Store:
        """
        Merge normalized stores into one store.

        The first store is the default: its scalar fields are copied verbatim.
        Menus are unioned by category name, then by item name within a
        category; matching items gain this provider's price and id only.

        Args:
            stores: (provider, store) pairs in request order

        Returns:
            Merged store, categories and items in first-seen order

        Raises:
            NoProviderDataError: If stores is empty
        """
        if not stores:
            raise NoProviderDataError("No provider returned store data")

        default_provider, default_store = stores[0]
        categories: dict[str, Category] = {}
        items_by_category: dict[str, dict[str, MenuItem]] = {}

        for provider, store in stores:
            for category in store.menu:
                category_id = category.category_ids.get(provider, category.category_id)
                merged_category = categories.get(category.name)
                if merged_category is None:
                    merged_category = Category(
                        category_id=category_id,
                        category_ids={provider: category_id},
                        name=category.name,
                    )
                    categories[category.name] = merged_category
                    items_by_category[category.name] = {}
                else:
                    merged_category.category_ids[provider] = category_id

                items = items_by_category[category.name]
                for item in category.items:
                    self._merge_menu_item(items, provider, item)

        for name in self.category_denylist:
            if categories.pop(name, None) is not None:
                logger.debug("Dropped denylisted category", category=name)

        logger.info(
            "Merged stores",
            default_provider=default_provider.value,
            providers=[provider.value for provider, _ in stores],
            categories=len(categories),
        )

        return Store(
            id=default_store.id,
            name=default_store.name,
            image_url=default_store.image_url,
            hours=default_store.hours,
            location=default_store.location.model_copy(),
            delivery_fee=default_store.delivery_fee,
            menu=[
                category.model_copy(update={"items": list(items_by_category[name].values())})
                for name, category in categories.items()
            ],
        )

    @staticmethod
    def _merge_menu_item(
        items: dict[str, MenuItem], provider: Provider, item: MenuItem
    ) -> None:
        item_id = item.ids.get(provider, item.id)
        price = item.prices.get(provider)

        existing = items.get(item.name)
        if existing is not None:
            existing.ids[provider] = item_id
            existing.prices[provider] = price
            return

        items[item.name] = item.model_copy(
            update={
                "id": item_id,
                "ids": {provider: item_id},
                "prices": {provider: price},
            },
            deep=True,
        )

    def merge_item_details(
        self, details: Sequence[tuple[Provider, dict[str, Any]]]
    ) -> ItemDetailResult:
        """
        Normalize and merge raw item detail payloads.

        A payload its adapter cannot read is skipped with a warning; the
        remaining providers still merge.

        Args:
            details: (provider, raw payload) pairs in request order

        Returns:
            Merged item plus each contributing provider's raw payload

        Raises:
            NoProviderDataError: If no payload could be normalized
        """
        contributions: list[tuple[Provider, ItemDetail]] = []
        originals: dict[Provider, dict[str, Any]] = {}

        for provider, raw_data in details:
            try:
                detail = self.normalizer.normalize_item(provider, raw_data)
            except MalformedPayloadError as e:
                logger.warning(
                    "Skipping malformed item payload",
                    provider=provider.value,
                    error=e.message,
                )
                continue
            contributions.append((provider, detail))
            originals[provider] = raw_data

        if not contributions:
            raise NoProviderDataError("No provider returned usable item data")

        return ItemDetailResult(merged=self.fold_item_details(contributions), originals=originals)

    def fold_item_details(
        self, details: Sequence[tuple[Provider, ItemDetail]]
    ) -> MergedDetailItem:
        """
        Fold normalized item details into one MergedDetailItem.

        Ids and prices are set for every contributor. Title, description and
        customization groups are first-writer-wins: a later group whose title
        is already present is dropped rather than merged.
        """
        merged = MergedDetailItem()

        for provider, detail in details:
            merged.ids[provider] = detail.id
            merged.prices[provider] = detail.price
            if not merged.title and detail.title:
                merged.title = detail.title
            if not merged.description and detail.description:
                merged.description = detail.description

            for group in detail.customizations:
                if group.title in merged.customizations:
                    logger.debug(
                        "Dropping customization group with existing title",
                        provider=provider.value,
                        title=group.title,
                        kept_from=merged.customizations[group.title].services[0].value,
                    )
                    continue

                ids = empty_provider_ids()
                ids[provider] = group.id
                merged.customizations[group.title] = MergedCustomization(
                    title=group.title,
                    min_permitted=group.min_permitted,
                    max_permitted=group.max_permitted,
                    ids=ids,
                    options=[option.model_copy(deep=True) for option in group.options],
                    services=[provider],
                )

        return merged
