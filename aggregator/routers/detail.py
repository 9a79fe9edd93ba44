"""
API router for merged store and item details, and delivery location details.
"""

from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, Query

from aggregator.models.catalog import Provider, ProviderRequest, Store
from aggregator.services.aggregation_service import (
    AggregationService,
    get_aggregation_service,
)

logger = structlog.get_logger()

router = APIRouter(prefix="/api/detail", tags=["detail"])


@router.post("/store", response_model=Store)
async def detail_store(
    store_ids: dict[Provider, str | None] = Body(
        ...,
        description='Native store id per provider, in priority order, e.g. {"provider_a": "..."}',
    ),
    retail: bool = Query(False, description="Fetch convenience/retail store pages"),
    service: AggregationService = Depends(get_aggregation_service),
):
    """
    Merged store across providers.
    The first provider in the body that returns data supplies name, image, hours and location.
    """
    requests = [
        ProviderRequest(provider=provider, native_id=native_id)
        for provider, native_id in store_ids.items()
    ]
    logger.info(
        "Store detail requested",
        providers=[request.provider.value for request in requests if request.is_requested],
        retail=retail,
    )
    return await service.detail_store(requests, retail=retail)


@router.post("/item")
async def detail_item(
    item_requests: list[ProviderRequest] = Body(
        ..., description="Provider item references, in priority order"
    ),
    service: AggregationService = Depends(get_aggregation_service),
) -> dict[str, Any]:
    """
    Merged item detail across providers.
    Returns {"merged": ..., "<provider>": <raw payload>, ...}; raw payloads keep
    the native ids needed for cart calls.
    """
    logger.info(
        "Item detail requested",
        providers=[request.provider.value for request in item_requests if request.is_requested],
    )
    result = await service.detail_item(item_requests)
    return result.to_response()


@router.post("/location")
async def detail_location(
    location_data: dict[str, Any] = Body(
        ..., description="A suggestion returned by /api/autocomplete/location"
    ),
    service: AggregationService = Depends(get_aggregation_service),
) -> dict[str, Any]:
    """Full delivery location (coordinates, address lines) for an autocomplete suggestion."""
    return await service.detail_location(location_data)
