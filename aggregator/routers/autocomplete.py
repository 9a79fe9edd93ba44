"""
API router for delivery address autocomplete.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query

from aggregator.services.aggregation_service import (
    AggregationService,
    get_aggregation_service,
)

router = APIRouter(prefix="/api/autocomplete", tags=["autocomplete"])


@router.get("/location")
async def autocomplete_location(
    query: str = Query(..., min_length=1, description="Partial delivery address"),
    service: AggregationService = Depends(get_aggregation_service),
) -> list[dict[str, Any]]:
    """Address suggestions; pass one to POST /api/detail/location for full details."""
    return await service.autocomplete_location(query)
