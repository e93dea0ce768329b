# src/scroll_summit/api/v1/endpoints/history.py
"""Historical height endpoints backed by the durable history tables."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from scroll_summit.schemas.history import (
    RankingsResponse,
    RegionCompareRequest,
    RegionCompareResponse,
    SeriesResponse,
    StatsResponse,
)
from scroll_summit.services import history as history_service
from scroll_summit.services.state_store import normalize_region

from ..dependencies import SessionDep

router = APIRouter(tags=["history"])

RegionQuery = Annotated[
    str | None,
    Query(description="Region code; omit for all regions combined"),
]


def _region_or_400(region: str | None) -> str | None:
    if region is None:
        return None
    try:
        return normalize_region(region)
    except ValueError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err


def _check_range(range_: str) -> None:
    if range_ not in history_service.VALID_TIME_RANGES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "Invalid range parameter",
                "valid_ranges": list(history_service.VALID_TIME_RANGES),
            },
        )


@router.get("/history", response_model=SeriesResponse)
async def get_history(
    db: SessionDep,
    region: RegionQuery = None,
    range_: Annotated[str, Query(alias="range")] = "24h",
) -> SeriesResponse:
    """Height series for a time range (1h, 24h, 7d, 30d, 1y, 5y, all)."""
    _check_range(range_)
    return history_service.get_series(db, range_, _region_or_400(region))


@router.get("/history/stats", response_model=StatsResponse)
async def get_history_stats(db: SessionDep, region: RegionQuery = None) -> StatsResponse:
    """Peak, growth and tracking span."""
    return history_service.get_stats(db, _region_or_400(region))


@router.get("/history/latest")
async def get_latest_height(db: SessionDep, region: RegionQuery = None) -> dict[str, str]:
    """Latest persisted height."""
    height = history_service.get_latest_height(db, _region_or_400(region))
    return {"height": str(height)}


@router.get("/regions/rankings", response_model=RankingsResponse)
async def get_region_rankings(db: SessionDep) -> RankingsResponse:
    """Regions ranked by latest known height."""
    return RankingsResponse(rankings=history_service.get_rankings(db))


@router.post("/regions/compare", response_model=RegionCompareResponse)
async def compare_regions(db: SessionDep, body: RegionCompareRequest) -> RegionCompareResponse:
    """Series for up to `MAX_REGIONS_COMPARISON` regions over one range."""
    if not body.regions:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "regions must be a non-empty list"},
        )
    if len(body.regions) > history_service.MAX_REGIONS_COMPARISON:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": (
                    f"Maximum {history_service.MAX_REGIONS_COMPARISON} regions "
                    "can be compared at once"
                ),
            },
        )

    invalid_codes = []
    for code in body.regions:
        try:
            normalize_region(code)
        except ValueError:
            invalid_codes.append(code)
    if invalid_codes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "Invalid region codes", "invalid_codes": invalid_codes},
        )

    _check_range(body.range)
    series = history_service.compare_regions(db, body.regions, body.range)
    return RegionCompareResponse(range=body.range, regions=series)
