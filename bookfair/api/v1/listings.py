"""Listings API router — ranking of candidate listings.
/api/v1/listings"""
import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from bookfair.api.responses import ok
from bookfair.config import settings
from bookfair.core.exceptions import ValidationError
from bookfair.core.logging import get_logger
from bookfair.schemas.base_schema import ApiResponse
from bookfair.schemas.listing_schema import RankedListingsResponse
from bookfair.schemas.search_schema import RankRequest
from bookfair.services.mapper_service import parse_listing_rows
from bookfair.services.ranking_service import rank_all

logger = get_logger(__name__)

router = APIRouter()


@router.post("/rank", response_model=ApiResponse[RankedListingsResponse])
async def rank_candidate_listings(payload: RankRequest, request: Request):
    """Score and order a candidate set fetched upstream.

    Malformed rows are excluded and reported in ``rejected``.
    """
    search = payload.request
    if search.min_price is not None and search.max_price is not None and search.min_price > search.max_price:
        raise ValidationError(
            "Invalid price range",
            detail=[f"min_price ({search.min_price}) exceeds max_price ({search.max_price})"],
        )

    if search.max_distance_km is None and settings.default_max_distance_km is not None:
        search = search.model_copy(update={"max_distance_km": settings.default_max_distance_km})

    now = payload.now or datetime.now(timezone.utc)
    listings, rejected = parse_listing_rows(payload.candidates)

    ordered = await asyncio.to_thread(
        rank_all,
        listings,
        search,
        now,
        payload.favorite_ids,
        settings.ranking_max_workers,
    )
    page = ordered[search.offset:search.offset + search.limit]

    logger.info(
        "Ranked %d candidates, returning %d",
        len(listings),
        len(page),
        extra={"candidates": len(payload.candidates), "returned": len(page), "rejected": len(rejected)},
    )

    return ok(
        RankedListingsResponse(
            items=page,
            total=len(ordered),
            offset=search.offset,
            limit=search.limit,
            rejected=rejected,
        ),
        "Listings ranked successfully",
        request,
        meta={"offset": search.offset, "limit": search.limit, "total": len(ordered)},
    )
