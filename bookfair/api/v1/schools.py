"""Schools API router — fuzzy school resolution and location verification.
/api/v1/schools"""
from typing import Annotated, List

from fastapi import APIRouter, Depends, Request

from bookfair.api.deps import get_school_resolver
from bookfair.api.responses import ok
from bookfair.config import settings
from bookfair.schemas.base_schema import ApiResponse
from bookfair.schemas.school_schema import (
    SchoolMatch,
    SchoolResolveRequest,
    SchoolVerifyRequest,
    SchoolVerifyResponse,
)
from bookfair.services.school_service import SchoolResolver

router = APIRouter()

Resolver = Annotated[SchoolResolver, Depends(get_school_resolver)]


@router.post("/resolve", response_model=ApiResponse[List[SchoolMatch]])
async def resolve_school(payload: SchoolResolveRequest, request: Request, resolver: Resolver):
    """Confidence-ranked school clusters for a free-text school name."""
    matches = resolver.resolve(
        payload.query,
        payload.lat,
        payload.lng,
        postal_code=payload.postal_code,
        max_distance_km=payload.max_distance_km or settings.school_max_distance_km,
    )
    return ok(matches, f"{len(matches)} school matches found", request)


@router.post("/verify", response_model=ApiResponse[SchoolVerifyResponse])
async def verify_school(payload: SchoolVerifyRequest, request: Request, resolver: Resolver):
    """Check that the user's location plausibly belongs to the claimed school."""
    verified = resolver.verify(
        payload.school_name,
        payload.lat,
        payload.lng,
        postal_code=payload.postal_code,
        landmark=payload.landmark,
    )
    return ok(
        SchoolVerifyResponse(school_name=payload.school_name, verified=verified),
        "School verified" if verified else "School could not be verified",
        request,
    )
