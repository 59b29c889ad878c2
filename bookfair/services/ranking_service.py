"""Ranking pipeline — score, distance-filter, sort and paginate candidate listings.

The comparator applies its keys in strict priority order, each one only
breaking ties left by the previous:

  a. same-school first (both academic, request names a school)
  b. featured first
  c. higher score, only when the scores differ by more than SCORE_TOLERANCE
  d. closer first, only when both distances are known and differ by more than
     DISTANCE_TOLERANCE_KM
  e. better condition
  f. lower price

Scoring is a pure per-candidate map and may run on a thread pool; sorting
happens once, after every score is in.
"""
import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from functools import cmp_to_key
from typing import Iterable, List, Optional, Set

from bookfair.core.logging import get_logger
from bookfair.schemas.listing_schema import Listing, ScoredListing
from bookfair.schemas.search_schema import SearchRequest
from bookfair.services.scoring_service import score_listing

logger = get_logger(__name__)

SCORE_TOLERANCE = 1.0
DISTANCE_TOLERANCE_KM = 1.0


def _score_one(
    listing: Listing,
    request: SearchRequest,
    now: datetime,
    favorite_ids: Set[str],
) -> ScoredListing:
    result = score_listing(listing, request, now)
    return ScoredListing(
        **dict(listing),
        score=result.score,
        distance_km=result.distance_km,
        is_favorited=listing.id in favorite_ids,
        school_match=result.school_match,
        match_reasons=result.reasons,
    )


def _within_distance(item: ScoredListing, max_distance_km: Optional[float]) -> bool:
    # Unknown distance is never treated as too far.
    if max_distance_km is None or item.distance_km is None:
        return True
    return item.distance_km <= max_distance_km


def _make_comparator(request: SearchRequest):
    def compare(a: ScoredListing, b: ScoredListing) -> int:
        if request.school_name and a.is_academic and b.is_academic:
            if a.school_match != b.school_match:
                return -1 if a.school_match else 1

        if a.featured != b.featured:
            return -1 if a.featured else 1

        if abs(a.score - b.score) > SCORE_TOLERANCE:
            return -1 if a.score > b.score else 1

        if (
            a.distance_km is not None
            and b.distance_km is not None
            and abs(a.distance_km - b.distance_km) > DISTANCE_TOLERANCE_KM
        ):
            return -1 if a.distance_km < b.distance_km else 1

        if a.condition != b.condition:
            return a.condition.rank - b.condition.rank

        if a.price != b.price:
            return -1 if a.price < b.price else 1
        return 0

    return compare


def rank_all(
    candidates: Iterable[Listing],
    request: SearchRequest,
    now: datetime,
    favorite_ids: Optional[Iterable[str]] = None,
    max_workers: Optional[int] = None,
) -> List[ScoredListing]:
    """Score and order every candidate, without pagination."""
    started = time.perf_counter()
    candidates = list(candidates)
    favorites = set(favorite_ids or ())

    if max_workers and max_workers > 1 and len(candidates) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            scored = list(executor.map(lambda listing: _score_one(listing, request, now, favorites), candidates))
    else:
        scored = [_score_one(listing, request, now, favorites) for listing in candidates]

    kept = [item for item in scored if _within_distance(item, request.max_distance_km)]
    ordered = sorted(kept, key=cmp_to_key(_make_comparator(request)))

    logger.debug(
        "Ranked %d of %d candidates",
        len(ordered),
        len(candidates),
        extra={
            "candidates": len(candidates),
            "returned": len(ordered),
            "duration": round(time.perf_counter() - started, 4),
        },
    )
    return ordered


def rank_listings(
    candidates: Iterable[Listing],
    request: SearchRequest,
    now: datetime,
    favorite_ids: Optional[Iterable[str]] = None,
    max_workers: Optional[int] = None,
) -> List[ScoredListing]:
    """Score, filter, order and paginate candidates for one search request."""
    ordered = rank_all(candidates, request, now, favorite_ids, max_workers)
    return ordered[request.offset:request.offset + request.limit]
