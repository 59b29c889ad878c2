"""Listing scorer — composite relevance of one listing for one search request.

Every term is additive and computed independently:
 1. text relevance of the query against title / author / description
 2. school affinity for academic listings
 3. structural bonuses (grade, subject, board, category)
 4. condition
 5. price attractiveness and negotiability
 6. seller reputation
 7. popularity
 8. distance bands (distance is reported even when no band applies)
 9. freshness
10. promotion (featured, unexpired boost)

The total is floored at 0. ``now`` is always passed in so results are reproducible.
"""
import math
from datetime import datetime, timedelta, timezone
from typing import List, NamedTuple, Optional

from bookfair.schemas.listing_schema import Condition, Listing, SellerProfile
from bookfair.schemas.search_schema import SearchRequest
from bookfair.services.geo_service import distance_km, resolve_listing_coordinates
from bookfair.services.text_match_service import similarity, text_relevance

SAME_SCHOOL_BONUS = 25.0
SIMILAR_SCHOOL_BONUS = 15.0
SIMILAR_SCHOOL_THRESHOLD = 0.8

GRADE_MATCH_BONUS = 12.0
SUBJECT_MATCH_BONUS = 10.0
BOARD_MATCH_BONUS = 8.0
CATEGORY_MATCH_BONUS = 6.0

CONDITION_SCORES = {
    Condition.NEW: 10.0,
    Condition.LIKE_NEW: 8.0,
    Condition.GOOD: 6.0,
    Condition.FAIR: 4.0,
    Condition.POOR: 2.0,
}

PRICE_SCORE_CAP = 15.0
PRICE_NORMALIZATION = 1000.0
NEGOTIABLE_BONUS = 2.0

DEFAULT_SELLER_RATING = 3.0
RATING_WEIGHT = 3.0
VERIFIED_SELLER_BONUS = 5.0

VIEW_WEIGHT = 0.5
FAVORITE_WEIGHT = 0.3

# (upper bound km, bonus, reason), checked in order
DISTANCE_BANDS = [
    (1.0, 10.0, "Same area"),
    (3.0, 7.0, "Very close"),
    (5.0, 4.0, "Close"),
    (10.0, 2.0, "Nearby"),
]
FAR_DISTANCE_KM = 25.0
FAR_DISTANCE_PENALTY = -3.0

FRESHNESS_WINDOW = timedelta(days=7)
FRESHNESS_BONUS = 3.0
FEATURED_BONUS = 8.0
BOOST_BONUS = 5.0


class ListingScore(NamedTuple):
    score: float
    distance_km: Optional[float]
    school_match: bool
    reasons: List[str]


def is_same_school(listing: Listing, request: SearchRequest) -> bool:
    """Exact school-name match for an academic listing against the requested school."""
    return (
        listing.is_academic
        and request.school_name is not None
        and listing.school_name == request.school_name
    )


def school_affinity(listing: Listing, request: SearchRequest) -> float:
    if not listing.is_academic or not request.school_name:
        return 0.0
    if listing.school_name == request.school_name:
        return SAME_SCHOOL_BONUS
    if listing.school_name and similarity(listing.school_name, request.school_name) > SIMILAR_SCHOOL_THRESHOLD:
        return SIMILAR_SCHOOL_BONUS
    return 0.0


def condition_score(condition: Condition) -> float:
    return CONDITION_SCORES[condition]


def price_score(price: Optional[float]) -> float:
    """Cheaper is better, with diminishing returns past the cap."""
    if not price or price <= 0:
        return 0.0
    return min(PRICE_SCORE_CAP, PRICE_NORMALIZATION / price)


def seller_score(seller: Optional[SellerProfile]) -> float:
    rating = DEFAULT_SELLER_RATING
    if seller is not None and seller.rating is not None:
        rating = seller.rating
    score = rating * RATING_WEIGHT
    if seller is not None and seller.verified_seller:
        score += VERIFIED_SELLER_BONUS
    return score


def popularity_score(view_count: int, favorite_count: int) -> float:
    return math.log(view_count + 1) * VIEW_WEIGHT + favorite_count * FAVORITE_WEIGHT


def distance_score(distance: float) -> tuple[float, Optional[str]]:
    for upper, bonus, reason in DISTANCE_BANDS:
        if distance <= upper:
            return bonus, reason
    if distance > FAR_DISTANCE_KM:
        return FAR_DISTANCE_PENALTY, None
    return 0.0, None


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=timezone.utc) if value.tzinfo is None else value


def score_listing(
    listing: Listing,
    request: SearchRequest,
    now: datetime,
    seller: Optional[SellerProfile] = None,
) -> ListingScore:
    """Compute the composite score of ``listing`` for ``request`` at time ``now``."""
    now = _as_utc(now)
    seller = seller or listing.seller
    reasons: List[str] = []
    total = 0.0

    if request.query:
        relevance = text_relevance(request.query, listing.title, listing.author, listing.description)
        total += relevance
        if request.query.lower() in listing.title.lower():
            reasons.append("Title match")
        elif request.query.lower() in listing.author.lower():
            reasons.append("Author match")

    affinity = school_affinity(listing, request)
    total += affinity
    if affinity == SAME_SCHOOL_BONUS:
        reasons.append("Same school")
    elif affinity:
        reasons.append("Similar school")

    if request.grade and listing.grade == request.grade:
        total += GRADE_MATCH_BONUS
        reasons.append("Grade match")
    if request.subject and listing.subject and request.subject.lower() in listing.subject.lower():
        total += SUBJECT_MATCH_BONUS
        reasons.append("Subject match")
    if request.board and listing.board == request.board:
        total += BOARD_MATCH_BONUS
        reasons.append("Board match")
    if request.category and listing.category == request.category:
        total += CATEGORY_MATCH_BONUS
        reasons.append("Category match")

    total += condition_score(listing.condition)

    total += price_score(listing.price)
    if listing.negotiable:
        total += NEGOTIABLE_BONUS

    total += seller_score(seller)
    if seller is not None and seller.verified_seller:
        reasons.append("Verified seller")

    total += popularity_score(listing.view_count, listing.favorite_count)

    distance: Optional[float] = None
    user_coords = request.location.coordinates if request.location else None
    listing_coords = resolve_listing_coordinates(listing, seller)
    if user_coords and listing_coords:
        distance = distance_km(user_coords[0], user_coords[1], listing_coords[0], listing_coords[1])
        bonus, reason = distance_score(distance)
        total += bonus
        if reason:
            reasons.append(reason)

    if now - listing.created_at <= FRESHNESS_WINDOW:
        total += FRESHNESS_BONUS
        reasons.append("New listing")

    if listing.featured:
        total += FEATURED_BONUS
        reasons.append("Featured")
    if listing.boost_expires_at is not None and listing.boost_expires_at > now:
        total += BOOST_BONUS
        reasons.append("Boosted")

    return ListingScore(
        score=max(0.0, total),
        distance_km=distance,
        school_match=is_same_school(listing, request),
        reasons=reasons,
    )
