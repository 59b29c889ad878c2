"""School resolver — reconcile free-text school names with the cluster registry.

find_matching_schools: confidence-ranked clusters near the user.
verify_school_match:   does a user's location plausibly belong to a claimed school?
"""
from functools import cmp_to_key
from typing import Iterable, List, Optional

from bookfair.core.logging import get_logger
from bookfair.schemas.school_schema import SchoolCluster, SchoolMatch
from bookfair.services.geo_service import distance_km
from bookfair.services.registry_service import SchoolRegistry
from bookfair.services.text_match_service import normalize_school_name, similarity

logger = get_logger(__name__)

DEFAULT_MAX_DISTANCE_KM = 20.0
MIN_CONFIDENCE = 0.3
POSTAL_CODE_BOOST = 0.3
CONFIDENCE_TOLERANCE = 0.1
MAX_RESULTS = 10

VERIFY_RADIUS_KM = 1.0
VERIFY_LANDMARK_RADIUS_KM = 3.0


def _compare_matches(a: SchoolMatch, b: SchoolMatch) -> int:
    if abs(a.confidence - b.confidence) > CONFIDENCE_TOLERANCE:
        return -1 if a.confidence > b.confidence else 1
    if a.distance_km != b.distance_km:
        return -1 if a.distance_km < b.distance_km else 1
    return 0


def find_matching_schools(
    candidates: Iterable[SchoolCluster],
    query: str,
    user_lat: float,
    user_lng: float,
    postal_code: Optional[str] = None,
    max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
) -> List[SchoolMatch]:
    """Score registry candidates against ``query`` and return at most MAX_RESULTS.

    Candidates are expected to be pre-filtered by substring on name or
    normalized name; nothing is re-filtered on text here.
    """
    matches: List[SchoolMatch] = []
    for school in candidates:
        distance = distance_km(user_lat, user_lng, school.lat, school.lng)
        confidence = max(
            similarity(query, school.name),
            similarity(query, school.normalized_name),
        )
        if distance > max_distance_km or confidence < MIN_CONFIDENCE:
            continue
        if postal_code and school.postal_code == postal_code:
            confidence = min(1.0, confidence + POSTAL_CODE_BOOST)

        matches.append(
            SchoolMatch(**dict(school), distance_km=distance, confidence=confidence)
        )

    matches.sort(key=cmp_to_key(_compare_matches))
    return matches[:MAX_RESULTS]


def _landmark_overlap(landmarks: Iterable[str], landmark: str) -> bool:
    needle = landmark.lower()
    return any(needle in lm.lower() or lm.lower() in needle for lm in landmarks if lm)


def verify_school_match(
    candidates: Iterable[SchoolCluster],
    user_lat: float,
    user_lng: float,
    postal_code: Optional[str] = None,
    landmark: Optional[str] = None,
) -> bool:
    """True when any candidate cluster corroborates the user's location.

    A cluster corroborates it by sharing the postal code, by lying within
    VERIFY_RADIUS_KM, or by sharing a landmark within VERIFY_LANDMARK_RADIUS_KM.
    """
    for school in candidates:
        if postal_code and school.postal_code == postal_code:
            return True

        distance = distance_km(user_lat, user_lng, school.lat, school.lng)
        if distance <= VERIFY_RADIUS_KM:
            return True

        if landmark and distance <= VERIFY_LANDMARK_RADIUS_KM and _landmark_overlap(school.landmarks, landmark):
            return True
    return False


class SchoolResolver:
    """Registry-backed entry points for school resolution and verification."""

    def __init__(self, registry: SchoolRegistry) -> None:
        self.registry = registry

    def resolve(
        self,
        query: str,
        user_lat: float,
        user_lng: float,
        postal_code: Optional[str] = None,
        max_distance_km: float = DEFAULT_MAX_DISTANCE_KM,
    ) -> List[SchoolMatch]:
        candidates = self.registry.search(query)
        matches = find_matching_schools(candidates, query, user_lat, user_lng, postal_code, max_distance_km)
        logger.debug(
            "Resolved school query '%s' to %d matches",
            query,
            len(matches),
            extra={"candidates": len(candidates), "returned": len(matches)},
        )
        return matches

    def verify(
        self,
        school_name: str,
        user_lat: float,
        user_lng: float,
        postal_code: Optional[str] = None,
        landmark: Optional[str] = None,
    ) -> bool:
        candidates = self.registry.search(normalize_school_name(school_name), normalized_only=True)
        return verify_school_match(candidates, user_lat, user_lng, postal_code, landmark)
