"""Great-circle distance and listing coordinate resolution."""
import math
from typing import Optional, Tuple

from bookfair.schemas.listing_schema import Listing, SellerProfile

EARTH_RADIUS_KM = 6371.0


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in kilometers between two points given in degrees.

    Inputs are not range-checked; records are validated before they reach here.
    """
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def resolve_listing_coordinates(
    listing: Listing,
    seller: Optional[SellerProfile] = None,
) -> Optional[Tuple[float, float]]:
    """Where a listing physically is: its own pin, else its school, else its seller."""
    seller = seller or listing.seller
    pairs = [
        (listing.lat, listing.lng),
        (listing.school_lat, listing.school_lng),
        (seller.lat, seller.lng) if seller else (None, None),
    ]
    for lat, lng in pairs:
        if lat is not None and lng is not None:
            return lat, lng
    return None
