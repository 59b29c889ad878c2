"""Pydantic schemas for book listings, seller profiles and scored results."""
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Condition(str, Enum):
    """Physical condition of a book, best first."""

    NEW = "New"
    LIKE_NEW = "Like New"
    GOOD = "Good"
    FAIR = "Fair"
    POOR = "Poor"

    @property
    def rank(self) -> int:
        """0 for New up to 4 for Poor."""
        return _CONDITION_ORDER.index(self)

    @classmethod
    def parse(cls, raw: str) -> "Condition":
        """Map loose spellings ('like_new', 'LikeNew', 'good ') onto a member."""
        key = "".join(ch for ch in str(raw).lower() if ch.isalnum())
        try:
            return _CONDITION_ALIASES[key]
        except KeyError:
            raise ValueError(f"Unrecognized condition: '{raw}'") from None


_CONDITION_ORDER = [Condition.NEW, Condition.LIKE_NEW, Condition.GOOD, Condition.FAIR, Condition.POOR]
_CONDITION_ALIASES = {
    "new": Condition.NEW,
    "likenew": Condition.LIKE_NEW,
    "good": Condition.GOOD,
    "fair": Condition.FAIR,
    "poor": Condition.POOR,
}


class BookKind(str, Enum):
    GENERAL = "general"
    ACADEMIC = "academic"


# The first BookFair client stored 'author' / 'school' book types.
_KIND_ALIASES = {
    "general": BookKind.GENERAL,
    "author": BookKind.GENERAL,
    "academic": BookKind.ACADEMIC,
    "school": BookKind.ACADEMIC,
}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


Latitude = Annotated[float, Field(ge=-90, le=90)]
Longitude = Annotated[float, Field(ge=-180, le=180)]


class SellerProfile(BaseModel):
    """Denormalized seller attributes joined onto a listing."""
    model_config = ConfigDict(allow_inf_nan=False, from_attributes=True)

    id: Optional[str] = None
    username: Optional[str] = None
    lat: Optional[Latitude] = None
    lng: Optional[Longitude] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    verified_seller: bool = False


class Listing(BaseModel):
    """A book offered for sale, as handed over by the candidate store."""
    model_config = ConfigDict(allow_inf_nan=False, from_attributes=True)

    id: str
    seller_id: Optional[str] = None
    title: str
    author: str = ""
    description: Optional[str] = None
    category: Optional[str] = None
    kind: BookKind = BookKind.GENERAL
    condition: Condition

    price: float = Field(..., ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    negotiable: bool = False

    grade: Optional[str] = None
    subject: Optional[str] = None
    board: Optional[str] = None

    lat: Optional[Latitude] = None
    lng: Optional[Longitude] = None
    school_name: Optional[str] = None
    school_id: Optional[str] = None
    school_lat: Optional[Latitude] = None
    school_lng: Optional[Longitude] = None

    view_count: int = Field(0, ge=0)
    favorite_count: int = Field(0, ge=0)
    featured: bool = False
    boost_expires_at: Optional[datetime] = None
    created_at: datetime

    seller: Optional[SellerProfile] = None

    @field_validator("condition", mode="before")
    @classmethod
    def parse_condition(cls, v):
        if isinstance(v, Condition):
            return v
        return Condition.parse(v)

    @field_validator("kind", mode="before")
    @classmethod
    def parse_kind(cls, v):
        if v is None:
            return BookKind.GENERAL
        if isinstance(v, BookKind):
            return v
        kind = _KIND_ALIASES.get(str(v).strip().lower())
        if kind is None:
            raise ValueError(f"Unrecognized book kind: '{v}'")
        return kind

    @field_validator("created_at", "boost_expires_at")
    @classmethod
    def assume_utc(cls, v):
        return _as_utc(v)

    @property
    def is_academic(self) -> bool:
        return self.kind is BookKind.ACADEMIC


class ScoredListing(Listing):
    """A listing annotated with its relevance for one search request."""

    score: float = 0.0
    distance_km: Optional[float] = None
    is_favorited: bool = False
    school_match: bool = False
    match_reasons: List[str] = []


class RankedListingsResponse(BaseModel):
    """One page of ranked listings."""
    items: List[ScoredListing]
    total: int
    offset: int
    limit: int
    rejected: List[str] = Field(
        default_factory=list,
        description="Ids (or positions) of candidate rows excluded as malformed",
    )
