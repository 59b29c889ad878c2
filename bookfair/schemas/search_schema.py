"""Pydantic schemas for ranking requests."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bookfair.schemas.listing_schema import BookKind, Condition, Latitude, Longitude


class UserLocation(BaseModel):
    """Where the searching user is. Both coordinates are needed for distance terms."""
    model_config = ConfigDict(allow_inf_nan=False)

    lat: Optional[Latitude] = None
    lng: Optional[Longitude] = None
    address: Optional[str] = None
    area: Optional[str] = None
    postal_code: Optional[str] = None
    landmark: Optional[str] = None

    @property
    def coordinates(self) -> Optional[tuple[float, float]]:
        if self.lat is None or self.lng is None:
            return None
        return self.lat, self.lng


class SearchRequest(BaseModel):
    """Scoring, filtering and pagination parameters for one search."""
    model_config = ConfigDict(allow_inf_nan=False)

    query: Optional[str] = None

    category: Optional[str] = None
    condition: Optional[Condition] = None
    kind: Optional[BookKind] = None
    grade: Optional[str] = None
    subject: Optional[str] = None
    board: Optional[str] = None
    min_price: Optional[float] = Field(None, ge=0)
    max_price: Optional[float] = Field(None, ge=0)
    negotiable_only: bool = False
    school_name: Optional[str] = None

    location: Optional[UserLocation] = None
    max_distance_km: Optional[float] = Field(None, gt=0)

    limit: int = Field(50, ge=1, le=100)
    offset: int = Field(0, ge=0)
    user_id: Optional[str] = None

    @field_validator("condition", mode="before")
    @classmethod
    def parse_condition(cls, v):
        if v is None or isinstance(v, Condition):
            return v
        return Condition.parse(v)

    @field_validator("query", "school_name", "grade", "subject", "board", "category")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class RankRequest(BaseModel):
    """Body of POST /api/v1/listings/rank."""
    candidates: List[Dict[str, Any]] = []
    request: SearchRequest = Field(default_factory=SearchRequest)
    favorite_ids: List[str] = []
    now: Optional[datetime] = Field(
        None,
        description="Reference time for freshness and boost expiry; defaults to server time",
    )
