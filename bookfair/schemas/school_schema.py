"""Pydantic schemas for the school-cluster registry and school resolution."""
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from bookfair.schemas.listing_schema import Latitude, Longitude
from bookfair.services.text_match_service import normalize_school_name


class SchoolCluster(BaseModel):
    """Canonical school identity record; same-named schools at different places are separate clusters."""
    model_config = ConfigDict(allow_inf_nan=False, from_attributes=True)

    id: str
    name: str = Field(..., min_length=1)
    normalized_name: str = ""
    lat: Latitude
    lng: Longitude
    area: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    landmarks: List[str] = []
    school_type: Optional[str] = None
    verified: bool = False

    @model_validator(mode="after")
    def fill_normalized_name(self):
        if not self.normalized_name:
            self.normalized_name = normalize_school_name(self.name)
        return self


class SchoolMatch(SchoolCluster):
    """A cluster scored against one free-text school query."""
    distance_km: float
    confidence: float = Field(..., ge=0, le=1)


class SchoolResolveRequest(BaseModel):
    """Body of POST /api/v1/schools/resolve."""
    model_config = ConfigDict(allow_inf_nan=False)

    query: str = Field(..., min_length=1)
    lat: Latitude
    lng: Longitude
    postal_code: Optional[str] = None
    max_distance_km: Optional[float] = Field(None, gt=0)


class SchoolVerifyRequest(BaseModel):
    """Body of POST /api/v1/schools/verify."""
    model_config = ConfigDict(allow_inf_nan=False)

    school_name: str = Field(..., min_length=1)
    lat: Latitude
    lng: Longitude
    postal_code: Optional[str] = None
    landmark: Optional[str] = None


class SchoolVerifyResponse(BaseModel):
    school_name: str
    verified: bool
