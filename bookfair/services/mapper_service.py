"""Mapper service — converts raw collaborator rows into the typed discovery model.

Handles:
- Price parsing: "₹ 1,250" / "250.50" / 250 → 1250.0 / 250.5 / 250.0
- Boolean mapping: "Yes"/"true"/1 → True
- Date parsing: ISO-8601 and a few day-first formats → datetime
- Column aliases from the storage layer: book_type → kind, user_id → seller_id,
  profiles → seller, pincode → postal_code, school_name → name (schools)

Rows that fail structural validation (non-finite or out-of-range coordinates,
negative prices, unknown conditions, missing required fields, unparseable
counts, flags or dates) are rejected here with a logged warning; they are
never coerced into a default score.
"""
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from bookfair.core.exceptions import InvalidRecordError
from bookfair.core.logging import get_logger
from bookfair.schemas.listing_schema import Listing, SellerProfile
from bookfair.schemas.school_schema import SchoolCluster

logger = get_logger(__name__)


_PRICE_PATTERN = re.compile(r"-?\d[\d\s.,]*")


def parse_price(raw: Any) -> Optional[float]:
    """Parse a price like '₹ 1,250' or '250.50' into a float. Sign is preserved."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)

    match = _PRICE_PATTERN.search(str(raw))
    if not match:
        return None

    num_str = match.group().strip().replace(" ", "")

    if "," in num_str and "." in num_str:
        num_str = num_str.replace(",", "")
    elif "," in num_str:
        parts = num_str.split(",")
        if len(parts[-1]) == 2:
            num_str = num_str.replace(",", ".")
        else:
            num_str = num_str.replace(",", "")

    try:
        return float(num_str)
    except ValueError:
        logger.warning("Failed to parse price amount from: '%s'", raw)
        return None


def parse_float(raw: Any) -> Any:
    """Coordinates and ratings may arrive as strings; blank means absent."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    text = str(raw).strip()
    if not text:
        return None
    try:
        return float(text)
    except ValueError:
        # left as-is so validation rejects the record
        return text


def parse_int(raw: Any) -> Any:
    """Counts like '12 views' → 12. Unparseable text is returned as-is for validation to reject."""
    if raw is None:
        return None
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    match = re.search(r"-?\d+", text)
    if match:
        return int(match.group())
    return text


def parse_bool(raw: Any) -> Any:
    """Map 'Yes'/truthy values to True, 'No'/falsy to False, blank to None.

    Unrecognized text is returned as-is for validation to reject.
    """
    if raw is None:
        return None
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (int, float)):
        return bool(raw)
    raw_lower = str(raw).strip().lower()
    if not raw_lower:
        return None
    if raw_lower in ("yes", "true", "1", "y", "✓", "✔"):
        return True
    if raw_lower in ("no", "false", "0", "n"):
        return False
    return raw


_DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%Y/%m/%d",
]


def parse_date(raw: Any) -> Any:
    """Parse an ISO-8601 timestamp (offsets and trailing 'Z' included) or a plain date.

    Unparseable text is returned as-is for validation to reject.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return text


def _or_default(value: Any, default: Any) -> Any:
    return default if value is None else value


def _first(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _error_messages(exc: PydanticValidationError) -> List[str]:
    return [
        f"{'.'.join(str(p) for p in err['loc']) or 'record'}: {err['msg']}"
        for err in exc.errors()
    ]


def _validate(model: type[BaseModel], data: Dict[str, Any], record_id: Optional[str], label: str):
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise InvalidRecordError(
            f"Invalid {label} record {record_id or '<no id>'}",
            record_id=record_id,
            detail=_error_messages(e),
        ) from e


def normalize_seller_row(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not raw:
        return None
    return {
        "id": _first(raw, "id", "user_id"),
        "username": raw.get("username"),
        "lat": parse_float(raw.get("lat")),
        "lng": parse_float(raw.get("lng")),
        "rating": parse_float(raw.get("rating")),
        "verified_seller": _or_default(parse_bool(raw.get("verified_seller")), False),
    }


def normalize_listing_row(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Rename storage columns and coerce loosely-typed values. No validation here."""
    seller = raw.get("seller")
    if seller is None:
        seller = raw.get("profiles")
    if isinstance(seller, SellerProfile):
        seller = seller.model_dump()

    row_id = _first(raw, "id", "book_id")
    return {
        "id": str(row_id) if row_id is not None else None,
        "seller_id": _first(raw, "seller_id", "user_id"),
        "title": raw.get("title"),
        "author": raw.get("author") or "",
        "description": raw.get("description"),
        "category": raw.get("category"),
        "kind": _first(raw, "kind", "book_type"),
        "condition": raw.get("condition"),
        "price": parse_price(raw.get("price")),
        "original_price": parse_price(raw.get("original_price")),
        "negotiable": _or_default(parse_bool(raw.get("negotiable")), False),
        "grade": raw.get("grade"),
        "subject": raw.get("subject"),
        "board": raw.get("board"),
        "lat": parse_float(raw.get("lat")),
        "lng": parse_float(raw.get("lng")),
        "school_name": raw.get("school_name"),
        "school_id": raw.get("school_id"),
        "school_lat": parse_float(raw.get("school_lat")),
        "school_lng": parse_float(raw.get("school_lng")),
        "view_count": _or_default(parse_int(raw.get("view_count")), 0),
        "favorite_count": _or_default(parse_int(raw.get("favorite_count")), 0),
        "featured": _or_default(parse_bool(raw.get("featured")), False),
        "boost_expires_at": parse_date(raw.get("boost_expires_at")),
        "created_at": parse_date(raw.get("created_at")),
        "seller": normalize_seller_row(seller) if isinstance(seller, dict) else seller,
    }


def parse_listing_row(raw: Dict[str, Any]) -> Listing:
    """Convert one candidate row into a Listing, raising InvalidRecordError when malformed."""
    data = normalize_listing_row(raw)
    return _validate(Listing, data, data["id"], "listing")


def normalize_school_row(raw: Dict[str, Any]) -> Dict[str, Any]:
    row_id = raw.get("id")
    landmarks = raw.get("landmarks") or []
    if isinstance(landmarks, str):
        landmarks = [lm.strip() for lm in landmarks.split(",") if lm.strip()]
    return {
        "id": str(row_id) if row_id is not None else None,
        "name": _first(raw, "name", "school_name"),
        "normalized_name": raw.get("normalized_name") or "",
        "lat": parse_float(raw.get("lat")),
        "lng": parse_float(raw.get("lng")),
        "area": raw.get("area"),
        "city": raw.get("city"),
        "state": raw.get("state"),
        "postal_code": _first(raw, "postal_code", "pincode"),
        "landmarks": landmarks,
        "school_type": raw.get("school_type"),
        "verified": _or_default(parse_bool(raw.get("verified")), False),
    }


def parse_school_row(raw: Dict[str, Any]) -> SchoolCluster:
    """Convert one registry row into a SchoolCluster, raising InvalidRecordError when malformed."""
    data = normalize_school_row(raw)
    return _validate(SchoolCluster, data, data["id"], "school")


def _parse_rows(rows: Iterable[Dict[str, Any]], parser, id_key: str) -> Tuple[list, List[str]]:
    accepted = []
    rejected: List[str] = []
    for position, raw in enumerate(rows):
        try:
            accepted.append(parser(raw))
        except InvalidRecordError as e:
            ref = e.record_id or f"#{position}"
            rejected.append(ref)
            logger.warning(
                "Rejected malformed record %s: %s",
                ref,
                "; ".join(e.detail or []),
                extra={id_key: ref},
            )
    return accepted, rejected


def parse_listing_rows(rows: Iterable[Dict[str, Any]]) -> Tuple[List[Listing], List[str]]:
    """Parse candidate rows, excluding malformed ones. Returns (listings, rejected refs)."""
    return _parse_rows(rows, parse_listing_row, "listing_id")


def parse_school_rows(rows: Iterable[Dict[str, Any]]) -> Tuple[List[SchoolCluster], List[str]]:
    """Parse registry rows, excluding malformed ones. Returns (clusters, rejected refs)."""
    return _parse_rows(rows, parse_school_row, "school_id")
