"""Tests for mapper service — value parsing, column aliases, boundary validation."""
import logging
from datetime import datetime, timezone

import pytest

from bookfair.core.exceptions import InvalidRecordError
from bookfair.schemas.listing_schema import BookKind, Condition
from bookfair.services.mapper_service import (
    normalize_listing_row,
    normalize_school_row,
    parse_bool,
    parse_date,
    parse_float,
    parse_int,
    parse_listing_row,
    parse_listing_rows,
    parse_price,
    parse_school_row,
    parse_school_rows,
)
from tests.conftest import make_listing_row, make_school_row


class TestParsePrice:
    def test_rupee_thousands(self):
        assert parse_price("₹ 1,250") == 1250.0

    def test_with_decimals(self):
        assert parse_price("250.50") == 250.5

    def test_thousands_and_decimals(self):
        assert parse_price("1,250.75") == 1250.75

    def test_decimal_comma(self):
        assert parse_price("12,50") == 12.5

    def test_abbreviation_prefix(self):
        assert parse_price("Rs. 250") == 250.0

    def test_number_passthrough(self):
        assert parse_price(300) == 300.0

    def test_sign_preserved(self):
        assert parse_price("-50") == -50.0

    def test_none_input(self):
        assert parse_price(None) is None

    def test_no_number(self):
        assert parse_price("Price on request") is None


class TestParseFloat:
    def test_from_string(self):
        assert parse_float(" 28.5 ") == 28.5

    def test_blank(self):
        assert parse_float("") is None
        assert parse_float(None) is None

    def test_unparseable_left_for_validation(self):
        assert parse_float("north") == "north"


class TestParseInt:
    def test_from_string(self):
        assert parse_int("12 views") == 12

    def test_from_int(self):
        assert parse_int(5) == 5

    def test_none_input(self):
        assert parse_int(None) is None

    def test_no_digits_left_for_validation(self):
        assert parse_int("lots") == "lots"

    def test_blank(self):
        assert parse_int(" ") is None


class TestParseBool:
    def test_yes(self):
        assert parse_bool("Yes") is True

    def test_no(self):
        assert parse_bool("no") is False

    def test_unknown_left_for_validation(self):
        assert parse_bool("maybe") == "maybe"

    def test_blank(self):
        assert parse_bool("  ") is None

    def test_number(self):
        assert parse_bool(1) is True


class TestParseDate:
    def test_iso_with_z(self):
        assert parse_date("2024-06-01T12:00:00Z") == datetime(2024, 6, 1, 12, tzinfo=timezone.utc)

    def test_day_first(self):
        assert parse_date("01/06/2024") == datetime(2024, 6, 1)

    def test_garbage_left_for_validation(self):
        assert parse_date("soon") == "soon"

    def test_blank(self):
        assert parse_date("") is None


class TestNormalizeListingRow:
    def test_storage_aliases(self):
        raw = make_listing_row()
        raw.pop("id")
        raw["book_id"] = 42
        data = normalize_listing_row(raw)
        assert data["id"] == "42"
        assert data["seller_id"] == "seller-1"
        assert data["kind"] == "school"
        assert data["seller"]["rating"] == 4.0

    def test_missing_author_is_empty(self):
        data = normalize_listing_row(make_listing_row(author=None))
        assert data["author"] == ""


class TestParseListingRow:
    def test_valid(self):
        listing = parse_listing_row(make_listing_row(condition="like_new", price="₹ 1,250"))
        assert listing.condition is Condition.LIKE_NEW
        assert listing.price == 1250.0
        assert listing.kind is BookKind.ACADEMIC
        assert listing.created_at.tzinfo is not None

    def test_author_kind_is_general(self):
        assert parse_listing_row(make_listing_row(book_type="author")).is_academic is False

    def test_naive_created_at_assumed_utc(self):
        listing = parse_listing_row(make_listing_row(created_at="2024-04-01T10:00:00"))
        assert listing.created_at == datetime(2024, 4, 1, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "overrides",
        [
            {"price": -5},
            {"price": None},
            {"lat": "nan", "lng": 77.0},
            {"lat": 95.0, "lng": 77.0},
            {"school_lng": 181.0},
            {"lat": "north"},
            {"condition": "Mint"},
            {"condition": None},
            {"book_type": "comic"},
            {"created_at": None},
            {"created_at": "someday"},
            {"title": None},
            {"profiles": {"lat": 28.5, "lng": 77.1, "rating": 7}},
            {"profiles": {"lat": 28.5, "lng": 77.1, "verified_seller": "perhaps"}},
            {"boost_expires_at": "next tuesday"},
            {"view_count": "lots"},
            {"favorite_count": "a few"},
            {"featured": "maybe"},
            {"negotiable": "perhaps"},
        ],
    )
    def test_malformed_rejected(self, overrides):
        with pytest.raises(InvalidRecordError) as exc_info:
            parse_listing_row(make_listing_row(**overrides))
        assert exc_info.value.record_id == "book-1"
        assert exc_info.value.detail

    def test_error_detail_names_field(self):
        with pytest.raises(InvalidRecordError) as exc_info:
            parse_listing_row(make_listing_row(price=-5))
        assert any(msg.startswith("price:") for msg in exc_info.value.detail)


class TestParseListingRows:
    def test_rejects_and_reports(self, caplog):
        rows = [
            make_listing_row(id="ok-1"),
            make_listing_row(id="bad", price=-1),
            make_listing_row(id=None),
            make_listing_row(id="ok-2"),
        ]
        with caplog.at_level(logging.WARNING, logger="bookfair.services.mapper_service"):
            listings, rejected = parse_listing_rows(rows)

        assert [listing.id for listing in listings] == ["ok-1", "ok-2"]
        assert rejected == ["bad", "#2"]
        assert sum("Rejected malformed record" in r.message for r in caplog.records) == 2

    def test_empty(self):
        assert parse_listing_rows([]) == ([], [])


class TestParseSchoolRow:
    def test_aliases_and_normalized_name(self):
        school = parse_school_row(make_school_row())
        assert school.name == "Delhi Public School, RK Puram"
        assert school.normalized_name == "delhi public school rk puram"
        assert school.postal_code == "110022"

    def test_landmarks_from_comma_string(self):
        data = normalize_school_row(make_school_row(landmarks="Sector 12 Market, Munirka Metro,"))
        assert data["landmarks"] == ["Sector 12 Market", "Munirka Metro"]

    def test_stored_normalized_name_kept(self):
        school = parse_school_row(make_school_row(normalized_name="dps rk puram"))
        assert school.normalized_name == "dps rk puram"

    @pytest.mark.parametrize(
        "overrides",
        [{"lat": None}, {"lng": "inf"}, {"lat": -91}, {"school_name": ""}, {"school_name": None}, {"verified": "maybe"}],
    )
    def test_malformed_rejected(self, overrides):
        with pytest.raises(InvalidRecordError):
            parse_school_row(make_school_row(**overrides))

    def test_rows(self):
        schools, rejected = parse_school_rows([make_school_row(), make_school_row(id="x", lat=200)])
        assert [s.id for s in schools] == ["dps-rkp"]
        assert rejected == ["x"]


class TestGarbledFieldsNotDefaulted:
    def test_row_with_garbled_optional_fields_is_rejected(self):
        rows = [
            make_listing_row(id="garbled", boost_expires_at="next tuesday", view_count="lots",
                             featured="maybe", negotiable="perhaps"),
            make_listing_row(id="clean"),
        ]
        listings, rejected = parse_listing_rows(rows)
        assert [listing.id for listing in listings] == ["clean"]
        assert rejected == ["garbled"]

    def test_blank_optional_fields_take_defaults(self):
        listing = parse_listing_row(make_listing_row(view_count="", featured="", negotiable=None,
                                                     boost_expires_at=""))
        assert listing.view_count == 0
        assert listing.featured is False
        assert listing.negotiable is False
        assert listing.boost_expires_at is None
