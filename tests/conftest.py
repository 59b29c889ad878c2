"""Test fixtures — async test client, school registry, payload factories."""
from datetime import datetime, timezone
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from bookfair.api.deps import get_school_registry, verify_api_key
from bookfair.main import app
from bookfair.services.registry_service import InMemorySchoolRegistry


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)

# RK Puram, New Delhi
USER_LAT = 28.5665
USER_LNG = 77.1750


def make_listing_row(**overrides) -> dict:
    """Create a valid candidate row as returned by the listings store."""
    defaults = {
        "id": "book-1",
        "user_id": "seller-1",
        "title": "Mathematics Class 10",
        "author": "R.D. Sharma",
        "description": "Complete NCERT-aligned practice book.",
        "category": "Textbooks",
        "book_type": "school",
        "condition": "Good",
        "price": 200,
        "negotiable": False,
        "grade": "10",
        "subject": "Mathematics",
        "board": "CBSE",
        "school_name": "Delhi Public School",
        "view_count": 0,
        "favorite_count": 0,
        "featured": False,
        "created_at": "2024-04-01T10:00:00+00:00",
        "profiles": {
            "username": "asha",
            "lat": USER_LAT,
            "lng": USER_LNG,
            "rating": 4.0,
            "verified_seller": False,
        },
    }
    defaults.update(overrides)
    return defaults


def make_school_row(**overrides) -> dict:
    """Create a valid school_clusters row."""
    defaults = {
        "id": "dps-rkp",
        "school_name": "Delhi Public School, RK Puram",
        "lat": 28.5672,
        "lng": 77.1740,
        "area": "RK Puram",
        "city": "New Delhi",
        "state": "Delhi",
        "pincode": "110022",
        "landmarks": ["Sector 12 Market", "Munirka Metro"],
        "school_type": "private",
        "verified": True,
    }
    defaults.update(overrides)
    return defaults


@pytest.fixture
def school_registry() -> InMemorySchoolRegistry:
    return InMemorySchoolRegistry.from_rows([
        make_school_row(),
        make_school_row(
            id="dps-vk",
            school_name="Delhi Public School, Vasant Kunj",
            lat=28.5200,
            lng=77.1580,
            area="Vasant Kunj",
            pincode="110070",
            landmarks=["Vasant Kunj Mall"],
        ),
        make_school_row(
            id="kv-8",
            school_name="Kendriya Vidyalaya Sector 8",
            lat=28.5680,
            lng=77.1770,
            area="RK Puram",
            pincode="110022",
            landmarks=["DDA Market", "Metro Station"],
            school_type="government",
        ),
    ])


@pytest_asyncio.fixture(scope="function")
async def client(school_registry: InMemorySchoolRegistry) -> AsyncGenerator[AsyncClient, None]:
    """Yield an HTTP test client with auth bypassed and the test registry injected."""

    async def override_verify_api_key() -> str:
        return "test-key"

    app.dependency_overrides[verify_api_key] = override_verify_api_key
    app.dependency_overrides[get_school_registry] = lambda: school_registry

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
