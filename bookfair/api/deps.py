"""API dependencies — school registry, authentication, and common utilities.

Every /api/v1 router requires the X-API-Key header (configured via API_KEY in
.env). /health and /docs stay public.
"""
import secrets
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import APIKeyHeader

from bookfair.config import settings
from bookfair.core.exceptions import RegistryUnavailableError
from bookfair.services.registry_service import SchoolRegistry
from bookfair.services.school_service import SchoolResolver


# ---------------------------------------------------------------------------
# School registry dependency
# ---------------------------------------------------------------------------

def get_school_registry(request: Request) -> SchoolRegistry:
    """Registry loaded in the application lifespan."""
    registry = getattr(request.app.state, "school_registry", None)
    if registry is None:
        raise RegistryUnavailableError("School registry is not loaded")
    return registry


def get_school_resolver(
    registry: Annotated[SchoolRegistry, Depends(get_school_registry)],
) -> SchoolResolver:
    return SchoolResolver(registry)


# ---------------------------------------------------------------------------
# API Key authentication
# ---------------------------------------------------------------------------

_api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False,  # return a custom 401 instead of 403
    description="Authentication API key. Configured via API_KEY in .env",
)


async def verify_api_key(
    api_key: Annotated[str | None, Security(_api_key_header)],
) -> str:
    """Validate the X-API-Key header with a constant-time comparison.

    Raises:
        HTTPException 401: if the key is missing or wrong.
        HTTPException 500: if API_KEY is not configured on the server.
    """
    if not settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server is not configured correctly (API_KEY missing).",
        )

    if not api_key or not secrets.compare_digest(api_key, settings.api_key):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key. Use the X-API-Key header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return api_key


# Shorthand for router dependencies
RequireApiKey = Depends(verify_api_key)
