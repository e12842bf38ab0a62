"""FastAPI dependencies for dependency injection"""

import logging

from fastapi import HTTPException, Request

from core.config import get_settings
from core.identity import SkinResolver
from core.skins import SkinCatalog, SkinIntake

logger = logging.getLogger(__name__)


async def get_current_settings():
    """Get current application settings"""
    return get_settings()


def _from_state(request: Request, name: str, label: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        logger.error(f"{label} requested before application startup")
        raise HTTPException(
            status_code=503,
            detail=f"{label} is not available. Please check the service configuration.",
        )
    return service


async def get_catalog(request: Request) -> SkinCatalog:
    """
    Get the skin catalog from app state.

    Either the in-memory catalog or the Redis-backed one, depending on the
    ``catalog_backend`` setting. Handlers only see the ``SkinCatalog`` interface.
    """
    return _from_state(request, "catalog", "Skin catalog")


async def get_intake(request: Request) -> SkinIntake:
    """Get the upload intake pipeline from app state"""
    return _from_state(request, "intake", "Upload intake")


async def get_resolver(request: Request) -> SkinResolver:
    """Get the Mojang skin resolver from app state"""
    return _from_state(request, "resolver", "Skin resolver")
