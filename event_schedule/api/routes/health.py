"""Health check routes for the FastAPI application."""

from fastapi import APIRouter

from ... import __version__
from ...config.environment import IS_PRODUCTION_ENVIRONMENT
from ...config.data_sources import get_enabled_source_types
from ...config.settings import get_site_timezone_name

router = APIRouter(tags=["health"])

@router.get("/")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "environment": "production" if IS_PRODUCTION_ENVIRONMENT else "development",
        "timezone": get_site_timezone_name(),
        "feed_types": sorted(get_enabled_source_types()),
        "version": __version__
    }
