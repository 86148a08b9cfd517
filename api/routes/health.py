"""Health check routes."""

from fastapi import APIRouter

from . import design

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    engine = design.get_engine()
    return {
        "status": "healthy",
        "build_ready": engine.build is not None,
        "rebuilds": engine.rebuild_count,
    }
