"""API v1 routing configuration.

This module defines all v1 API routes.
"""

from fastapi import APIRouter

from poweragent.api.v1 import workflows

router = APIRouter()

# Domain routers
router.include_router(workflows.router, prefix="/workflows", tags=["Workflows"])


@router.get("/status", tags=["Status"])
async def api_status() -> dict[str, str]:
    """API v1 status check."""
    return {"status": "ok", "version": "v1"}
