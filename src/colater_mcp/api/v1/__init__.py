"""API v1 router."""

from fastapi import APIRouter

from colater_mcp.api.v1.api_keys import router as api_keys_router
from colater_mcp.api.v1.mcp import router as mcp_router

router = APIRouter()

# Include sub-routers
router.include_router(mcp_router, prefix="/mcp", tags=["mcp"])
router.include_router(api_keys_router, prefix="/brands", tags=["api-keys"])
