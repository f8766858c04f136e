"""
API v1 Router - combines all route modules
"""
from fastapi import APIRouter

from dealer_portal.api.v1.endpoints import auth, client_portal

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(client_portal.router, prefix="/client-portal", tags=["Client Portal Admin"])
