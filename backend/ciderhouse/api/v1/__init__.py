"""
API v1 Router
Aggregates all v1 endpoints
"""

from fastapi import APIRouter

from ciderhouse.api.v1 import auth, batches, inventory, purchases, ttb, vendors, vessels
from ciderhouse.core.config import settings

api_router = APIRouter()

# Include route modules
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(vendors.router, prefix="/vendors", tags=["Vendors"])
api_router.include_router(purchases.router, prefix="/purchases", tags=["Purchases"])
api_router.include_router(vessels.router, prefix="/vessels", tags=["Vessels"])
api_router.include_router(batches.router, prefix="/batches", tags=["Batches"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["Inventory"])
api_router.include_router(ttb.router, prefix="/ttb", tags=["TTB"])


@api_router.get("/")
def api_root():
    return {
        "message": f"{settings.PROJECT_NAME} API v1",
        "version": settings.VERSION,
        "status": "active",
        "endpoints": {
            "auth": "/v1/auth",
            "vendors": "/v1/vendors",
            "purchases": "/v1/purchases",
            "vessels": "/v1/vessels",
            "batches": "/v1/batches",
            "inventory": "/v1/inventory",
            "ttb": "/v1/ttb",
            "docs": "/docs"
        }
    }
