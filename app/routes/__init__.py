"""Route handlers for the MSP core gateway."""

from fastapi import APIRouter

from app.routes import admin, contracts, discovery, gateway, health, pricing

# Create main router
router = APIRouter()

# Include sub-routers (order matters - more specific routes first)
router.include_router(health.router, tags=["Health"])
router.include_router(discovery.router, prefix="/api/v1", tags=["Discovery"])
router.include_router(admin.router, prefix="/api/v1/admin", tags=["Admin"])
router.include_router(contracts.router, prefix="/api/v1", tags=["Contracts"])
router.include_router(pricing.router, prefix="/api/v1", tags=["Pricing"])
router.include_router(gateway.router, tags=["Gateway"])  # Catch-all should be last
