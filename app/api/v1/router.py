from fastapi import APIRouter

from app.api.v1.endpoints import (
    # Reliability
    couriers,
    # Insurance
    insurance,
    # Shareable Tracking
    tracking,
    # Proof of Delivery
    delivery_proofs,
)


# Create main API router
api_router = APIRouter(prefix="/api/v1")

# ==================== Reliability ====================
api_router.include_router(
    couriers.router,
    prefix="/couriers",
    tags=["Couriers"]
)

# ==================== Insurance ====================
api_router.include_router(
    insurance.router,
    prefix="/insurance",
    tags=["Insurance"]
)

# ==================== Shareable Tracking ====================
api_router.include_router(
    tracking.router,
    prefix="/tracking",
    tags=["Tracking"]
)

# ==================== Proof of Delivery ====================
api_router.include_router(
    delivery_proofs.router,
    prefix="/delivery-proofs",
    tags=["Delivery Proofs"]
)
