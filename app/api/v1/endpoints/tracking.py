"""
Shareable Tracking API Endpoints

Couriers mint and revoke public links and report positions. The public
view resolves a share code without authentication.
"""
import logging
import uuid

from fastapi import APIRouter, HTTPException, status

from app.api.deps import DB, CurrentCourier, get_courier_delivery
from app.core.exceptions import NotFoundError, PersistenceError
from app.schemas.tracking import (
    ShareLinkCreate,
    ShareLinkResponse,
    ShareMessageRequest,
    ShareMessageResponse,
    PositionCreate,
    TrackingUpdateResponse,
    PublicTrackingResponse,
    PublicLinkInfo,
    PublicDeliveryInfo,
    PublicCourierInfo,
)
from app.services.tracking_share_service import (
    TrackingShareService,
    ShareLinkOptions,
    format_share_message,
)

logger = logging.getLogger(__name__)
router = APIRouter()


# ==================== Share Links ====================

@router.post("/share", response_model=ShareLinkResponse, status_code=status.HTTP_201_CREATED)
async def create_share_link(data: ShareLinkCreate, db: DB, current_courier: CurrentCourier):
    """Mint a public tracking link for one of the courier's deliveries."""
    await get_courier_delivery(db, data.delivery_id, current_courier)

    service = TrackingShareService(db)
    options = ShareLinkOptions(
        show_driver_name=data.show_driver_name,
        show_driver_phone=data.show_driver_phone,
        show_driver_photo=data.show_driver_photo,
        show_eta=data.show_eta,
        expires_in_hours=data.expires_in_hours,
    )
    try:
        link = await service.create_link(data.delivery_id, options)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return ShareLinkResponse(
        share_url=link.share_url,
        share_code=link.share_code,
        expires_at=link.expires_at,
    )


@router.delete("/share/{share_code}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_share_link(share_code: str, db: DB, current_courier: CurrentCourier):
    """Deactivate a link; the public page stops resolving it."""
    service = TrackingShareService(db)
    try:
        await service.revoke_link(share_code, current_courier.id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.post("/share-message", response_model=ShareMessageResponse)
async def build_share_message(data: ShareMessageRequest):
    """WhatsApp link carrying the tracking URL."""
    return ShareMessageResponse(link=format_share_message(data.share_url, data.recipient_phone))


# ==================== Public View (no auth) ====================

@router.get("/public/{share_code}", response_model=PublicTrackingResponse)
async def get_public_tracking(share_code: str, db: DB):
    """
    Public tracking page data.
    Counts one view per call. Unknown, revoked and expired codes return 404.
    """
    service = TrackingShareService(db)
    try:
        view = await service.resolve(share_code)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    link = view.link
    return PublicTrackingResponse(
        link=PublicLinkInfo(
            share_code=link.share_code,
            expires_at=link.expires_at,
            view_count=link.view_count,
            show_driver_name=link.show_driver_name,
            show_driver_phone=link.show_driver_phone,
            show_driver_photo=link.show_driver_photo,
            show_eta=link.show_eta,
        ),
        delivery=PublicDeliveryInfo(**view.delivery),
        courier=PublicCourierInfo(**view.courier) if view.courier else None,
        updates=[TrackingUpdateResponse(**item) for item in view.updates],
    )


# ==================== Positions ====================

@router.post(
    "/{delivery_id}/positions",
    response_model=TrackingUpdateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def report_position(
    delivery_id: uuid.UUID,
    data: PositionCreate,
    db: DB,
    current_courier: CurrentCourier,
):
    """Append the courier's current position to the delivery feed."""
    await get_courier_delivery(db, delivery_id, current_courier)

    service = TrackingShareService(db)
    try:
        position = await service.record_position(
            delivery_id,
            latitude=data.latitude,
            longitude=data.longitude,
            accuracy=data.accuracy,
            eta_minutes=data.eta_minutes,
            distance_remaining=data.distance_remaining,
            status=data.status,
        )
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return TrackingUpdateResponse.model_validate(position)
