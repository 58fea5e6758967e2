"""Pydantic schemas for shareable tracking links."""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid

from app.schemas.base import BaseResponseSchema, BaseCreateSchema


class ShareLinkCreate(BaseCreateSchema):
    """Options of a new public tracking link."""
    delivery_id: uuid.UUID
    show_driver_name: bool = True
    show_driver_phone: bool = False
    show_driver_photo: bool = True
    show_eta: bool = True
    expires_in_hours: Optional[int] = Field(None, gt=0, le=24 * 30)


class ShareLinkResponse(BaseModel):
    share_url: str
    share_code: str
    expires_at: datetime


class ShareMessageRequest(BaseCreateSchema):
    share_url: str
    recipient_phone: Optional[str] = None


class ShareMessageResponse(BaseModel):
    link: str


class PositionCreate(BaseCreateSchema):
    """Courier position report."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0)
    status: Optional[str] = None
    eta_minutes: Optional[int] = Field(None, ge=0)
    distance_remaining: Optional[float] = Field(None, ge=0)


class TrackingUpdateResponse(BaseResponseSchema):
    id: uuid.UUID
    delivery_id: uuid.UUID
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    status: Optional[str] = None
    eta_minutes: Optional[int] = None
    distance_remaining: Optional[float] = None
    created_at: datetime


# ==================== PUBLIC VIEW ====================

class PublicLinkInfo(BaseModel):
    share_code: str
    expires_at: datetime
    view_count: int
    show_driver_name: bool
    show_driver_phone: bool
    show_driver_photo: bool
    show_eta: bool


class PublicDeliveryInfo(BaseModel):
    id: uuid.UUID
    status: str
    recipient_name: Optional[str] = None
    pickup_address: Optional[str] = None
    dropoff_address: Optional[str] = None
    dropoff_latitude: Optional[float] = None
    dropoff_longitude: Optional[float] = None
    estimated_arrival: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


class PublicCourierInfo(BaseModel):
    """Courier fields hidden by the link's visibility flags are null."""
    full_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    reliability_score: Optional[int] = None
    trust_tier: Optional[str] = None


class PublicTrackingResponse(BaseModel):
    link: PublicLinkInfo
    delivery: PublicDeliveryInfo
    courier: Optional[PublicCourierInfo] = None
    updates: List[TrackingUpdateResponse] = []
