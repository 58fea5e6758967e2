"""Pydantic schemas for courier reliability scores and badges."""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid

from app.models.courier import DeliveryStatus
from app.schemas.base import BaseResponseSchema, BaseCreateSchema


# ==================== SCORE SCHEMAS ====================

class BadgeSnapshot(BaseModel):
    """Badge entry in the score snapshot."""
    id: str
    name: str
    icon: Optional[str] = None
    earned_at: Optional[datetime] = None


class ReliabilityScoreResponse(BaseResponseSchema):
    """Stored reliability score of a courier."""
    courier_id: uuid.UUID
    overall_score: int
    trust_tier: str

    delivery_success_rate: int
    on_time_rate: int
    customer_rating_avg: float
    incident_rate: float
    verification_bonus: int
    experience_bonus: int

    total_deliveries: int
    successful_deliveries: int
    failed_deliveries: int
    total_incidents: int
    total_reviews: int

    badges: List[BadgeSnapshot] = []
    computed_at: datetime


class CourierBadgeResponse(BaseResponseSchema):
    """Badge earned by a courier."""
    badge_id: str
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    earned_at: datetime


class CourierResponse(BaseResponseSchema):
    """Courier summary with its computed score and tier."""
    id: uuid.UUID
    full_name: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    is_identity_verified: bool
    reliability_score: Optional[int] = None
    trust_tier: Optional[str] = None
    badges: List[CourierBadgeResponse] = []
    created_at: datetime


class TrustTierInfo(BaseModel):
    """Display metadata of a trust tier."""
    tier: str
    label: str
    color: str
    min_score: int
    max_score: int


# ==================== TRIGGER SCHEMAS ====================

class DeliveryOutcomeUpdate(BaseCreateSchema):
    """Outcome of a delivery, triggers a score recomputation."""
    status: DeliveryStatus
    is_late: Optional[bool] = None
    customer_rating: Optional[int] = Field(None, ge=1, le=5)


class IncidentCreate(BaseCreateSchema):
    """Incident reported against a courier."""
    incident_type: str = Field(..., min_length=2, max_length=50)
    description: Optional[str] = None
    delivery_id: Optional[uuid.UUID] = None


class IncidentResponse(BaseResponseSchema):
    id: uuid.UUID
    courier_id: uuid.UUID
    delivery_id: Optional[uuid.UUID] = None
    incident_type: str
    description: Optional[str] = None
    created_at: datetime


class IdentityVerificationUpdate(BaseCreateSchema):
    is_identity_verified: bool
