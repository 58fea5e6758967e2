"""Pydantic schemas for package insurance."""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid

from app.models.insurance import InsurancePlanTier, ClaimType
from app.schemas.base import BaseResponseSchema, BaseCreateSchema


# ==================== PLAN SCHEMAS ====================

class InsurancePlanResponse(BaseModel):
    """Catalog entry of an insurance plan."""
    tier: InsurancePlanTier
    name: str
    premium_percent: float
    min_premium: int
    coverage_percent: int
    max_coverage: int
    features: List[str] = []


class InsuranceQuote(BaseModel):
    """Priced plan for a declared value."""
    tier: InsurancePlanTier
    declared_value: int
    premium: int
    coverage: int


# ==================== POLICY SCHEMAS ====================

class PolicyCreate(BaseCreateSchema):
    """Insure a delivery."""
    delivery_id: uuid.UUID
    declared_value: int = Field(..., ge=0)
    plan_tier: InsurancePlanTier


class PolicyResponse(BaseResponseSchema):
    id: uuid.UUID
    delivery_id: uuid.UUID
    plan_tier: str
    declared_value: int
    premium_amount: int
    coverage_amount: int
    is_active: bool
    activated_at: datetime
    expires_at: datetime
    created_at: datetime


# ==================== CLAIM SCHEMAS ====================

class ClaimCreate(BaseCreateSchema):
    """File a claim against a policy."""
    claim_type: ClaimType
    description: str = Field(..., min_length=1)
    evidence_urls: List[str] = []
    claimed_amount: int = Field(..., ge=0)
    delivery_id: Optional[uuid.UUID] = None


class ClaimResponse(BaseResponseSchema):
    id: uuid.UUID
    policy_id: uuid.UUID
    delivery_id: uuid.UUID
    filer_id: uuid.UUID
    claim_type: str
    description: str
    evidence_urls: List[str] = []
    claimed_amount: int
    status: str
    created_at: datetime
