"""Pydantic schemas for proof-of-delivery."""
from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
import uuid

from app.schemas.base import BaseResponseSchema, BaseCreateSchema


class ProofArtifactResponse(BaseResponseSchema):
    """Uploaded photo evidence."""
    id: uuid.UUID
    delivery_id: uuid.UUID
    courier_id: uuid.UUID
    photo_type: str
    photo_url: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    taken_at: datetime
    is_verified: bool
    analysis: Optional[dict] = None
    created_at: datetime


class SignatureCreate(BaseCreateSchema):
    signature_data: str = Field(..., min_length=1)
    signer_name: str = Field(..., min_length=1, max_length=100)
    signer_phone: Optional[str] = Field(None, max_length=20)


class SignatureResponse(BaseResponseSchema):
    id: uuid.UUID
    delivery_id: uuid.UUID
    signer_name: str
    signer_phone: Optional[str] = None
    created_at: datetime


class ProofSubmissionResponse(BaseModel):
    """Result of a full proof submission."""
    delivery_id: uuid.UUID
    step: str
    completed_steps: List[str] = []
    artifacts: List[ProofArtifactResponse] = []
