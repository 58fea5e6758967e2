"""
Courier Reliability API Endpoints

Scores, trust tiers and badges, plus the events that trigger a score
recomputation (delivery outcome, incident, identity verification).
"""
import logging
import uuid
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import DB, get_current_courier
from app.config import settings
from app.core.exceptions import NotFoundError, PersistenceError
from app.models.reliability import TrustTier
from app.schemas.reliability import (
    ReliabilityScoreResponse,
    CourierResponse,
    TrustTierInfo,
    DeliveryOutcomeUpdate,
    IncidentCreate,
    IncidentResponse,
    IdentityVerificationUpdate,
)
from app.services.reliability_service import ReliabilityService, trust_tier_info

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/trust-tiers", response_model=list[TrustTierInfo])
async def list_trust_tiers():
    """Display metadata of every trust tier, lowest first."""
    return [TrustTierInfo(**trust_tier_info(tier)) for tier in TrustTier]


@router.get("/{courier_id}", response_model=CourierResponse)
async def get_courier(courier_id: uuid.UUID, db: DB):
    """Courier summary with its current score, tier and badges."""
    service = ReliabilityService(db)
    try:
        courier = await service.get_courier(courier_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return CourierResponse.model_validate(courier)


@router.get("/{courier_id}/reliability", response_model=ReliabilityScoreResponse)
async def get_reliability(courier_id: uuid.UUID, db: DB):
    """
    Stored reliability score.
    Computed on first access; recomputed once older than the staleness window.
    """
    service = ReliabilityService(db)
    try:
        score = await service.get_score(
            courier_id,
            max_age=timedelta(hours=settings.SCORE_STALE_AFTER_HOURS),
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return ReliabilityScoreResponse.model_validate(score)


@router.post(
    "/{courier_id}/reliability/recompute",
    response_model=ReliabilityScoreResponse,
    dependencies=[Depends(get_current_courier)],
)
async def recompute_reliability(courier_id: uuid.UUID, db: DB):
    """Force a recomputation of the score."""
    service = ReliabilityService(db)
    try:
        score = await service.compute_score(courier_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return ReliabilityScoreResponse.model_validate(score)


@router.post(
    "/{courier_id}/deliveries/{delivery_id}/outcome",
    response_model=ReliabilityScoreResponse,
    dependencies=[Depends(get_current_courier)],
)
async def record_delivery_outcome(
    courier_id: uuid.UUID,
    delivery_id: uuid.UUID,
    data: DeliveryOutcomeUpdate,
    db: DB,
):
    """Record a delivery's status, lateness or rating and return the new score."""
    service = ReliabilityService(db)
    try:
        score = await service.record_delivery_outcome(
            courier_id,
            delivery_id,
            status=data.status,
            is_late=data.is_late,
            customer_rating=data.customer_rating,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return ReliabilityScoreResponse.model_validate(score)


@router.post(
    "/{courier_id}/incidents",
    response_model=IncidentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_courier)],
)
async def report_incident(courier_id: uuid.UUID, data: IncidentCreate, db: DB):
    """Report an incident against a courier."""
    service = ReliabilityService(db)
    try:
        incident = await service.record_incident(
            courier_id,
            incident_type=data.incident_type,
            description=data.description,
            delivery_id=data.delivery_id,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return IncidentResponse.model_validate(incident)


@router.put(
    "/{courier_id}/verification",
    response_model=ReliabilityScoreResponse,
    dependencies=[Depends(get_current_courier)],
)
async def update_verification(courier_id: uuid.UUID, data: IdentityVerificationUpdate, db: DB):
    """Set the identity verification flag of a courier."""
    service = ReliabilityService(db)
    try:
        score = await service.set_identity_verification(courier_id, data.is_identity_verified)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return ReliabilityScoreResponse.model_validate(score)
