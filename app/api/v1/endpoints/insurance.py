"""
Package Insurance API Endpoints

Plan catalog and quotes are public; issuing policies and filing claims
require an authenticated courier.
"""
import logging
import uuid

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import DB, CurrentCourier
from app.core.exceptions import NotFoundError, PersistenceError
from app.schemas.insurance import (
    InsurancePlanResponse,
    InsuranceQuote,
    PolicyCreate,
    PolicyResponse,
    ClaimCreate,
    ClaimResponse,
)
from app.services.insurance_service import InsuranceService, INSURANCE_PLANS, quote_all

logger = logging.getLogger(__name__)
router = APIRouter()


# ==================== PLANS & QUOTES ====================

@router.get("/plans", response_model=list[InsurancePlanResponse])
async def list_plans():
    """Insurance plan catalog."""
    return [
        InsurancePlanResponse(
            tier=plan.tier,
            name=plan.name,
            premium_percent=plan.premium_percent,
            min_premium=plan.min_premium,
            coverage_percent=plan.coverage_percent,
            max_coverage=plan.max_coverage,
            features=list(plan.features),
        )
        for plan in INSURANCE_PLANS.values()
    ]


@router.get("/quote", response_model=list[InsuranceQuote])
async def get_quotes(declared_value: int = Query(..., ge=0, description="Declared package value")):
    """Premium and coverage of every plan for a declared value."""
    return [InsuranceQuote(**quote) for quote in quote_all(declared_value)]


# ==================== POLICIES ====================

@router.post("/policies", response_model=PolicyResponse, status_code=status.HTTP_201_CREATED)
async def issue_policy(data: PolicyCreate, db: DB, current_courier: CurrentCourier):
    """Insure a delivery under a plan."""
    service = InsuranceService(db)
    try:
        policy = await service.issue_policy(data.delivery_id, data.declared_value, data.plan_tier)
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return PolicyResponse.model_validate(policy)


@router.get("/policies/{policy_id}", response_model=PolicyResponse)
async def get_policy(policy_id: uuid.UUID, db: DB, current_courier: CurrentCourier):
    service = InsuranceService(db)
    try:
        policy = await service.get_policy(policy_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return PolicyResponse.model_validate(policy)


# ==================== CLAIMS ====================

@router.post(
    "/policies/{policy_id}/claims",
    response_model=ClaimResponse,
    status_code=status.HTTP_201_CREATED,
)
async def file_claim(
    policy_id: uuid.UUID,
    data: ClaimCreate,
    db: DB,
    current_courier: CurrentCourier,
):
    """
    File a claim against a policy.
    The claim starts as pending; the filer is the authenticated courier.
    """
    service = InsuranceService(db)
    try:
        policy = await service.get_policy(policy_id)
        claim = await service.file_claim(
            policy_id=policy.id,
            delivery_id=data.delivery_id or policy.delivery_id,
            filer_id=current_courier.id,
            claim_type=data.claim_type,
            description=data.description,
            evidence_urls=data.evidence_urls,
            claimed_amount=data.claimed_amount,
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return ClaimResponse.model_validate(claim)


@router.get("/policies/{policy_id}/claims", response_model=list[ClaimResponse])
async def list_claims(policy_id: uuid.UUID, db: DB, current_courier: CurrentCourier):
    service = InsuranceService(db)
    try:
        claims = await service.list_claims(policy_id)
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return [ClaimResponse.model_validate(c) for c in claims]
