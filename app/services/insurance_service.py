"""
Package Insurance Service

Prices the three insurance plans for a declared value, issues policies and
files claims. Amounts are whole currency units (FCFA).

Pricing:
    premium  = max(round(value * premium_percent / 100), min_premium)
    coverage = min(round(value * coverage_percent / 100), max_coverage)
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from types import MappingProxyType
from typing import Optional, List, Dict, Mapping, Tuple

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.clock import utc_now
from app.core.exceptions import NotFoundError, PersistenceError
from app.core.numbers import round_half_up
from app.models.insurance import (
    PackageInsurancePolicy,
    InsuranceClaim,
    InsurancePlanTier,
    ClaimType,
    ClaimStatus,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsurancePlan:
    """Immutable catalog entry."""
    tier: InsurancePlanTier
    name: str
    premium_percent: float
    min_premium: int
    coverage_percent: int
    max_coverage: int
    features: Tuple[str, ...] = ()


INSURANCE_PLANS: Mapping[InsurancePlanTier, InsurancePlan] = MappingProxyType({
    InsurancePlanTier.BASIC: InsurancePlan(
        tier=InsurancePlanTier.BASIC,
        name="Basic",
        premium_percent=2,
        min_premium=500,
        coverage_percent=50,
        max_coverage=50_000,
        features=("Loss coverage", "Claim review within 7 days"),
    ),
    InsurancePlanTier.STANDARD: InsurancePlan(
        tier=InsurancePlanTier.STANDARD,
        name="Standard",
        premium_percent=5,
        min_premium=1_000,
        coverage_percent=80,
        max_coverage=200_000,
        features=("Loss and damage coverage", "Claim review within 72 hours"),
    ),
    InsurancePlanTier.PREMIUM: InsurancePlan(
        tier=InsurancePlanTier.PREMIUM,
        name="Premium",
        premium_percent=5,
        min_premium=2_500,
        coverage_percent=100,
        max_coverage=1_000_000,
        features=("Full value coverage", "Theft and delay coverage", "Claim review within 24 hours"),
    ),
})


def get_plan(tier: InsurancePlanTier | str) -> InsurancePlan:
    return INSURANCE_PLANS[InsurancePlanTier(tier)]


def price(declared_value: int, tier: InsurancePlanTier | str) -> Tuple[int, int]:
    """
    Premium and coverage of a plan for a declared value.

    Returns:
        (premium, coverage)
    """
    plan = get_plan(tier)

    calculated_premium = int(round_half_up(declared_value * plan.premium_percent / 100))
    premium = max(calculated_premium, plan.min_premium)

    calculated_coverage = int(round_half_up(declared_value * plan.coverage_percent / 100))
    coverage = min(calculated_coverage, plan.max_coverage)

    return premium, coverage


def quote_all(declared_value: int) -> List[Dict[str, int | str]]:
    """Price every plan for the same declared value."""
    quotes = []
    for tier in INSURANCE_PLANS:
        premium, coverage = price(declared_value, tier)
        quotes.append({
            "tier": tier.value,
            "declared_value": declared_value,
            "premium": premium,
            "coverage": coverage,
        })
    return quotes


class InsuranceService:
    """Issues policies and files claims."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def issue_policy(
        self,
        delivery_id: uuid.UUID,
        declared_value: int,
        tier: InsurancePlanTier | str,
    ) -> PackageInsurancePolicy:
        """Insure a delivery. The policy is active for POLICY_VALIDITY_DAYS."""
        tier = InsurancePlanTier(tier)
        premium, coverage = price(declared_value, tier)
        now = utc_now()

        policy = PackageInsurancePolicy(
            delivery_id=delivery_id,
            plan_tier=tier.value,
            declared_value=declared_value,
            premium_amount=premium,
            coverage_amount=coverage,
            is_active=True,
            activated_at=now,
            expires_at=now + timedelta(days=settings.POLICY_VALIDITY_DAYS),
        )

        try:
            self.db.add(policy)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error issuing policy for delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(
            f"Issued {tier.value} policy {policy.id} for delivery {delivery_id}: "
            f"premium={premium}, coverage={coverage}"
        )
        return policy

    async def get_policy(self, policy_id: uuid.UUID) -> PackageInsurancePolicy:
        policy = await self.db.get(PackageInsurancePolicy, policy_id)
        if policy is None:
            raise NotFoundError(f"Policy {policy_id} not found")
        return policy

    async def file_claim(
        self,
        policy_id: uuid.UUID,
        delivery_id: uuid.UUID,
        filer_id: uuid.UUID,
        claim_type: ClaimType | str,
        description: str,
        evidence_urls: Optional[List[str]] = None,
        claimed_amount: int = 0,
    ) -> InsuranceClaim:
        """
        File a pending claim.

        The policy's activity and expiry are not checked here; adjudication
        happens outside this service.
        """
        claim_type = ClaimType(claim_type)
        claim = InsuranceClaim(
            policy_id=policy_id,
            delivery_id=delivery_id,
            filer_id=filer_id,
            claim_type=claim_type.value,
            description=description,
            evidence_urls=list(evidence_urls or []),
            claimed_amount=claimed_amount,
            status=ClaimStatus.PENDING.value,
        )

        try:
            self.db.add(claim)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error filing claim on policy {policy_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Claim {claim.id} ({claim_type.value}) filed on policy {policy_id}")
        return claim

    async def list_claims(self, policy_id: uuid.UUID) -> List[InsuranceClaim]:
        """Claims of a policy, oldest first."""
        await self.get_policy(policy_id)
        result = await self.db.execute(
            select(InsuranceClaim)
            .where(InsuranceClaim.policy_id == policy_id)
            .order_by(InsuranceClaim.created_at)
        )
        return list(result.scalars().all())
