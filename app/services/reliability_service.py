"""
Courier Reliability Scoring Service

Computes a courier's composite reliability score from delivery history:
- Success, on-time and incident rates over all deliveries
- Average customer rating
- Identity verification and tenure bonuses

The result is upserted into courier_reliability_scores (one row per courier)
together with a trust tier and a snapshot of the badges earned so far.
The courier summary reads score and tier from that row.
"""
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional, List, Dict, Any, Callable, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.config import settings
from app.core.clock import utc_now, as_utc
from app.core.exceptions import NotFoundError, PersistenceError
from app.core.numbers import round_half_up
from app.models.courier import Courier, Delivery, DeliveryStatus, Incident
from app.models.reliability import CourierReliabilityScore, CourierBadge, TrustTier

logger = logging.getLogger(__name__)


# =============================================================================
# WEIGHTS & TIERS
# =============================================================================

SUCCESS_WEIGHT = 0.25
ON_TIME_WEIGHT = 0.20
RATING_WEIGHT = 0.25
INCIDENT_WEIGHT = 0.15
EXPERIENCE_WEIGHT = 0.5

VERIFICATION_BONUS = 10
MAX_EXPERIENCE_MONTHS = 10
MONTH = timedelta(days=30)

# Lower bound of each tier, highest first
TIER_BREAKPOINTS = [
    (91, TrustTier.DIAMOND),
    (76, TrustTier.PLATINUM),
    (61, TrustTier.GOLD),
    (41, TrustTier.SILVER),
    (0, TrustTier.BRONZE),
]

TRUST_TIER_INFO: Dict[TrustTier, Dict[str, Any]] = {
    TrustTier.BRONZE: {"label": "Bronze", "color": "#CD7F32", "min_score": 0, "max_score": 40},
    TrustTier.SILVER: {"label": "Silver", "color": "#C0C0C0", "min_score": 41, "max_score": 60},
    TrustTier.GOLD: {"label": "Gold", "color": "#FFD700", "min_score": 61, "max_score": 75},
    TrustTier.PLATINUM: {"label": "Platinum", "color": "#E5E4E2", "min_score": 76, "max_score": 90},
    TrustTier.DIAMOND: {"label": "Diamond", "color": "#B9F2FF", "min_score": 91, "max_score": 100},
}


def tier_for_score(score: int) -> TrustTier:
    """Trust tier for an overall score (monotonic step function)."""
    for lower_bound, tier in TIER_BREAKPOINTS:
        if score >= lower_bound:
            return tier
    return TrustTier.BRONZE


def trust_tier_info(tier: TrustTier | str) -> Dict[str, Any]:
    """Display metadata (label, color, score range) of a tier."""
    tier = TrustTier(tier)
    return {"tier": tier.value, **TRUST_TIER_INFO[tier]}


# =============================================================================
# PURE SCORE COMPUTATION
# =============================================================================

@dataclass(frozen=True)
class ScoreBreakdown:
    """Unrounded score components plus the statistics they came from."""
    overall_score: int
    trust_tier: TrustTier
    delivery_success_rate: float
    on_time_rate: float
    customer_rating_avg: float
    incident_rate: float
    verification_bonus: int
    experience_bonus: int
    months_active: int
    total_deliveries: int
    successful_deliveries: int
    failed_deliveries: int
    total_incidents: int
    total_reviews: int


def calculate_score(
    deliveries: Sequence[Delivery],
    incident_count: int,
    is_identity_verified: bool,
    joined_at: datetime,
    now: Optional[datetime] = None,
) -> ScoreBreakdown:
    """
    Compute the composite score.

    overall = success*0.25 + on_time*0.20 + (rating/5*100)*0.25
              + (100 - incident_rate)*0.15 + verification + experience*0.5

    rounded half-up and clamped to [0, 100]. A courier without deliveries
    gets full success/on-time rates, no incidents and a 5.0 rating.
    """
    now = now or utc_now()

    total = len(deliveries)
    successful = sum(1 for d in deliveries if d.status == DeliveryStatus.DELIVERED.value)
    on_time = sum(1 for d in deliveries if not d.is_late)
    ratings = [d.customer_rating for d in deliveries if d.customer_rating]

    if total > 0:
        success_rate = successful / total * 100
        on_time_rate = on_time / total * 100
        incident_rate = incident_count / total * 100
    else:
        success_rate = 100.0
        on_time_rate = 100.0
        incident_rate = 0.0

    rating_avg = sum(ratings) / len(ratings) if ratings else 5.0

    verification_bonus = VERIFICATION_BONUS if is_identity_verified else 0
    months_active = max(0, (now - as_utc(joined_at)) // MONTH)
    experience_bonus = min(months_active, MAX_EXPERIENCE_MONTHS)

    raw = (
        success_rate * SUCCESS_WEIGHT
        + on_time_rate * ON_TIME_WEIGHT
        + (rating_avg / 5) * 100 * RATING_WEIGHT
        + (100 - incident_rate) * INCIDENT_WEIGHT
        + verification_bonus
        + experience_bonus * EXPERIENCE_WEIGHT
    )
    overall = min(100, max(0, int(round_half_up(raw))))

    return ScoreBreakdown(
        overall_score=overall,
        trust_tier=tier_for_score(overall),
        delivery_success_rate=success_rate,
        on_time_rate=on_time_rate,
        customer_rating_avg=rating_avg,
        incident_rate=incident_rate,
        verification_bonus=verification_bonus,
        experience_bonus=experience_bonus,
        months_active=months_active,
        total_deliveries=total,
        successful_deliveries=successful,
        failed_deliveries=total - successful,
        total_incidents=incident_count,
        total_reviews=len(ratings),
    )


# =============================================================================
# BADGES
# =============================================================================

@dataclass(frozen=True)
class BadgeRule:
    badge_id: str
    name: str
    description: str
    icon: str
    qualifies: Callable[[ScoreBreakdown, bool], bool] = field(repr=False)


BADGE_RULES: List[BadgeRule] = [
    BadgeRule(
        "identity_verified", "Identity Verified", "Identity documents checked", "🛡️",
        lambda s, verified: verified,
    ),
    BadgeRule(
        "first_delivery", "First Delivery", "Completed a first delivery", "📦",
        lambda s, verified: s.successful_deliveries >= 1,
    ),
    BadgeRule(
        "century", "Century", "100 successful deliveries", "💯",
        lambda s, verified: s.successful_deliveries >= 100,
    ),
    BadgeRule(
        "punctual", "Punctual", "95% on time over at least 20 deliveries", "⏱️",
        lambda s, verified: s.total_deliveries >= 20 and s.on_time_rate >= 95,
    ),
    BadgeRule(
        "top_rated", "Top Rated", "Average rating of 4.8 over at least 10 reviews", "⭐",
        lambda s, verified: s.total_reviews >= 10 and s.customer_rating_avg >= 4.8,
    ),
    BadgeRule(
        "incident_free", "Incident Free", "50 deliveries without any incident", "✅",
        lambda s, verified: s.total_deliveries >= 50 and s.total_incidents == 0,
    ),
    BadgeRule(
        "veteran", "Veteran", "Active for a year", "🎖️",
        lambda s, verified: s.months_active >= 12,
    ),
]


def evaluate_badges(breakdown: ScoreBreakdown, is_identity_verified: bool) -> List[BadgeRule]:
    """Badge rules the courier currently satisfies."""
    return [rule for rule in BADGE_RULES if rule.qualifies(breakdown, is_identity_verified)]


# =============================================================================
# SERVICE
# =============================================================================

class ReliabilityService:
    """Computes, stores and serves courier reliability scores."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load_courier(self, courier_id: uuid.UUID) -> Courier:
        query = (
            select(Courier)
            .options(
                selectinload(Courier.deliveries),
                selectinload(Courier.incidents),
                selectinload(Courier.badges),
                selectinload(Courier.reliability),
            )
            .where(Courier.id == courier_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(query)
        courier = result.scalar_one_or_none()
        if courier is None:
            raise NotFoundError(f"Courier {courier_id} not found")
        return courier

    async def get_courier(self, courier_id: uuid.UUID) -> Courier:
        """Courier summary with score row and badges loaded."""
        return await self._load_courier(courier_id)

    async def compute_score(self, courier_id: uuid.UUID) -> CourierReliabilityScore:
        """Recompute the score of a courier and upsert it by courier_id."""
        courier = await self._load_courier(courier_id)
        now = utc_now()

        breakdown = calculate_score(
            deliveries=courier.deliveries,
            incident_count=len(courier.incidents),
            is_identity_verified=courier.is_identity_verified,
            joined_at=courier.created_at,
            now=now,
        )

        try:
            # Badges are append-only: existing rows keep their earned_at
            earned = {badge.badge_id: badge for badge in courier.badges}
            for rule in evaluate_badges(breakdown, courier.is_identity_verified):
                if rule.badge_id in earned:
                    continue
                badge = CourierBadge(
                    courier_id=courier.id,
                    badge_id=rule.badge_id,
                    name=rule.name,
                    description=rule.description,
                    icon=rule.icon,
                    earned_at=now,
                )
                self.db.add(badge)
                earned[rule.badge_id] = badge
                logger.info(f"Courier {courier_id} earned badge '{rule.badge_id}'")

            snapshot = [
                {
                    "id": badge.badge_id,
                    "name": badge.name,
                    "icon": badge.icon,
                    "earned_at": as_utc(badge.earned_at).isoformat(),
                }
                for badge in sorted(earned.values(), key=lambda b: as_utc(b.earned_at))
            ]

            score = courier.reliability
            if score is None:
                score = CourierReliabilityScore(courier_id=courier.id)
                courier.reliability = score

            score.overall_score = breakdown.overall_score
            score.trust_tier = breakdown.trust_tier.value
            score.delivery_success_rate = int(round_half_up(breakdown.delivery_success_rate))
            score.on_time_rate = int(round_half_up(breakdown.on_time_rate))
            score.customer_rating_avg = round_half_up(breakdown.customer_rating_avg, 1)
            score.incident_rate = round_half_up(breakdown.incident_rate, 1)
            score.verification_bonus = breakdown.verification_bonus
            score.experience_bonus = breakdown.experience_bonus
            score.total_deliveries = breakdown.total_deliveries
            score.successful_deliveries = breakdown.successful_deliveries
            score.failed_deliveries = breakdown.failed_deliveries
            score.total_incidents = breakdown.total_incidents
            score.total_reviews = breakdown.total_reviews
            score.badges = snapshot
            score.computed_at = now

            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error storing score for courier {courier_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(
            f"Courier {courier_id} scored {breakdown.overall_score} ({breakdown.trust_tier.value})"
        )
        return score

    async def get_score(
        self,
        courier_id: uuid.UUID,
        max_age: Optional[timedelta] = None,
    ) -> CourierReliabilityScore:
        """
        Stored score of a courier.

        Computes it when no row exists yet, or when the row is older than
        max_age.
        """
        result = await self.db.execute(
            select(CourierReliabilityScore).where(CourierReliabilityScore.courier_id == courier_id)
        )
        score = result.scalar_one_or_none()

        if score is None:
            return await self.compute_score(courier_id)

        if max_age is not None and utc_now() - as_utc(score.computed_at) > max_age:
            logger.debug(f"Score for courier {courier_id} is stale, recomputing")
            return await self.compute_score(courier_id)

        return score

    # ==================== RECOMPUTATION TRIGGERS ====================

    async def record_delivery_outcome(
        self,
        courier_id: uuid.UUID,
        delivery_id: uuid.UUID,
        status: DeliveryStatus | str,
        is_late: Optional[bool] = None,
        customer_rating: Optional[int] = None,
    ) -> CourierReliabilityScore:
        """Update a delivery's outcome and recompute its courier's score."""
        delivery = await self.db.get(Delivery, delivery_id)
        if delivery is None or delivery.courier_id != courier_id:
            raise NotFoundError(f"Delivery {delivery_id} not found for courier {courier_id}")

        status = DeliveryStatus(status)
        try:
            delivery.status = status.value
            if is_late is not None:
                delivery.is_late = is_late
            if customer_rating is not None:
                delivery.customer_rating = customer_rating
            if status == DeliveryStatus.DELIVERED and delivery.delivered_at is None:
                delivery.delivered_at = utc_now()
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error updating delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Delivery {delivery_id} marked {status.value}")
        return await self.compute_score(courier_id)

    async def record_incident(
        self,
        courier_id: uuid.UUID,
        incident_type: str,
        description: Optional[str] = None,
        delivery_id: Optional[uuid.UUID] = None,
    ) -> Incident:
        """Record an incident and recompute the courier's score."""
        courier = await self.db.get(Courier, courier_id)
        if courier is None:
            raise NotFoundError(f"Courier {courier_id} not found")

        incident = Incident(
            courier_id=courier_id,
            delivery_id=delivery_id,
            incident_type=incident_type,
            description=description,
        )
        try:
            self.db.add(incident)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error recording incident for courier {courier_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Incident '{incident_type}' recorded for courier {courier_id}")
        await self.compute_score(courier_id)
        return incident

    async def set_identity_verification(
        self,
        courier_id: uuid.UUID,
        is_verified: bool,
    ) -> CourierReliabilityScore:
        """Change a courier's identity verification and recompute the score."""
        courier = await self.db.get(Courier, courier_id)
        if courier is None:
            raise NotFoundError(f"Courier {courier_id} not found")

        try:
            courier.is_identity_verified = is_verified
            courier.identity_verified_at = utc_now() if is_verified else None
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error updating verification of courier {courier_id}: {e}")
            raise PersistenceError(str(e)) from e

        return await self.compute_score(courier_id)

    # ==================== BATCH REFRESH ====================

    async def find_stale_couriers(
        self,
        max_age: timedelta,
        limit: int,
        exclude: Optional[Sequence[uuid.UUID]] = None,
    ) -> List[uuid.UUID]:
        """
        Couriers without a score row or with one older than max_age.

        Unscored couriers come first, then the oldest scores.
        """
        cutoff = utc_now() - max_age
        query = (
            select(Courier.id)
            .outerjoin(CourierReliabilityScore, CourierReliabilityScore.courier_id == Courier.id)
            .where(
                (CourierReliabilityScore.courier_id.is_(None))
                | (CourierReliabilityScore.computed_at < cutoff)
            )
            .order_by(CourierReliabilityScore.computed_at.asc().nulls_first(), Courier.id)
            .limit(limit)
        )
        if exclude:
            query = query.where(Courier.id.notin_(list(exclude)))

        try:
            result = await self.db.execute(query)
        except SQLAlchemyError as e:
            logger.error(f"Database error listing stale couriers: {e}")
            raise PersistenceError(str(e)) from e
        return list(result.scalars().all())

    async def refresh_stale_scores(
        self,
        max_age: Optional[timedelta] = None,
        limit: Optional[int] = None,
    ) -> Dict[str, int]:
        """
        Recompute up to `limit` stale scores. Failures are counted, not raised.

        A courier whose recompute fails is skipped for the rest of the run and
        the batch is topped up with the next stale couriers.
        """
        max_age = max_age or timedelta(hours=settings.SCORE_STALE_AFTER_HOURS)
        limit = limit or settings.SCORE_REFRESH_BATCH_SIZE

        stats = {"refreshed": 0, "failed": 0}
        failed_ids: List[uuid.UUID] = []

        while stats["refreshed"] < limit:
            batch = await self.find_stale_couriers(max_age, limit - stats["refreshed"], exclude=failed_ids)
            if not batch:
                break
            for courier_id in batch:
                try:
                    await self.compute_score(courier_id)
                    stats["refreshed"] += 1
                except (NotFoundError, PersistenceError) as e:
                    logger.error(f"Score refresh failed for courier {courier_id}: {e}")
                    stats["failed"] += 1
                    failed_ids.append(courier_id)
        return stats
