"""
Tests for courier reliability scoring.

1. Pure score computation (weights, defaults, half-up rounding, clamping)
2. Trust tier breakpoints
3. Score persistence: upsert, badges, staleness
4. Recomputation triggers and the batch refresh
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest

from app.core.exceptions import NotFoundError, PersistenceError
from app.models.courier import Delivery, DeliveryStatus
from app.models.reliability import CourierReliabilityScore, TrustTier
from app.services.reliability_service import (
    ReliabilityService,
    calculate_score,
    tier_for_score,
    trust_tier_info,
)

NOW = datetime(2026, 6, 1, tzinfo=timezone.utc)


def _delivery(status=DeliveryStatus.DELIVERED, is_late=False, rating=None) -> Delivery:
    return Delivery(status=status.value, is_late=is_late, customer_rating=rating)


# =============================================================================
# TEST: SCORE COMPUTATION
# =============================================================================

class TestCalculateScore:
    """Tests for calculate_score()."""

    def test_new_courier_defaults(self):
        """No deliveries: full rates, 5.0 rating, no incidents."""
        result = calculate_score([], 0, False, joined_at=NOW, now=NOW)

        assert result.overall_score == 85
        assert result.trust_tier == TrustTier.PLATINUM
        assert result.delivery_success_rate == 100
        assert result.on_time_rate == 100
        assert result.customer_rating_avg == 5.0
        assert result.incident_rate == 0
        assert result.total_deliveries == 0

    def test_verification_bonus(self):
        result = calculate_score([], 0, True, joined_at=NOW, now=NOW)

        assert result.verification_bonus == 10
        assert result.overall_score == 95
        assert result.trust_tier == TrustTier.DIAMOND

    def test_experience_bonus_capped_at_ten_months(self):
        """13 months active counts as 10, worth 5 points."""
        joined = NOW - timedelta(days=390)
        result = calculate_score([], 0, False, joined_at=joined, now=NOW)

        assert result.months_active == 13
        assert result.experience_bonus == 10
        assert result.overall_score == 90

    def test_partial_month_not_counted(self):
        joined = NOW - timedelta(days=59)
        result = calculate_score([], 0, False, joined_at=joined, now=NOW)

        assert result.months_active == 1

    def test_naive_join_date_treated_as_utc(self):
        joined = (NOW - timedelta(days=60)).replace(tzinfo=None)
        result = calculate_score([], 0, False, joined_at=joined, now=NOW)

        assert result.months_active == 2

    def test_mixed_history(self):
        """
        3 delivered, 1 failed, 1 late, ratings 5/4/4, 1 incident:
        18.75 + 15 + 21.67 + 11.25 = 66.67 -> 67
        """
        deliveries = [
            _delivery(rating=5),
            _delivery(rating=4, is_late=True),
            _delivery(rating=4),
            _delivery(status=DeliveryStatus.FAILED),
        ]
        result = calculate_score(deliveries, 1, False, joined_at=NOW, now=NOW)

        assert result.delivery_success_rate == 75
        assert result.on_time_rate == 75
        assert result.incident_rate == 25
        assert result.total_reviews == 3
        assert result.failed_deliveries == 1
        assert result.overall_score == 67
        assert result.trust_tier == TrustTier.GOLD

    def test_rounds_half_up(self):
        """12.5 + 20 + 25 + 15 = 72.5 rounds to 73."""
        deliveries = [_delivery(), _delivery(status=DeliveryStatus.FAILED)]
        result = calculate_score(deliveries, 0, False, joined_at=NOW, now=NOW)

        assert result.overall_score == 73

    def test_unrated_deliveries_ignored_in_average(self):
        deliveries = [_delivery(rating=3), _delivery(), _delivery()]
        result = calculate_score(deliveries, 0, False, joined_at=NOW, now=NOW)

        assert result.customer_rating_avg == 3.0
        assert result.total_reviews == 1

    def test_clamped_at_zero(self):
        """More incidents than deliveries pushes the raw score negative."""
        deliveries = [_delivery(status=DeliveryStatus.FAILED, is_late=True, rating=1)]
        result = calculate_score(deliveries, 10, False, joined_at=NOW, now=NOW)

        assert result.overall_score == 0
        assert result.trust_tier == TrustTier.BRONZE

    def test_maximum_is_one_hundred(self):
        joined = NOW - timedelta(days=400)
        result = calculate_score([_delivery(rating=5)], 0, True, joined_at=joined, now=NOW)

        assert result.overall_score == 100
        assert result.trust_tier == TrustTier.DIAMOND


# =============================================================================
# TEST: TRUST TIERS
# =============================================================================

class TestTrustTiers:

    @pytest.mark.parametrize("score,tier", [
        (100, TrustTier.DIAMOND),
        (91, TrustTier.DIAMOND),
        (90, TrustTier.PLATINUM),
        (76, TrustTier.PLATINUM),
        (75, TrustTier.GOLD),
        (61, TrustTier.GOLD),
        (60, TrustTier.SILVER),
        (41, TrustTier.SILVER),
        (40, TrustTier.BRONZE),
        (0, TrustTier.BRONZE),
    ])
    def test_breakpoints(self, score, tier):
        assert tier_for_score(score) == tier

    def test_monotonic(self):
        tiers = [tier_for_score(score) for score in range(101)]
        assert tiers == sorted(tiers)

    def test_tier_info(self):
        info = trust_tier_info("gold")

        assert info["tier"] == "gold"
        assert info["min_score"] == 61
        assert info["max_score"] == 75
        assert info["color"].startswith("#")


# =============================================================================
# TEST: RELIABILITY SERVICE
# =============================================================================

class TestReliabilityService:
    """Tests for ReliabilityService against the database."""

    async def test_compute_score_upserts_one_row(self, db, make_courier):
        courier = await make_courier()
        service = ReliabilityService(db)

        first = await service.compute_score(courier.id)
        second = await service.compute_score(courier.id)

        assert first.courier_id == second.courier_id == courier.id
        rows = (await db.execute(
            CourierReliabilityScore.__table__.select()
        )).all()
        assert len(rows) == 1

    async def test_courier_summary_reads_score_row(self, db, make_courier):
        courier = await make_courier(is_identity_verified=True)
        service = ReliabilityService(db)

        await service.compute_score(courier.id)
        summary = await service.get_courier(courier.id)

        assert summary.reliability_score == 95
        assert summary.trust_tier == "diamond"

    async def test_summary_before_first_computation(self, db, make_courier):
        courier = await make_courier()
        summary = await ReliabilityService(db).get_courier(courier.id)

        assert summary.reliability_score is None
        assert summary.trust_tier is None

    async def test_stored_rates_are_rounded(self, db, make_courier, make_delivery):
        courier = await make_courier()
        for rating in (5, 4, 4):
            await make_delivery(courier, status=DeliveryStatus.DELIVERED, customer_rating=rating)

        score = await ReliabilityService(db).compute_score(courier.id)

        assert score.customer_rating_avg == 4.3
        assert score.delivery_success_rate == 100
        assert score.total_reviews == 3

    async def test_unknown_courier(self, db):
        with pytest.raises(NotFoundError):
            await ReliabilityService(db).compute_score(uuid.uuid4())

    async def test_badges_earned(self, db, make_courier, make_delivery):
        courier = await make_courier(is_identity_verified=True)
        await make_delivery(courier, status=DeliveryStatus.DELIVERED)

        score = await ReliabilityService(db).compute_score(courier.id)

        badge_ids = {badge["id"] for badge in score.badges}
        assert badge_ids == {"identity_verified", "first_delivery"}

    async def test_badges_never_removed(self, db, make_courier):
        courier = await make_courier(is_identity_verified=True)
        service = ReliabilityService(db)

        first = await service.compute_score(courier.id)
        earned_at = first.badges[0]["earned_at"]

        score = await service.set_identity_verification(courier.id, False)

        assert score.verification_bonus == 0
        assert [badge["id"] for badge in score.badges] == ["identity_verified"]
        assert score.badges[0]["earned_at"] == earned_at

    async def test_get_score_computes_when_missing(self, db, make_courier):
        courier = await make_courier()
        score = await ReliabilityService(db).get_score(courier.id)

        assert score.overall_score == 85

    async def test_get_score_recomputes_when_stale(self, db, make_courier):
        courier = await make_courier()
        service = ReliabilityService(db)
        score = await service.compute_score(courier.id)

        old = datetime.now(timezone.utc) - timedelta(days=2)
        score.computed_at = old
        await db.commit()

        cached = await service.get_score(courier.id)
        assert cached.computed_at.replace(tzinfo=timezone.utc) == old

        fresh = await service.get_score(courier.id, max_age=timedelta(hours=1))
        assert fresh.computed_at.replace(tzinfo=timezone.utc) > old


# =============================================================================
# TEST: RECOMPUTATION TRIGGERS
# =============================================================================

class TestRecomputationTriggers:

    async def test_delivery_outcome(self, db, make_courier, make_delivery):
        courier = await make_courier()
        delivery = await make_delivery(courier)
        service = ReliabilityService(db)

        score = await service.record_delivery_outcome(
            courier.id, delivery.id, DeliveryStatus.DELIVERED, is_late=True, customer_rating=4
        )

        assert score.successful_deliveries == 1
        assert score.on_time_rate == 0
        assert score.customer_rating_avg == 4.0
        assert delivery.delivered_at is not None

    async def test_delivery_outcome_other_courier(self, db, make_courier, make_delivery):
        owner = await make_courier()
        other = await make_courier(full_name="Yao Kouame")
        delivery = await make_delivery(owner)

        with pytest.raises(NotFoundError):
            await ReliabilityService(db).record_delivery_outcome(
                other.id, delivery.id, DeliveryStatus.DELIVERED
            )

    async def test_incident(self, db, make_courier, make_delivery):
        courier = await make_courier()
        await make_delivery(courier, status=DeliveryStatus.DELIVERED)
        service = ReliabilityService(db)

        incident = await service.record_incident(courier.id, "damage", "Crushed box")
        score = await service.get_score(courier.id)

        assert incident.courier_id == courier.id
        assert score.total_incidents == 1
        assert score.incident_rate == 100.0

    async def test_identity_verification(self, db, make_courier):
        courier = await make_courier()
        score = await ReliabilityService(db).set_identity_verification(courier.id, True)

        assert score.verification_bonus == 10
        assert courier.identity_verified_at is not None

    async def test_refresh_stale_scores(self, db, make_courier):
        fresh = await make_courier(full_name="Fresh")
        stale = await make_courier(full_name="Stale")
        unscored = await make_courier(full_name="Unscored")
        service = ReliabilityService(db)

        await service.compute_score(fresh.id)
        stale_score = await service.compute_score(stale.id)
        stale_score.computed_at = datetime.now(timezone.utc) - timedelta(days=3)
        await db.commit()

        stale_ids = await service.find_stale_couriers(timedelta(hours=24), limit=10)
        assert set(stale_ids) == {stale.id, unscored.id}

        stats = await service.refresh_stale_scores(max_age=timedelta(hours=24), limit=10)
        assert stats == {"refreshed": 2, "failed": 0}
        assert await service.find_stale_couriers(timedelta(hours=24), limit=10) == []

    async def test_stale_couriers_oldest_first(self, db, make_courier):
        older = await make_courier(full_name="Older")
        old = await make_courier(full_name="Old")
        unscored = await make_courier(full_name="Unscored")
        service = ReliabilityService(db)

        for courier, age in ((older, timedelta(days=5)), (old, timedelta(days=2))):
            score = await service.compute_score(courier.id)
            score.computed_at = datetime.now(timezone.utc) - age
        await db.commit()

        stale_ids = await service.find_stale_couriers(timedelta(hours=24), limit=10)
        assert stale_ids == [unscored.id, older.id, old.id]

        assert await service.find_stale_couriers(timedelta(hours=24), limit=2) == [unscored.id, older.id]
        assert await service.find_stale_couriers(
            timedelta(hours=24), limit=10, exclude=[unscored.id]
        ) == [older.id, old.id]

    async def test_failing_courier_does_not_hold_the_batch(self, db, make_courier, monkeypatch):
        broken = await make_courier(full_name="Broken")
        healthy = await make_courier(full_name="Healthy")
        service = ReliabilityService(db)

        for courier, age in ((broken, timedelta(days=5)), (healthy, timedelta(days=2))):
            score = await service.compute_score(courier.id)
            score.computed_at = datetime.now(timezone.utc) - age
        await db.commit()

        compute = service.compute_score

        async def flaky_compute(courier_id):
            if courier_id == broken.id:
                raise PersistenceError("score upsert failed")
            return await compute(courier_id)

        monkeypatch.setattr(service, "compute_score", flaky_compute)

        stats = await service.refresh_stale_scores(max_age=timedelta(hours=24), limit=1)

        assert stats == {"refreshed": 1, "failed": 1}
        assert await service.find_stale_couriers(timedelta(hours=24), limit=10) == [broken.id]
