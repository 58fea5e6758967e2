"""Reliability score and badge models."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, DateTime, ForeignKey, Integer, Float, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, JSONType

if TYPE_CHECKING:
    from app.models.courier import Courier


class TrustTier(str, Enum):
    """Ordered trust tiers, lowest first."""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"
    DIAMOND = "diamond"

    @property
    def rank(self) -> int:
        return list(TrustTier).index(self)

    def __lt__(self, other):
        if isinstance(other, TrustTier):
            return self.rank < other.rank
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, TrustTier):
            return self.rank <= other.rank
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, TrustTier):
            return self.rank > other.rank
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, TrustTier):
            return self.rank >= other.rank
        return NotImplemented


class CourierReliabilityScore(Base):
    """
    Cached reliability score for a courier.
    One row per courier, upserted on every recomputation.
    """
    __tablename__ = "courier_reliability_scores"

    courier_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("couriers.id", ondelete="CASCADE"),
        primary_key=True
    )

    overall_score: Mapped[int] = mapped_column(Integer, default=50, nullable=False)
    trust_tier: Mapped[str] = mapped_column(
        String(20),
        default=TrustTier.BRONZE.value,
        nullable=False,
        comment="bronze, silver, gold, platinum, diamond"
    )

    # Score components
    delivery_success_rate: Mapped[int] = mapped_column(Integer, default=100)
    on_time_rate: Mapped[int] = mapped_column(Integer, default=100)
    customer_rating_avg: Mapped[float] = mapped_column(Float, default=5.0)
    incident_rate: Mapped[float] = mapped_column(Float, default=0.0)
    verification_bonus: Mapped[int] = mapped_column(Integer, default=0)
    experience_bonus: Mapped[int] = mapped_column(Integer, default=0)

    # Statistics
    total_deliveries: Mapped[int] = mapped_column(Integer, default=0)
    successful_deliveries: Mapped[int] = mapped_column(Integer, default=0)
    failed_deliveries: Mapped[int] = mapped_column(Integer, default=0)
    total_incidents: Mapped[int] = mapped_column(Integer, default=0)
    total_reviews: Mapped[int] = mapped_column(Integer, default=0)

    # Snapshot of earned badges at computation time
    badges: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)

    computed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        index=True
    )

    courier: Mapped["Courier"] = relationship("Courier", back_populates="reliability")

    def __repr__(self) -> str:
        return f"<CourierReliabilityScore(score={self.overall_score}, tier='{self.trust_tier}')>"


class CourierBadge(Base):
    """Badge earned by a courier. Badges are never removed."""
    __tablename__ = "courier_badges"
    __table_args__ = (
        UniqueConstraint("courier_id", "badge_id", name="uq_courier_badge"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    courier_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("couriers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    badge_id: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    earned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    courier: Mapped["Courier"] = relationship("Courier", back_populates="badges")

    def __repr__(self) -> str:
        return f"<CourierBadge(badge_id='{self.badge_id}')>"
