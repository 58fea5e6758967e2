"""Courier, delivery and incident models (inputs of the reliability score)."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Optional, List

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text, Float
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType

if TYPE_CHECKING:
    from app.models.reliability import CourierReliabilityScore, CourierBadge


class DeliveryStatus(str, Enum):
    """Delivery status enumeration."""
    PENDING = "pending"
    PICKED_UP = "picked_up"
    IN_TRANSIT = "in_transit"
    DELIVERED = "delivered"
    FAILED = "failed"
    CANCELLED = "cancelled"


class Courier(Base):
    """
    Courier summary record.

    The reliability score and trust tier are not stored here; they are read
    from the score row so there is a single authoritative copy.
    """
    __tablename__ = "couriers"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    full_name: Mapped[str] = mapped_column(String(200), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Identity verification
    is_identity_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    identity_verified_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    # Relationships
    deliveries: Mapped[List["Delivery"]] = relationship(
        "Delivery",
        back_populates="courier",
        order_by="Delivery.created_at"
    )
    incidents: Mapped[List["Incident"]] = relationship(
        "Incident",
        back_populates="courier"
    )
    reliability: Mapped[Optional["CourierReliabilityScore"]] = relationship(
        "CourierReliabilityScore",
        back_populates="courier",
        uselist=False
    )
    badges: Mapped[List["CourierBadge"]] = relationship(
        "CourierBadge",
        back_populates="courier",
        order_by="CourierBadge.earned_at"
    )

    @property
    def reliability_score(self) -> Optional[int]:
        """Overall score from the score row, None until first computed."""
        return self.reliability.overall_score if self.reliability else None

    @property
    def trust_tier(self) -> Optional[str]:
        return self.reliability.trust_tier if self.reliability else None

    def __repr__(self) -> str:
        return f"<Courier(name='{self.full_name}')>"


class Delivery(Base):
    """A single delivery assigned to a courier."""
    __tablename__ = "deliveries"

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

    status: Mapped[str] = mapped_column(
        String(20),
        default=DeliveryStatus.PENDING.value,
        nullable=False,
        index=True,
        comment="pending, picked_up, in_transit, delivered, failed, cancelled"
    )
    is_late: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    customer_rating: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="1-5 stars, null when the customer did not rate"
    )

    recipient_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    recipient_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    pickup_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dropoff_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dropoff_latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    dropoff_longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    estimated_arrival: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    delivered_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    courier: Mapped["Courier"] = relationship("Courier", back_populates="deliveries")

    @property
    def is_delivered(self) -> bool:
        return self.status == DeliveryStatus.DELIVERED.value

    def __repr__(self) -> str:
        return f"<Delivery(id='{self.id}', status='{self.status}')>"


class Incident(Base):
    """Incident reported against a courier (damage, complaint, accident...)."""
    __tablename__ = "incidents"

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
    delivery_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        UUIDType,
        ForeignKey("deliveries.id", ondelete="SET NULL"),
        nullable=True
    )
    incident_type: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    courier: Mapped["Courier"] = relationship("Courier", back_populates="incidents")

    def __repr__(self) -> str:
        return f"<Incident(type='{self.incident_type}')>"
