"""Shareable tracking link and position update models."""
import uuid
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Float, Index
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType

if TYPE_CHECKING:
    from app.models.courier import Delivery


class SharedTrackingLink(Base):
    """
    Public, time-limited tracking link for a delivery.
    Several links may exist for the same delivery.
    """
    __tablename__ = "shared_tracking_links"
    __table_args__ = (
        Index("ix_shared_tracking_active", "is_active", "expires_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    delivery_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("deliveries.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    share_code: Mapped[str] = mapped_column(
        String(10),
        unique=True,
        nullable=False,
        index=True,
        comment="6-char code from the unambiguous alphabet"
    )
    share_url: Mapped[str] = mapped_column(String(500), nullable=False)

    # Visibility flags for the public page
    show_driver_name: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_driver_phone: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    show_driver_photo: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_eta: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    view_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    delivery: Mapped["Delivery"] = relationship("Delivery")

    def __repr__(self) -> str:
        return f"<SharedTrackingLink(code='{self.share_code}', views={self.view_count})>"


class TrackingUpdate(Base):
    """Courier position update for a delivery."""
    __tablename__ = "tracking_updates"
    __table_args__ = (
        Index("ix_tracking_updates_delivery_time", "delivery_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    delivery_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("deliveries.id", ondelete="CASCADE"),
        nullable=False
    )

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    accuracy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    eta_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    distance_remaining: Mapped[Optional[float]] = mapped_column(
        Float,
        nullable=True,
        comment="Remaining distance in km"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<TrackingUpdate(lat={self.latitude}, lng={self.longitude})>"
