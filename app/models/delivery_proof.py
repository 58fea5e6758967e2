"""Proof-of-delivery models: photo artifacts, signatures and the submission step log."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Float, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base
from app.db_types import UUIDType, JSONType


class ProofPhotoType(str, Enum):
    """Photo type enumeration."""
    PACKAGE = "package"
    RECIPIENT = "recipient"
    SIGNATURE = "signature"
    LOCATION = "location"


class SubmissionStep(str, Enum):
    """Ordered steps of a proof submission."""
    PACKAGE = "package"
    RECIPIENT = "recipient"
    SIGNATURE = "signature"


class DeliveryProofArtifact(Base):
    """
    One uploaded piece of photo evidence.
    Rows are immutable and never deleted; retakes add new rows.
    """
    __tablename__ = "delivery_proof_artifacts"

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
    courier_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("couriers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    photo_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="package, recipient, signature, location"
    )
    photo_url: Mapped[str] = mapped_column(String(500), nullable=False)

    latitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    longitude: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    taken_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    analysis: Mapped[Optional[dict]] = mapped_column(
        JSONType,
        nullable=True,
        comment="Raw evidence-confidence payload"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<DeliveryProofArtifact(type='{self.photo_type}', verified={self.is_verified})>"


class DeliverySignature(Base):
    """Recipient signature captured at hand-over."""
    __tablename__ = "delivery_signatures"

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
    signature_data: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Data URL (base64 PNG) of the drawn signature"
    )
    signer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    signer_phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<DeliverySignature(signer='{self.signer_name}')>"


class ProofSubmissionStep(Base):
    """
    Completed submission step for a delivery.

    Keyed by (delivery_id, step) so a resubmission after a partial failure
    only performs the steps that are still missing.
    """
    __tablename__ = "proof_submission_steps"
    __table_args__ = (
        UniqueConstraint("delivery_id", "step", name="uq_proof_submission_step"),
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
    step: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="package, recipient, signature"
    )
    artifact_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        nullable=False,
        comment="delivery_proof_artifacts.id or delivery_signatures.id"
    )
    completed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    def __repr__(self) -> str:
        return f"<ProofSubmissionStep(step='{self.step}')>"
