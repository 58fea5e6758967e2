"""Package insurance policy and claim models."""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List

from sqlalchemy import String, Boolean, DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base
from app.db_types import UUIDType, JSONType


class InsurancePlanTier(str, Enum):
    """Insurance plan tiers."""
    BASIC = "basic"
    STANDARD = "standard"
    PREMIUM = "premium"


class ClaimType(str, Enum):
    """Closed set of claim types."""
    DAMAGE = "damage"
    LOSS = "loss"
    THEFT = "theft"
    DELAY = "delay"


class ClaimStatus(str, Enum):
    """
    Claim status enumeration.

    Claims are filed as PENDING. Adjudication happens outside this service,
    the remaining values exist so externally-updated rows stay readable.
    """
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class PackageInsurancePolicy(Base):
    """
    Insurance policy covering a single delivery.
    Created once per delivery and never mutated by this service.
    """
    __tablename__ = "package_insurance_policies"

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

    plan_tier: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="basic, standard, premium"
    )
    declared_value: Mapped[int] = mapped_column(Integer, nullable=False)
    premium_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    coverage_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    activated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    claims: Mapped[List["InsuranceClaim"]] = relationship(
        "InsuranceClaim",
        back_populates="policy",
        order_by="InsuranceClaim.created_at"
    )

    def __repr__(self) -> str:
        return f"<PackageInsurancePolicy(tier='{self.plan_tier}', premium={self.premium_amount})>"


class InsuranceClaim(Base):
    """Claim filed against a policy."""
    __tablename__ = "insurance_claims"

    id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        primary_key=True,
        default=uuid.uuid4
    )
    policy_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("package_insurance_policies.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    delivery_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        ForeignKey("deliveries.id", ondelete="CASCADE"),
        nullable=False
    )
    filer_id: Mapped[uuid.UUID] = mapped_column(
        UUIDType,
        nullable=False,
        comment="Courier or sender who filed the claim"
    )

    claim_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        comment="damage, loss, theft, delay"
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    evidence_urls: Mapped[list] = mapped_column(JSONType, default=list, nullable=False)
    claimed_amount: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=ClaimStatus.PENDING.value,
        nullable=False,
        index=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    policy: Mapped["PackageInsurancePolicy"] = relationship(
        "PackageInsurancePolicy",
        back_populates="claims"
    )

    def __repr__(self) -> str:
        return f"<InsuranceClaim(type='{self.claim_type}', status='{self.status}')>"
