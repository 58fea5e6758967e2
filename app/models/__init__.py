from app.models.courier import Courier, Delivery, DeliveryStatus, Incident
from app.models.reliability import CourierReliabilityScore, CourierBadge, TrustTier
from app.models.insurance import (
    PackageInsurancePolicy,
    InsuranceClaim,
    InsurancePlanTier,
    ClaimType,
    ClaimStatus,
)
from app.models.tracking import SharedTrackingLink, TrackingUpdate
from app.models.delivery_proof import (
    DeliveryProofArtifact,
    DeliverySignature,
    ProofSubmissionStep,
    ProofPhotoType,
    SubmissionStep,
)

__all__ = [
    "Courier",
    "Delivery",
    "DeliveryStatus",
    "Incident",
    "CourierReliabilityScore",
    "CourierBadge",
    "TrustTier",
    "PackageInsurancePolicy",
    "InsuranceClaim",
    "InsurancePlanTier",
    "ClaimType",
    "ClaimStatus",
    "SharedTrackingLink",
    "TrackingUpdate",
    "DeliveryProofArtifact",
    "DeliverySignature",
    "ProofSubmissionStep",
    "ProofPhotoType",
    "SubmissionStep",
]
