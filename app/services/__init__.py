# Services module
from app.services.reliability_service import ReliabilityService
from app.services.insurance_service import InsuranceService
from app.services.tracking_share_service import TrackingShareService

# Proof of delivery
from app.services.delivery_proof_service import DeliveryProofService
from app.services.evidence_service import EvidenceAnalyzer, StubEvidenceAnalyzer

__all__ = [
    "ReliabilityService",
    "InsuranceService",
    "TrackingShareService",
    # Proof of delivery
    "DeliveryProofService",
    "EvidenceAnalyzer",
    "StubEvidenceAnalyzer",
]
