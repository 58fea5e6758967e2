"""
Delivery Proof Service

Persists proof-of-delivery evidence:
1. Photo goes to object storage under proofs/{delivery_id}/{type}_{epoch_ms}.jpg
2. The evidence analyzer scores the stored photo
3. An immutable artifact row records URL, GPS fix and confidence

Signatures are stored as data URLs in delivery_signatures. When an upload is
part of a submission, the completed step is logged in the same transaction.
"""
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Optional, List, Dict

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import PersistenceError
from app.core.storage import StorageBackend, get_storage
from app.models.delivery_proof import (
    DeliveryProofArtifact,
    DeliverySignature,
    ProofSubmissionStep,
    ProofPhotoType,
    SubmissionStep,
)
from app.services.evidence_service import EvidenceAnalyzer, get_evidence_analyzer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


def proof_storage_path(delivery_id: uuid.UUID, photo_type: str, epoch_ms: Optional[int] = None) -> str:
    """Object path of a proof photo."""
    if epoch_ms is None:
        epoch_ms = int(time.time() * 1000)
    return f"proofs/{delivery_id}/{photo_type}_{epoch_ms}.jpg"


class DeliveryProofService:
    """Uploads and reads proof-of-delivery artifacts."""

    def __init__(
        self,
        db: AsyncSession,
        storage: Optional[StorageBackend] = None,
        analyzer: Optional[EvidenceAnalyzer] = None,
    ):
        self.db = db
        self.storage = storage or get_storage()
        self.analyzer = analyzer or get_evidence_analyzer()

    async def upload_proof(
        self,
        delivery_id: uuid.UUID,
        courier_id: uuid.UUID,
        content: bytes,
        photo_type: ProofPhotoType | str,
        location: Optional[GeoPoint] = None,
        step: Optional[SubmissionStep] = None,
    ) -> DeliveryProofArtifact:
        """
        Store a photo and record it as an artifact.

        Raises:
            PersistenceError: storage upload, analysis or insert failed
        """
        photo_type = ProofPhotoType(photo_type)
        path = proof_storage_path(delivery_id, photo_type.value)

        photo_url = await self.storage.put(path, content, content_type="image/jpeg")
        try:
            analysis = await self.analyzer.analyze(photo_url, photo_type.value)
        except Exception as e:
            logger.error(f"Evidence analysis failed for {photo_type.value} proof of delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e
        confidence = float(analysis.get("confidence", 0.0))

        artifact = DeliveryProofArtifact(
            id=uuid.uuid4(),
            delivery_id=delivery_id,
            courier_id=courier_id,
            photo_type=photo_type.value,
            photo_url=photo_url,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
            is_verified=confidence > settings.PROOF_VERIFICATION_THRESHOLD,
            analysis=analysis,
        )

        try:
            self.db.add(artifact)
            if step is not None:
                self.db.add(ProofSubmissionStep(
                    delivery_id=delivery_id,
                    step=step.value,
                    artifact_id=artifact.id,
                ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error saving {photo_type.value} proof for delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(
            f"Stored {photo_type.value} proof for delivery {delivery_id} "
            f"(confidence={confidence:.2f}, verified={artifact.is_verified})"
        )
        return artifact

    async def save_signature(
        self,
        delivery_id: uuid.UUID,
        signature_data: str,
        signer_name: str,
        signer_phone: Optional[str] = None,
        step: Optional[SubmissionStep] = None,
    ) -> DeliverySignature:
        signature = DeliverySignature(
            id=uuid.uuid4(),
            delivery_id=delivery_id,
            signature_data=signature_data,
            signer_name=signer_name,
            signer_phone=signer_phone,
        )

        try:
            self.db.add(signature)
            if step is not None:
                self.db.add(ProofSubmissionStep(
                    delivery_id=delivery_id,
                    step=step.value,
                    artifact_id=signature.id,
                ))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Database error saving signature for delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e

        logger.info(f"Signature by {signer_name} saved for delivery {delivery_id}")
        return signature

    async def get_delivery_proofs(self, delivery_id: uuid.UUID) -> List[DeliveryProofArtifact]:
        """Artifacts of a delivery, oldest first."""
        try:
            result = await self.db.execute(
                select(DeliveryProofArtifact)
                .where(DeliveryProofArtifact.delivery_id == delivery_id)
                .order_by(DeliveryProofArtifact.created_at)
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error reading proofs of delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e
        return list(result.scalars().all())

    async def get_signatures(self, delivery_id: uuid.UUID) -> List[DeliverySignature]:
        try:
            result = await self.db.execute(
                select(DeliverySignature)
                .where(DeliverySignature.delivery_id == delivery_id)
                .order_by(DeliverySignature.created_at)
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error reading signatures of delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e
        return list(result.scalars().all())

    async def get_completed_steps(self, delivery_id: uuid.UUID) -> Dict[str, uuid.UUID]:
        """
        Submission steps already logged for a delivery, by step name.

        Raises:
            PersistenceError: the step log could not be read
        """
        try:
            result = await self.db.execute(
                select(ProofSubmissionStep).where(ProofSubmissionStep.delivery_id == delivery_id)
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error reading submission steps of delivery {delivery_id}: {e}")
            raise PersistenceError(str(e)) from e
        return {row.step: row.artifact_id for row in result.scalars().all()}
