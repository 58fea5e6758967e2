"""
Evidence analysis for proof-of-delivery photos.

The analyzer returns a confidence signal for an uploaded photo. Only a
stand-in implementation exists; a vision backend can be plugged in behind
the same interface.
"""
import logging
import random
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from app.models.delivery_proof import ProofPhotoType

logger = logging.getLogger(__name__)


class EvidenceAnalyzer(ABC):
    """Abstract evidence analyzer interface."""

    @abstractmethod
    async def analyze(self, photo_url: str, photo_type: str) -> Dict[str, Any]:
        """
        Analyze an uploaded photo.

        Returns:
            Dict with has_package, has_person and confidence (0.0 - 1.0)

        Any exception raised here fails the upload step as a PersistenceError.
        """
        pass


class StubEvidenceAnalyzer(EvidenceAnalyzer):
    """Simulated analysis: confidence drawn uniformly from [0.75, 1.0]."""

    def __init__(self, rng: Optional[random.Random] = None):
        self._rng = rng or random.Random()

    async def analyze(self, photo_url: str, photo_type: str) -> Dict[str, Any]:
        photo_type = ProofPhotoType(photo_type)
        result = {
            "has_package": photo_type in (ProofPhotoType.PACKAGE, ProofPhotoType.RECIPIENT),
            "has_person": photo_type == ProofPhotoType.RECIPIENT,
            "confidence": 0.75 + self._rng.random() * 0.25,
        }
        logger.debug(f"Analyzed {photo_type.value} photo {photo_url}: {result['confidence']:.2f}")
        return result


_analyzer: Optional[EvidenceAnalyzer] = None


def get_evidence_analyzer() -> EvidenceAnalyzer:
    """Get the configured evidence analyzer."""
    global _analyzer
    if _analyzer is None:
        _analyzer = StubEvidenceAnalyzer()
    return _analyzer
