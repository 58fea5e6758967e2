"""
Proof-of-Delivery API Endpoints

The submit endpoint runs a whole capture session server-side: evidence is
captured, the workflow is advanced through every required step and the
artifacts are uploaded in order. Single photo and signature uploads are
available for evidence added outside a session.
"""
import logging
import uuid
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile, status

from app.api.deps import DB, CurrentCourier, Storage, Analyzer, get_courier_delivery
from app.core.exceptions import (
    PersistenceError,
    PartialSubmissionFailure,
    ValidationFailure,
)
from app.models.delivery_proof import ProofPhotoType
from app.schemas.delivery_proof import (
    ProofArtifactResponse,
    ProofSubmissionResponse,
    SignatureCreate,
    SignatureResponse,
)
from app.services import proof_capture_workflow as workflow
from app.services.delivery_proof_service import DeliveryProofService, GeoPoint

logger = logging.getLogger(__name__)
router = APIRouter()


def _location(latitude: Optional[float], longitude: Optional[float]) -> Optional[GeoPoint]:
    if latitude is None or longitude is None:
        return None
    return GeoPoint(latitude=latitude, longitude=longitude)


@router.post("/{delivery_id}/submit", response_model=ProofSubmissionResponse)
async def submit_proof(
    delivery_id: uuid.UUID,
    db: DB,
    current_courier: CurrentCourier,
    storage: Storage,
    analyzer: Analyzer,
    package_photo: UploadFile = File(..., description="Photo of the delivered package"),
    recipient_photo: Optional[UploadFile] = File(None, description="Photo with the recipient"),
    signature_data: Optional[str] = Form(None, description="Signature as a data URL"),
    signer_name: Optional[str] = Form(None),
    signer_phone: Optional[str] = Form(None),
    require_recipient_photo: bool = Form(False),
    require_signature: bool = Form(False),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
):
    """
    Capture and submit the full proof of a delivery.

    Upload order: package photo, recipient photo, signature. Steps already
    submitted for this delivery are skipped, so a failed submission can be
    retried. A failure after earlier steps succeeded returns 502 with the
    completed and failed steps.
    """
    await get_courier_delivery(db, delivery_id, current_courier)

    try:
        state = workflow.start(
            require_recipient_photo=require_recipient_photo,
            require_signature=require_signature,
            location=_location(latitude, longitude),
        )
        state = workflow.capture_photo(state, ProofPhotoType.PACKAGE, await package_photo.read())
        recipient_content = await recipient_photo.read() if recipient_photo is not None else b""
        # An empty optional part counts as no recipient photo
        if recipient_content:
            state = workflow.capture_photo(state, ProofPhotoType.RECIPIENT, recipient_content)
        if signature_data:
            state = workflow.capture_signature(state, signature_data, signer_name or "", signer_phone)

        while state.step != workflow.CaptureStep.REVIEW:
            state = workflow.advance(state)

        proofs = DeliveryProofService(db, storage, analyzer)
        outcome = await workflow.submit(state, proofs, delivery_id, current_courier.id)
    except ValidationFailure as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    if isinstance(outcome.error, PartialSubmissionFailure):
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(outcome.error),
                "failed_step": outcome.error.failed_step,
                "completed_steps": outcome.error.completed_steps,
            },
        )
    if outcome.error is not None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(outcome.error))

    artifacts = await proofs.get_delivery_proofs(delivery_id)
    return ProofSubmissionResponse(
        delivery_id=delivery_id,
        step=outcome.state.step.value,
        completed_steps=list(outcome.completed_steps),
        artifacts=[ProofArtifactResponse.model_validate(a) for a in artifacts],
    )


@router.post(
    "/{delivery_id}/photos",
    response_model=ProofArtifactResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_photo(
    delivery_id: uuid.UUID,
    db: DB,
    current_courier: CurrentCourier,
    storage: Storage,
    analyzer: Analyzer,
    file: UploadFile = File(..., description="Photo file"),
    photo_type: ProofPhotoType = Form(ProofPhotoType.PACKAGE),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
):
    """Upload one proof photo."""
    await get_courier_delivery(db, delivery_id, current_courier)

    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Photo is empty")

    service = DeliveryProofService(db, storage, analyzer)
    try:
        artifact = await service.upload_proof(
            delivery_id,
            current_courier.id,
            content,
            photo_type,
            location=_location(latitude, longitude),
        )
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return ProofArtifactResponse.model_validate(artifact)


@router.post(
    "/{delivery_id}/signature",
    response_model=SignatureResponse,
    status_code=status.HTTP_201_CREATED,
)
async def save_signature(
    delivery_id: uuid.UUID,
    data: SignatureCreate,
    db: DB,
    current_courier: CurrentCourier,
    storage: Storage,
):
    """Store the recipient's signature."""
    await get_courier_delivery(db, delivery_id, current_courier)

    service = DeliveryProofService(db, storage)
    try:
        signature = await service.save_signature(
            delivery_id,
            data.signature_data,
            data.signer_name,
            data.signer_phone,
        )
    except PersistenceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return SignatureResponse.model_validate(signature)


@router.get("/{delivery_id}", response_model=list[ProofArtifactResponse])
async def list_proofs(
    delivery_id: uuid.UUID,
    db: DB,
    current_courier: CurrentCourier,
    storage: Storage,
):
    """Proof artifacts of a delivery, oldest first."""
    await get_courier_delivery(db, delivery_id, current_courier)

    service = DeliveryProofService(db, storage)
    artifacts = await service.get_delivery_proofs(delivery_id)
    return [ProofArtifactResponse.model_validate(a) for a in artifacts]
