"""
Proof-of-Delivery Capture Workflow

State machine gating which evidence must be collected before a delivery is
confirmed. All status changes of a capture session go through this module.

States:
    package -> [recipient] -> [signature] -> review -> uploading -> done

recipient and signature are only visited when required at start. The state
is an immutable value: every operation takes a state and returns a new one,
a rejected transition raises ValidationFailure and leaves the caller's
state as it was.

Submission uploads strictly in order (package photo, recipient photo,
signature) and logs each completed step per delivery, so a retry after a
failure only performs the steps still missing.
"""
import logging
import uuid
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, List, Dict

from app.core.exceptions import (
    PersistenceError,
    PartialSubmissionFailure,
    ValidationFailure,
)
from app.models.delivery_proof import ProofPhotoType, SubmissionStep
from app.services.delivery_proof_service import DeliveryProofService, GeoPoint

logger = logging.getLogger(__name__)


# =============================================================================
# STATUS DEFINITIONS
# =============================================================================

class CaptureStep(str, Enum):
    PACKAGE = "package"
    RECIPIENT = "recipient"
    SIGNATURE = "signature"
    REVIEW = "review"
    UPLOADING = "uploading"
    DONE = "done"


# Steps where evidence can still be captured or replaced
EDITABLE_STEPS = (
    CaptureStep.PACKAGE,
    CaptureStep.RECIPIENT,
    CaptureStep.SIGNATURE,
    CaptureStep.REVIEW,
)


@dataclass(frozen=True)
class ProofCaptureState:
    step: CaptureStep
    require_recipient_photo: bool
    require_signature: bool
    package_photo: Optional[bytes] = None
    recipient_photo: Optional[bytes] = None
    signature_data: Optional[str] = None
    signer_name: Optional[str] = None
    signer_phone: Optional[str] = None
    location: Optional[GeoPoint] = None

    @property
    def has_signature(self) -> bool:
        return bool(self.signature_data) and bool((self.signer_name or "").strip())


@dataclass(frozen=True)
class SubmissionOutcome:
    """
    Result of submit().

    On failure, state is back at review and error carries the underlying
    message (PartialSubmissionFailure when earlier steps are persisted).
    """
    state: ProofCaptureState
    error: Optional[PersistenceError] = None
    completed_steps: tuple = ()

    @property
    def ok(self) -> bool:
        return self.error is None


# =============================================================================
# TRANSITION RULES
# =============================================================================

def _steps_after_package(state: ProofCaptureState) -> List[CaptureStep]:
    steps = []
    if state.require_recipient_photo:
        steps.append(CaptureStep.RECIPIENT)
    if state.require_signature:
        steps.append(CaptureStep.SIGNATURE)
    steps.append(CaptureStep.REVIEW)
    return steps


def enabled_steps(state: ProofCaptureState) -> List[CaptureStep]:
    """Capture steps visited by this session, in order, ending at review."""
    return [CaptureStep.PACKAGE] + _steps_after_package(state)


def _next_step(state: ProofCaptureState) -> CaptureStep:
    steps = enabled_steps(state)
    return steps[steps.index(state.step) + 1]


def _previous_step(state: ProofCaptureState) -> CaptureStep:
    steps = enabled_steps(state)
    index = steps.index(state.step)
    return steps[index - 1] if index > 0 else CaptureStep.PACKAGE


def start(
    require_recipient_photo: bool = False,
    require_signature: bool = False,
    location: Optional[GeoPoint] = None,
) -> ProofCaptureState:
    """New capture session. The GPS fix is optional and taken once."""
    return ProofCaptureState(
        step=CaptureStep.PACKAGE,
        require_recipient_photo=require_recipient_photo,
        require_signature=require_signature,
        location=location,
    )


def capture_photo(
    state: ProofCaptureState,
    photo_type: ProofPhotoType | str,
    content: bytes,
) -> ProofCaptureState:
    """Attach a photo. Retaking replaces the previous one."""
    if state.step not in EDITABLE_STEPS:
        raise ValidationFailure(f"Cannot capture photos while {state.step.value}")
    if not content:
        raise ValidationFailure("Photo is empty")

    photo_type = ProofPhotoType(photo_type)
    if photo_type == ProofPhotoType.PACKAGE:
        return replace(state, package_photo=content)
    if photo_type == ProofPhotoType.RECIPIENT:
        return replace(state, recipient_photo=content)
    raise ValidationFailure(f"Unsupported photo type '{photo_type.value}'")


def capture_signature(
    state: ProofCaptureState,
    signature_data: str,
    signer_name: str,
    signer_phone: Optional[str] = None,
) -> ProofCaptureState:
    if state.step not in EDITABLE_STEPS:
        raise ValidationFailure(f"Cannot capture a signature while {state.step.value}")
    return replace(
        state,
        signature_data=signature_data,
        signer_name=signer_name,
        signer_phone=signer_phone,
    )


def advance(state: ProofCaptureState) -> ProofCaptureState:
    """
    Move to the next enabled step.

    Raises:
        ValidationFailure: evidence of the current step is missing, or the
            current step has no forward transition
    """
    if state.step == CaptureStep.PACKAGE:
        if not state.package_photo:
            raise ValidationFailure("Package photo is required")
    elif state.step == CaptureStep.RECIPIENT:
        if not state.recipient_photo:
            raise ValidationFailure("Recipient photo is required")
    elif state.step == CaptureStep.SIGNATURE:
        if not state.has_signature:
            raise ValidationFailure("Signature and signer name are required")
    else:
        raise ValidationFailure(f"Cannot advance from {state.step.value}")

    return replace(state, step=_next_step(state))


def retreat(state: ProofCaptureState) -> ProofCaptureState:
    """Move back to the previous enabled step (package is the floor)."""
    if state.step not in EDITABLE_STEPS:
        raise ValidationFailure(f"Cannot go back while {state.step.value}")
    return replace(state, step=_previous_step(state))


# =============================================================================
# SUBMISSION
# =============================================================================

async def submit(
    state: ProofCaptureState,
    proofs: DeliveryProofService,
    delivery_id: uuid.UUID,
    courier_id: uuid.UUID,
) -> SubmissionOutcome:
    """
    Upload the captured evidence in order and finish the session.

    Steps already logged for the delivery are skipped. The first failing
    step aborts the rest; its error comes back in the outcome together with
    the state returned to review.

    Raises:
        ValidationFailure: not at review, or mandatory evidence missing
    """
    if state.step != CaptureStep.REVIEW:
        raise ValidationFailure(f"Cannot submit from {state.step.value}")
    if not state.package_photo:
        raise ValidationFailure("Package photo is required")
    if state.require_recipient_photo and not state.recipient_photo:
        raise ValidationFailure("Recipient photo is required")
    if state.require_signature and not state.has_signature:
        raise ValidationFailure("Signature and signer name are required")

    uploading = replace(state, step=CaptureStep.UPLOADING)

    try:
        already_done: Dict[str, uuid.UUID] = await proofs.get_completed_steps(delivery_id)
    except PersistenceError as e:
        return SubmissionOutcome(state=state, error=e)

    completed: List[str] = list(already_done)

    plan = [SubmissionStep.PACKAGE]
    if uploading.recipient_photo:
        plan.append(SubmissionStep.RECIPIENT)
    if uploading.has_signature:
        plan.append(SubmissionStep.SIGNATURE)

    for step in plan:
        if step.value in already_done:
            logger.debug(f"Delivery {delivery_id}: step '{step.value}' already submitted")
            continue

        try:
            if step == SubmissionStep.PACKAGE:
                await proofs.upload_proof(
                    delivery_id, courier_id, uploading.package_photo,
                    ProofPhotoType.PACKAGE, uploading.location, step=step,
                )
            elif step == SubmissionStep.RECIPIENT:
                await proofs.upload_proof(
                    delivery_id, courier_id, uploading.recipient_photo,
                    ProofPhotoType.RECIPIENT, uploading.location, step=step,
                )
            else:
                await proofs.save_signature(
                    delivery_id, uploading.signature_data, uploading.signer_name.strip(),
                    uploading.signer_phone, step=step,
                )
        except PersistenceError as e:
            logger.error(f"Delivery {delivery_id}: proof step '{step.value}' failed: {e}")
            if completed:
                error = PartialSubmissionFailure(str(e), failed_step=step.value, completed_steps=completed)
            else:
                error = e
            return SubmissionOutcome(
                state=replace(uploading, step=CaptureStep.REVIEW),
                error=error,
                completed_steps=tuple(completed),
            )

        completed.append(step.value)

    logger.info(f"Delivery {delivery_id}: proof submitted ({', '.join(completed)})")
    return SubmissionOutcome(
        state=replace(uploading, step=CaptureStep.DONE),
        completed_steps=tuple(completed),
    )
