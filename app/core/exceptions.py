"""Typed failures raised by the trust services and mapped to HTTP by the API layer."""
from typing import List, Optional


class TrustServiceError(Exception):
    """Base class for all service failures."""
    pass


class NotFoundError(TrustServiceError):
    """Referenced courier, policy or tracking code is absent (or expired)."""
    pass


class ValidationFailure(TrustServiceError):
    """Mandatory evidence or input is missing at a transition or submit attempt."""
    pass


class PersistenceError(TrustServiceError):
    """Store or object-storage call failed. The message is the collaborator's, verbatim."""
    pass


class PartialSubmissionFailure(PersistenceError):
    """
    An ordered upload step failed after earlier steps succeeded.

    Earlier artifacts stay persisted; nothing is rolled back.
    """

    def __init__(
        self,
        message: str,
        failed_step: str,
        completed_steps: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.failed_step = failed_step
        self.completed_steps = list(completed_steps or [])
