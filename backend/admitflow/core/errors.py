"""
Error taxonomy for the onboarding core.
API handlers map each class to an HTTP status; services raise them directly.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

FIRST_STEP_ROUTE = "/onboarding/personal"


class OnboardingError(Exception):
    """Base class for failures surfaced by the onboarding core."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict:
        return {"detail": self.message}


class ValidationError(OnboardingError):
    """A required field is missing or malformed. No state was mutated."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field

    def to_payload(self) -> dict:
        payload = super().to_payload()
        if self.field:
            payload["field"] = self.field
        return payload


class MissingPatientIdError(ValidationError):
    """A step after the first was submitted without a usable patient id."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, patient_id: Optional[str] = None):
        super().__init__(
            "A valid patient id is required; restart onboarding from personal information",
            field="patientId",
        )
        self.patient_id = patient_id
        self.redirect_to = FIRST_STEP_ROUTE

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["redirectTo"] = self.redirect_to
        return payload


class NotFoundError(OnboardingError):
    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, patient_id: str):
        super().__init__(f"Patient {patient_id} not found")
        self.patient_id = patient_id


class InvalidTransitionError(OnboardingError):
    """The requested step is not reachable from the patient's current step."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str, current_step: Optional[int] = None, target_step: Optional[int] = None):
        super().__init__(message)
        self.current_step = current_step
        self.target_step = target_step

    def to_payload(self) -> dict:
        payload = super().to_payload()
        payload["currentStep"] = self.current_step
        payload["targetStep"] = self.target_step
        return payload


class OnboardingClosedError(InvalidTransitionError):
    """An earlier step was re-submitted for a patient whose onboarding is complete."""


class PersistenceError(OnboardingError):
    """The backing store is unavailable. The caller may resubmit."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class ExternalServiceError(OnboardingError):
    """The document analysis provider failed."""

    status_code = status.HTTP_502_BAD_GATEWAY


def register_exception_handlers(app: FastAPI) -> None:
    """Translate core failures into JSON responses."""

    @app.exception_handler(OnboardingError)
    async def _onboarding_error_handler(request: Request, exc: OnboardingError):
        if isinstance(exc, PersistenceError):
            logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc.message)
        else:
            logger.info(
                "Rejected %s %s (%s): %s",
                request.method, request.url.path, type(exc).__name__, exc.message,
            )
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())
