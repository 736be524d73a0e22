"""Structured error helpers for API responses."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppError(Exception):
    """Application-scoped error for standardized API responses."""

    def __init__(self, status_code: int, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.details = details
        self.payload = build_error_payload(code, message, details)


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


class PipelineError(AppError):
    """Base class for rejected pipeline operations. Prior state is left untouched."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "PIPELINE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(type(self).status_code, type(self).code, message, details)


class InvalidTransition(PipelineError):
    code = "INVALID_TRANSITION"


class MissingOfferStatus(PipelineError):
    code = "MISSING_OFFER_STATUS"


class InvalidRejectionReason(PipelineError):
    code = "INVALID_REJECTION_REASON"


class FieldNotAllowed(PipelineError):
    code = "FIELD_NOT_ALLOWED"


class FinalOutcomeLocked(PipelineError):
    status_code = status.HTTP_409_CONFLICT
    code = "FINAL_OUTCOME_LOCKED"


class ConcurrentModification(PipelineError):
    """The application changed between read and write; reload and retry once."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONCURRENT_MODIFICATION"


class ApplicationNotFound(PipelineError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "APPLICATION_NOT_FOUND"


class HistoryValidationError(PipelineError):
    status_code = status.HTTP_422_UNPROCESSABLE_CONTENT
    code = "HISTORY_VALIDATION_ERROR"


class StaleFromStage(HistoryValidationError):
    """A ledger entry's from_stage no longer matches the application's stage."""
