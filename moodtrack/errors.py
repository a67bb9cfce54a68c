"""
Exception hierarchy for moodtrack.

Every error carries a machine-readable `code` so the HTTP layer and any other
caller can branch on it without parsing messages.
"""
from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status


class MoodTrackError(Exception):
    """Base class for all application-level errors."""
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class EntryValidationError(MoodTrackError):
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    code = "VALIDATION_ERROR"


class StorageError(MoodTrackError):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORAGE_ERROR"

    def __init__(self, message: str, slot: str | None = None):
        super().__init__(
            message=message,
            details={"slot": slot} if slot else {},
        )


class ExternalServiceError(MoodTrackError):
    http_status = status.HTTP_502_BAD_GATEWAY
    code = "EXTERNAL_SERVICE_ERROR"


class StoreClosedError(MoodTrackError):
    http_status = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "STORE_CLOSED"

    def __init__(self):
        super().__init__(message="Mood store has been closed.")


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

async def moodtrack_exception_handler(request: Request, exc: MoodTrackError) -> JSONResponse:
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    field_errors = []
    for error in exc.errors():
        field_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
            "type": error["type"],
        })
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "code": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )
