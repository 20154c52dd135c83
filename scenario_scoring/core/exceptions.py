"""Custom exceptions and centralized exception handlers."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class AppException(Exception):
    """Base application exception with structured error response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.message
        self.error_code = error_code or self.error_code
        self.status_code = status_code or self.status_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the error envelope returned by every endpoint."""
        return {
            "success": False,
            "error": self.error_code,
            "message": self.message,
            "status": self.status_code,
            **({"details": self.details} if self.details else {}),
        }


class NotFoundError(AppException):
    """Resource not found."""

    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    message = "Resource not found"


class BadRequestError(AppException):
    """Bad request."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"
    message = "Bad request"


class ExternalServiceError(AppException):
    """External service error."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "EXTERNAL_SERVICE_ERROR"
    message = "External service temporarily unavailable"


class JobError(AppException):
    """Job execution failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "JOB_ERROR"
    message = "Job execution failed"


class UnknownAnalogError(BadRequestError):
    """Requested analog id is not in the registry."""

    error_code = "UNKNOWN_ANALOG"
    message = "Unknown historical analog"

    def __init__(self, analog_id: str | None = None, **kwargs: Any):
        if analog_id is not None:
            kwargs.setdefault("message", f"Unknown historical analog: {analog_id}")
            kwargs.setdefault("details", {"analog_id": analog_id})
        super().__init__(**kwargs)


class DataUnavailableError(ExternalServiceError):
    """A historical data provider has no usable series for a ticker/window."""

    error_code = "DATA_UNAVAILABLE"
    message = "Historical data unavailable"


class InsufficientDataError(AppException):
    """A holding or benchmark series could not be built for the analog window."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "INSUFFICIENT_DATA"
    message = "Insufficient historical data to score portfolio"


class StoreError(AppException):
    """Persistence fault in the score cache store."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "STORE_ERROR"
    message = "Score cache store unavailable"


class ComputationFailedError(AppException):
    """Every portfolio computation in a fan-out failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "COMPUTATION_FAILED"
    message = "Failed to compute scores for any portfolio"


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def register_exception_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers."""

    @app.exception_handler(AppException)
    async def app_exception_handler(
        request: Request, exc: AppException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(),
            headers={"X-Request-ID": _request_id(request)},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Malformed bodies are client errors, same envelope as BadRequestError
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
            for err in exc.errors()
        ]
        error = BadRequestError(
            message="Invalid request body", details={"errors": errors}
        )
        return JSONResponse(
            status_code=error.status_code,
            content=error.to_dict(),
            headers={"X-Request-ID": _request_id(request)},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger = logging.getLogger("scenario_scoring.error")
        logger.exception(
            "Unhandled exception",
            extra={
                "request_id": _request_id(request),
                "path": request.url.path,
                "method": request.method,
            },
        )

        from .config import settings

        if settings.debug:
            message = str(exc)
        else:
            message = "An unexpected error occurred"

        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "INTERNAL_ERROR",
                "message": message,
                "status": 500,
            },
            headers={"X-Request-ID": _request_id(request)},
        )
