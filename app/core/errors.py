"""Application exceptions and their HTTP mapping."""
import logging
import traceback

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class AuthenticationError(AppError):
    """Raised when credentials are missing or invalid."""

    def __init__(self, message: str = "Not authorized"):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    """Raised on role or ownership mismatch."""

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    """Raised when a conditional write loses to a concurrent writer."""

    def __init__(self, message: str = "Resource was modified concurrently"):
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class UpstreamError(AppError):
    """Raised when the external inquiry source is unreachable or malformed."""

    def __init__(self, message: str = "Upstream service unavailable"):
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY)


class PersistenceError(AppError):
    """Raised when the document store fails."""

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    content = {"success": False, "message": "Internal server error"}
    if not get_settings().is_production:
        content["details"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def register_error_handlers(app: FastAPI) -> None:
    """Attach the AppError and catch-all handlers to the application."""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
