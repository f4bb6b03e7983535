import logging
import traceback
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from roadmap.core.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Базовая ошибка приложения со статусом HTTP"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    message: str = "Server Error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message or self.message)
        self.message = message or self.message
        self.errors = errors


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Validation failed"


class AuthenticationError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid token"


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    message = "Insufficient permissions"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    message = "Conflict"


def error_body(message: str, errors: Optional[List[Dict[str, Any]]] = None, exc: Optional[BaseException] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    if settings.DEBUG and exc is not None:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.errors, exc),
        headers=headers,
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Поля из body/query приводим к плоскому виду "field: message"
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")),
            "message": err.get("msg", "Invalid value"),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", errors),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Server Error", exc=exc),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Подключает централизованную обработку ошибок"""
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
