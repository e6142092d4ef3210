# dailypath/api/exception_handlers.py
"""
Maps every exception raised while handling a request to a status code and a
uniform `ErrorResponse` body: `{error, message, details?, code?}`.

`translate_exception` is total; the handlers registered on the app only
serialize what it returns.
"""
import logging
from http import HTTPStatus
from typing import Any, Dict, List, Sequence, Tuple

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from dailypath.core.config import settings
from dailypath.core.errors import AppError, DatabaseError
from dailypath.models.common import ErrorResponse

logger = logging.getLogger(__name__)


def _field_name(loc: Sequence[Any]) -> str:
    # ("body", "period") -> "period"; ("query", "ids", 0) -> "ids.0"
    parts = [str(p) for p in loc[1:]] if len(loc) > 1 else [str(p) for p in loc]
    return ".".join(parts) or "_"


def _error_message(err: Dict[str, Any]) -> str:
    # Plain ValueErrors raised in validators carry a "Value error, " prefix in msg
    if err.get("type") == "value_error":
        ctx_error = (err.get("ctx") or {}).get("error")
        if ctx_error is not None:
            return str(ctx_error)
    return err.get("msg", "Invalid value")


def field_errors_from(exc: RequestValidationError) -> Dict[str, List[str]]:
    """Flatten pydantic error entries into {field: [messages]}."""
    field_errors: Dict[str, List[str]] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        field_errors.setdefault(_field_name(loc), []).append(_error_message(err))
    return field_errors


def _is_query_error(exc: RequestValidationError) -> bool:
    return any((err.get("loc") or ("",))[0] in ("query", "path") for err in exc.errors())


def translate_exception(exc: Exception) -> Tuple[int, ErrorResponse]:
    """Return (status_code, body) for any exception."""
    if isinstance(exc, RequestValidationError):
        if _is_query_error(exc):
            error, message = "Invalid query parameters", "One or more query parameters are invalid"
        else:
            error, message = "Invalid request body", "One or more fields are invalid"
        return status.HTTP_400_BAD_REQUEST, ErrorResponse(
            error=error, message=message, details=field_errors_from(exc)
        )

    if isinstance(exc, DatabaseError):
        return exc.status_code, ErrorResponse(error=exc.error, message=DatabaseError.default_message)

    if isinstance(exc, AppError):
        return exc.status_code, ErrorResponse(
            error=exc.error, message=exc.message, details=exc.details, code=exc.code
        )

    if isinstance(exc, PyMongoError):
        logger.error(f"Unhandled database error: {exc}", exc_info=exc)
        return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorResponse(
            error=DatabaseError.error, message=DatabaseError.default_message
        )

    if isinstance(exc, StarletteHTTPException):
        try:
            reason = HTTPStatus(exc.status_code).phrase
        except ValueError:
            reason = "Error"
        return exc.status_code, ErrorResponse(error=reason, message=str(exc.detail))

    logger.error(f"Unexpected error: {exc}", exc_info=exc)
    message = "An unexpected error occurred"
    if settings.DEBUG:
        message = f"{message}: {exc}"
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorResponse(
        error="Internal server error", message=message
    )


def error_response(exc: Exception) -> JSONResponse:
    status_code, body = translate_exception(exc)
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers=headers,
    )


async def _handle(request: Request, exc: Exception) -> JSONResponse:
    if isinstance(exc, AppError) and exc.status_code >= 500:
        logger.error(f"{exc.error} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the translator to every exception type the app can raise."""
    app.add_exception_handler(RequestValidationError, _handle)
    app.add_exception_handler(AppError, _handle)
    app.add_exception_handler(PyMongoError, _handle)
    app.add_exception_handler(StarletteHTTPException, _handle)
    # Runs in ServerErrorMiddleware; the exception is re-raised after the response
    app.add_exception_handler(Exception, _handle)
