import time

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .error_handler import (
    ContractViolationError, PreconditionError, ResourceNotFoundError, ServiceUnreachableError,
    ValidationError, create_error_response, get_http_status_code
)
from .logging_config import api_logger_instance, get_request_id

# Rendered through create_error_response (status from ERROR_STATUS_MAPPING)
HANDLED_ERRORS = (
    ServiceUnreachableError, ContractViolationError, PreconditionError,
    ValidationError, ResourceNotFoundError, ValueError, KeyError,
    FileNotFoundError, PermissionError,
)


def _envelope(error_type: str, message, status_code: int, request_id: str, **extra) -> JSONResponse:
    body = {
        "type": error_type,
        "message": message,
        "status_code": status_code,
        "timestamp": time.time(),
        "request_id": request_id,
        **extra,
    }
    return JSONResponse(status_code=status_code, content={"error": body})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Turns any exception escaping an endpoint into the JSON error envelope.
    """
    request_id = getattr(request.state, 'request_id', get_request_id())
    status_code = exc.status_code if isinstance(exc, StarletteHTTPException) else get_http_status_code(exc)

    api_logger_instance.log_error(
        request_id=request_id,
        error=exc,
        status_code=status_code,
        path=request.url.path,
    )

    if isinstance(exc, HANDLED_ERRORS):
        return create_error_response(exc, request_id)
    if isinstance(exc, RequestValidationError):
        return _envelope("ValidationError", "Request validation failed", 422, request_id,
                         validation_errors=jsonable_encoder(exc.errors()))
    if isinstance(exc, StarletteHTTPException):
        return _envelope("HTTPException", exc.detail, exc.status_code, request_id)

    extra = {"internal_error": str(exc)} if getattr(request.app.state, 'debug', False) else {}
    return _envelope("InternalServerError", "An unexpected error occurred", 500, request_id, **extra)


def setup_exception_handlers(app):
    """Setup global exception handlers for the FastAPI app."""
    for error_type in (Exception, RequestValidationError, StarletteHTTPException) + HANDLED_ERRORS:
        app.add_exception_handler(error_type, global_exception_handler)
