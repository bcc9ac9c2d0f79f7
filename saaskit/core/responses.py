"""
HTTP Responses
==============

JSON envelope helpers, exception handlers and the request ID middleware
installed on every application built by the kit.
"""

import uuid
from typing import Any, Optional

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException

from saaskit.config.logging import get_logger
from saaskit.core.errors import AppError
from saaskit.models.schemas import ErrorResponse, SuccessResponse

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


def success(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    """Wrap data in the success envelope."""
    body = SuccessResponse(data=jsonable_encoder(data), message=message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def error_response(
    request: Request,
    status_code: int,
    error: str,
    error_code: Optional[str] = None,
    details: Optional[dict] = None,
) -> JSONResponse:
    """Build the error envelope for a request."""
    body = ErrorResponse(
        error=error,
        error_code=error_code,
        details=details,
        request_id=getattr(request.state, "request_id", None),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Map application errors to the error envelope with their own status."""
    if exc.status_code >= 500:
        logger.error(
            "Application error",
            status_code=exc.status_code,
            error_code=exc.code,
            error=str(exc),
            request_id=getattr(request.state, "request_id", None),
        )
    return error_response(request, exc.status_code, exc.message, exc.code, exc.details)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Custom HTTP exception handler with structured error response."""
    logger.error(
        "HTTP exception",
        status_code=exc.status_code,
        detail=exc.detail,
        request_id=getattr(request.state, "request_id", None),
    )
    response = error_response(request, exc.status_code, str(exc.detail), str(exc.status_code))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Map request validation failures to the error envelope."""
    logger.warning(
        "Request validation failed",
        path=request.url.path,
        errors=len(exc.errors()),
        request_id=getattr(request.state, "request_id", None),
    )
    return error_response(
        request,
        422,
        "Request validation failed",
        "VALIDATION_ERROR",
        {"errors": jsonable_encoder(exc.errors())},
    )


async def request_id_middleware(request: Request, call_next) -> Response:  # type: ignore[no-untyped-def]
    """Add request ID to all requests."""
    request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    request.state.request_id = request_id

    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id

    return response


DEFAULT_ERROR_HANDLERS = {
    AppError: app_error_handler,
    HTTPException: http_exception_handler,
    RequestValidationError: validation_exception_handler,
}
