# opsdesk/logging/exception_handlers.py

import logging

from fastapi import Request, HTTPException
from fastapi.exceptions import RequestValidationError, ResponseValidationError
from fastapi.responses import JSONResponse

from opsdesk.logging.middleware import record_request

logger = logging.getLogger(__name__)


def _json_safe(error):
    """Make validation error details JSON-serializable."""
    if isinstance(error, dict):
        return {k: _json_safe(v) for k, v in error.items()}
    elif isinstance(error, (list, tuple)):
        return [_json_safe(item) for item in error]
    elif isinstance(error, (str, int, float, bool)) or error is None:
        return error
    return str(error)


async def general_exception_handler(request: Request, exc: Exception):
    """Unhandled errors (including data store failures) become a logged 500."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    # The request middleware never sees this response, so record it here
    record_request(
        request,
        500,
        response_body=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


async def response_validation_exception_handler(request: Request, exc: ResponseValidationError):
    logger.error("Response validation failed on %s: %s", request.url.path, exc.errors())
    record_request(
        request,
        500,
        response_body=str(_json_safe(exc.errors())),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal Server Error: Response validation failed."},
    )


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Rejected request to %s: %s", request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"detail": _json_safe(exc.errors())})


async def http_exception_handler(request: Request, exc: HTTPException):
    if exc.status_code >= 500:
        logger.error("HTTP %s on %s: %s", exc.status_code, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=getattr(exc, "headers", None),
    )
