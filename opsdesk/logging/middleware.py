import getpass
import logging
import os
import platform
import socket
import time
from datetime import datetime
from typing import Callable, Optional

from dotenv import load_dotenv
from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.background import BackgroundTask
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from opsdesk.core.database import SessionLocal
from opsdesk.logging.models import RequestLog

load_dotenv()

logger = logging.getLogger(__name__)

APPLICATION_ID = os.environ.get("APPLICATION_ID", "Unknown")

# Paths never written to the request log
EXCLUDED_PATHS = ("/api/docs", "/api/redoc", "/api/openapi.json", "/static")

# Longest body kept per log row
MAX_BODY_CHARS = 10_000


def _current_username() -> str:
    try:
        return os.environ.get("USER") or os.environ.get("USERNAME") or getpass.getuser() or "unknown_user"
    except Exception:
        return "unknown_user"


def _current_hostname() -> str:
    try:
        return socket.gethostname() or platform.node() or "unknown_host"
    except Exception:
        return "unknown_host"


USERNAME = _current_username()
HOSTNAME = _current_hostname()


def record_request(
    request: Request,
    status_code: int,
    request_body: Optional[str] = None,
    response_body: Optional[str] = None,
    processing_time: Optional[float] = None,
    error_type: Optional[str] = None,
) -> None:
    """Write one request log row. Failures are logged, never raised."""
    try:
        with SessionLocal() as session:
            session.add(RequestLog(
                timestamp=datetime.now(),
                method=request.method,
                path=str(request.url.path),
                query_string=str(request.url.query) or None,
                status_code=status_code,
                client_ip=request.client.host if request.client else None,
                request_body=(request_body or "")[:MAX_BODY_CHARS] or None,
                response_body=(response_body or "")[:MAX_BODY_CHARS] or None,
                error_type=error_type,
                processing_time=processing_time,
                user_agent=request.headers.get("user-agent"),
                username=USERNAME,
                hostname=HOSTNAME,
                application_id=APPLICATION_ID,
            ))
            session.commit()
    except SQLAlchemyError as e:
        logger.warning("Could not write request log for %s %s: %s", request.method, request.url.path, e)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Records every API request to the request log table."""

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        logger.info(
            "Request logging enabled for %s on %s (app id %s)", USERNAME, HOSTNAME, APPLICATION_ID
        )

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path.startswith(EXCLUDED_PATHS):
            return await call_next(request)

        start_time = time.time()

        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore")

        # Reconstruct stream
        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)

        response = await call_next(request)
        duration_ms = (time.time() - start_time) * 1000

        response_body = b""
        if isinstance(response, Response) and hasattr(response, "body"):
            response_body = response.body
        elif hasattr(response, "body_iterator"):
            # Buffer streamed chunks so the body can be logged after sending
            original_iterator = response.body_iterator
            chunks = []

            async def buffer_iterator():
                nonlocal response_body
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk
                response_body = b"".join(chunks)

            response.body_iterator = buffer_iterator()

        status_code = response.status_code

        def log_to_db():
            body = response_body.decode("utf-8", errors="ignore") if response_body else None
            record_request(
                request,
                status_code,
                request_body=request_body,
                response_body=body,
                processing_time=duration_ms,
            )

        response.background = getattr(response, "background", None) or BackgroundTask(log_to_db)
        return response
