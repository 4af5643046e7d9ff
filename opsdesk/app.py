"""FastAPI application entry point for OpsDesk."""

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import ResponseValidationError, RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from opsdesk.core.database import init_db, get_data_engine
from opsdesk.core.router import register_routes
from opsdesk.logging.exception_handlers import (
    response_validation_exception_handler,
    request_validation_exception_handler,
    general_exception_handler,
    http_exception_handler,
)
from opsdesk.logging.middleware import LoggingMiddleware
from opsdesk.reporting.cache import ResultCache
from opsdesk.reporting.datastore import DataStore


def create_app(data_engine: AsyncEngine = None, report_cache: ResultCache = None) -> FastAPI:

    app = FastAPI(
        title="OpsDesk",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    init_db()

    # One data store client and one result cache per process
    app.state.data_store = DataStore(data_engine or get_data_engine())
    app.state.report_cache = report_cache or ResultCache()

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware)

    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)

    return app
