"""Shared FastAPI dependencies."""

from typing import Annotated
from fastapi import Depends, Request
from sqlalchemy.orm import Session
from opsdesk.core.database import get_db
from opsdesk.reporting.cache import ResultCache
from opsdesk.reporting.datastore import DataStore

# Core database dependency
SessionDep = Annotated[Session, Depends(get_db)]


# Process-wide instances created by create_app()
def get_data_store(request: Request) -> DataStore:
    return request.app.state.data_store


def get_result_cache(request: Request) -> ResultCache:
    return request.app.state.report_cache


DataStoreDep = Annotated[DataStore, Depends(get_data_store)]
ResultCacheDep = Annotated[ResultCache, Depends(get_result_cache)]
