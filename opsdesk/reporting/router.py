"""API router for ad-hoc custom reports."""

from typing import List, Dict, Optional
from fastapi import APIRouter, Depends, HTTPException

from opsdesk.core.dependencies import SessionDep, DataStoreDep, ResultCacheDep
from opsdesk.reporting.dao import DefinitionDAO
from opsdesk.reporting.errors import DisallowedEntityError
from opsdesk.reporting.executor import QueryExecutor
from opsdesk.reporting.schemas import (
    CacheStatus,
    EntityRead,
    ReportDefinition,
    ReportDefinitionCreate,
    ReportResult,
    RunDefinitionRequest,
    RunReportRequest,
)
from opsdesk.reporting.service import ReportService

router = APIRouter(prefix="/custom-reports", tags=["custom-reports"])


# Dependency functions
def get_definition_dao(db: SessionDep) -> DefinitionDAO:
    return DefinitionDAO(db)


def get_report_service(
    data_store: DataStoreDep,
    cache: ResultCacheDep,
    definition_dao: DefinitionDAO = Depends(get_definition_dao),
) -> ReportService:
    return ReportService(QueryExecutor(data_store), cache, definition_dao)


# ===== ENTITY ENDPOINTS =====


@router.get("/entities", response_model=List[EntityRead])
async def list_entities(service: ReportService = Depends(get_report_service)) -> List[EntityRead]:
    """List reportable entities in declaration order."""
    return service.list_entities()


@router.get("/entities/{key}", response_model=EntityRead)
async def get_entity(key: str, service: ReportService = Depends(get_report_service)) -> EntityRead:
    for entity in service.list_entities():
        if entity.key == key:
            return entity
    raise HTTPException(status_code=404, detail="Entity not found")


# ===== EXECUTION ENDPOINTS =====


@router.post("/run", response_model=ReportResult)
async def run_report(
    request: RunReportRequest, service: ReportService = Depends(get_report_service)
) -> ReportResult:
    """Run an ad-hoc report."""
    try:
        return await service.run_report(request)
    except DisallowedEntityError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ===== DEFINITION ENDPOINTS =====


@router.get("/definitions", response_model=List[ReportDefinition])
async def list_definitions(
    service: ReportService = Depends(get_report_service),
) -> List[ReportDefinition]:
    return await service.list_definitions()


@router.post("/definitions", response_model=ReportDefinition)
async def save_definition(
    definition: ReportDefinitionCreate, service: ReportService = Depends(get_report_service)
) -> ReportDefinition:
    """Save a report definition; an existing id is overwritten."""
    return await service.save_definition(definition)


@router.get("/definitions/{definition_id}", response_model=ReportDefinition)
async def get_definition(
    definition_id: str, service: ReportService = Depends(get_report_service)
) -> ReportDefinition:
    definition = await service.get_definition(definition_id)
    if not definition:
        raise HTTPException(status_code=404, detail="Report definition not found")
    return definition


@router.delete("/definitions/{definition_id}")
async def delete_definition(
    definition_id: str, service: ReportService = Depends(get_report_service)
) -> Dict[str, str]:
    success = await service.delete_definition(definition_id)
    if not success:
        raise HTTPException(status_code=404, detail="Report definition not found")
    return {"message": "Report definition deleted successfully"}


@router.post("/definitions/{definition_id}/run", response_model=ReportResult)
async def run_definition(
    definition_id: str,
    options: Optional[RunDefinitionRequest] = None,
    service: ReportService = Depends(get_report_service),
) -> ReportResult:
    """Run a saved definition, optionally paging or re-ordering it."""
    try:
        result = await service.run_definition(definition_id, options)
    except DisallowedEntityError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if result is None:
        raise HTTPException(status_code=404, detail="Report definition not found")
    return result


# ===== CACHE ENDPOINTS =====


@router.get("/cache", response_model=CacheStatus)
async def get_cache_status(service: ReportService = Depends(get_report_service)) -> CacheStatus:
    return service.cache_status()


@router.delete("/cache")
async def clear_cache(service: ReportService = Depends(get_report_service)) -> Dict[str, str]:
    """Drop all cached report results."""
    service.clear_cache()
    return {"message": "Report cache cleared"}
