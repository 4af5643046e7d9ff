# opsdesk/reporting/service.py

import logging
from dataclasses import asdict
from typing import List, Optional

from opsdesk.reporting.cache import ResultCache
from opsdesk.reporting.dao import DefinitionDAO
from opsdesk.reporting.executor import QueryExecutor, clamp_limit
from opsdesk.reporting.registry import EntityConfig, EntityRegistry, ENTITY_REGISTRY
from opsdesk.reporting.schemas import (
    CacheStatus, EntityRead, ReportDefinition, ReportDefinitionCreate, ReportRequest,
    ReportResult, RunDefinitionRequest, RunReportRequest,
)

logger = logging.getLogger(__name__)


class ReportService:
    """Public operations of the ad-hoc report engine."""

    def __init__(self, executor: QueryExecutor, cache: ResultCache,
                 definition_dao: Optional[DefinitionDAO] = None,
                 registry: EntityRegistry = ENTITY_REGISTRY):
        self.executor = executor
        self.cache = cache
        self.definition_dao = definition_dao
        self.registry = registry

    # ===== ENTITIES =====

    def list_entities(self) -> List[EntityRead]:
        return [EntityRead.model_validate(asdict(e)) for e in self.registry.list_entities()]

    def get_entity_config(self, key: str) -> Optional[EntityConfig]:
        return self.registry.get_entity_config(key)

    # ===== EXECUTION =====

    def normalize(self, request: RunReportRequest, entity: EntityConfig) -> ReportRequest:
        """Resolve defaults and bounds so equivalent runs share one cache key."""
        columns = [c for c in (request.columns or []) if c in entity.columns]
        if not columns:
            columns = list(entity.default_columns)
        return ReportRequest(
            entity=entity.key,
            columns=columns,
            filters=request.filters or {},
            limit=clamp_limit(request.limit),
            offset=max(0, request.offset or 0),
            order_by=request.order_by,
            ascending=request.ascending,
            summary_only=request.summary_only,
        )

    async def run_report(self, request: RunReportRequest) -> ReportResult:
        """Run an ad-hoc report, served from cache when possible.

        Raises ``DisallowedEntityError`` before any lookup or query when the
        entity is unknown. Data store errors propagate unchanged.
        """
        entity = self.registry.require_entity(request.entity)
        normalized = self.normalize(request, entity)
        return await self.cache.get_or_execute(
            normalized, lambda: self.executor.execute(normalized, entity)
        )

    def clear_cache(self) -> None:
        self.cache.clear()
        logger.info("Report cache cleared")

    def cache_status(self) -> CacheStatus:
        return CacheStatus(**self.cache.stats(), ttl_seconds=self.cache.ttl_seconds)

    # ===== SAVED DEFINITIONS =====

    async def save_definition(self, definition: ReportDefinitionCreate) -> ReportDefinition:
        saved = await self.definition_dao.save(definition)
        logger.info("Saved report definition %s (%s)", saved.id, saved.name)
        return saved

    async def list_definitions(self) -> List[ReportDefinition]:
        return await self.definition_dao.get_all()

    async def get_definition(self, definition_id: str) -> Optional[ReportDefinition]:
        return await self.definition_dao.get_by_id(definition_id)

    async def delete_definition(self, definition_id: str) -> bool:
        return await self.definition_dao.delete(definition_id)

    async def run_definition(self, definition_id: str,
                             options: Optional[RunDefinitionRequest] = None) -> Optional[ReportResult]:
        """Load a saved definition and run it; ``None`` when the id is unknown."""
        definition = await self.definition_dao.get_by_id(definition_id)
        if definition is None:
            return None
        options = options or RunDefinitionRequest()
        return await self.run_report(RunReportRequest(
            entity=definition.entity,
            columns=definition.columns,
            filters=definition.filters,
            limit=definition.limit,
            offset=options.offset,
            order_by=options.order_by,
            ascending=options.ascending,
            summary_only=options.summary_only,
        ))
