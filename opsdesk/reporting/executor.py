"""Builds and runs the single data store query behind a report run."""

import logging
import time
from typing import Any, Dict, List

from opsdesk.reporting.datastore import DataStore, Lookup
from opsdesk.reporting.filters import apply_predicates, translate
from opsdesk.reporting.registry import EntityConfig, EntityRegistry, ENTITY_REGISTRY
from opsdesk.reporting.schemas import MAX_LIMIT, ReportRequest, ReportResult

logger = logging.getLogger(__name__)


def clamp_limit(limit) -> int:
    """Clamp a requested row limit into ``[1, MAX_LIMIT]``."""
    return min(max(1, limit or 1), MAX_LIMIT)


class QueryExecutor:
    """Turns a normalized ``ReportRequest`` into one data store query."""

    def __init__(self, data_store: DataStore, registry: EntityRegistry = ENTITY_REGISTRY):
        self.data_store = data_store
        self.registry = registry

    async def execute(self, request: ReportRequest, entity: EntityConfig) -> ReportResult:
        start_time = time.time()
        predicates = translate(request.filters, entity)

        if request.summary_only:
            query = self.data_store.from_(entity.storage_location).count_only()
            response = await apply_predicates(query, predicates).execute()
            logger.debug(
                "Counted %s with %d predicates in %.1f ms",
                entity.key, len(predicates), (time.time() - start_time) * 1000,
            )
            return ReportResult(
                rows=[],
                columns=list(request.columns),
                total_count=response.count or 0,
                summary_only=True,
            )

        limit = clamp_limit(request.limit)
        offset = request.offset
        physical = entity.physical_columns(request.columns)
        lookups = self._needed_lookups(request.columns, entity)

        query = self.data_store.from_(entity.storage_location).select(
            physical or ["id"], lookups=lookups, count=True
        )
        query = apply_predicates(query, predicates)

        # Only physical columns that were actually selected can be ordered on
        if request.order_by and request.order_by in physical:
            query = query.order(request.order_by, ascending=request.ascending)

        response = await query.range(offset, offset + limit - 1).execute()
        rows = [self._reshape(row, request.columns, entity, lookups) for row in response.rows]

        total_count = response.count if response.count is not None else len(rows)
        logger.debug(
            "Ran %s: %d columns, %d lookups, %d predicates, %d rows in %.1f ms",
            entity.key, len(request.columns), len(lookups), len(predicates), len(rows),
            (time.time() - start_time) * 1000,
        )
        return ReportResult(
            rows=rows,
            columns=list(request.columns),
            total_count=total_count,
            limit=limit,
            offset=offset,
            has_more=response.count is not None and offset + len(rows) < response.count,
        )

    def _needed_lookups(self, columns: List[str], entity: EntityConfig) -> Dict[str, Lookup]:
        """Lookups backing at least one requested virtual column, nothing else."""
        lookups: Dict[str, Lookup] = {}
        for column in entity.virtual_columns(columns):
            source = entity.columns[column].source
            if source in lookups:
                continue
            related = entity.related_lookups[source]
            lookups[source] = Lookup(
                table=self.registry.require_entity(source).storage_location,
                foreign_key=related.foreign_key,
                field=related.selected_field,
            )
        return lookups

    @staticmethod
    def _reshape(row: Dict[str, Any], columns: List[str], entity: EntityConfig,
                 lookups: Dict[str, Lookup]) -> Dict[str, Any]:
        """Flatten fetched lookups into their virtual columns."""
        flat = dict(row)
        for column in entity.virtual_columns(columns):
            source = entity.columns[column].source
            if source not in lookups:
                continue
            related = row.get(source)
            flat[column] = related.get(lookups[source].field) if related else None
        for source in lookups:
            flat.pop(source, None)
        return flat
