"""
Ad-hoc report engine.

A caller declares which entity, which columns, which filters and how many
rows; the engine validates the entity against the registry, translates the
filters, runs one data store query and caches the normalized result.

Main Components:
- EntityRegistry: static catalog of reportable entities
- translate: filter map to data store predicates
- QueryExecutor: builds and runs the query, flattens related lookups
- ResultCache: TTL memoization with in-flight request coalescing
- DefinitionDAO: saved report definitions
- ReportService: the public operations
"""

from .cache import ResultCache
from .dao import DefinitionDAO
from .errors import DisallowedEntityError, RegistryError, ReportingError
from .executor import QueryExecutor
from .filters import translate
from .registry import ENTITY_REGISTRY, EntityConfig, EntityRegistry
from .schemas import MAX_LIMIT, ReportRequest, ReportResult, RunReportRequest
from .service import ReportService

__all__ = [
    # Main classes
    "ReportService",
    "QueryExecutor",
    "ResultCache",
    "DefinitionDAO",
    "EntityRegistry",
    "ENTITY_REGISTRY",
    "EntityConfig",
    "translate",
    # Request and result types
    "RunReportRequest",
    "ReportRequest",
    "ReportResult",
    "MAX_LIMIT",
    # Errors
    "ReportingError",
    "DisallowedEntityError",
    "RegistryError",
]
