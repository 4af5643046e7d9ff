"""Pydantic schemas for the ad-hoc reporting module."""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from opsdesk.reporting.registry import ColumnDataType

MAX_LIMIT = 5000
DEFAULT_LIMIT = 1000


# ===== ENTITY SCHEMAS =====


class ColumnRead(BaseModel):
    label: str
    type: ColumnDataType
    is_virtual: bool = False
    source: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RelatedLookupRead(BaseModel):
    foreign_key: str
    selected_field: str

    model_config = ConfigDict(from_attributes=True)


class EntityRead(BaseModel):
    """Entity descriptor as exposed to report builders."""

    key: str
    label: str
    storage_location: str
    columns: Dict[str, ColumnRead]
    default_columns: List[str]
    filterable: List[str] = []
    advanced_filters: Dict[str, List[str]] = {}
    related_lookups: Dict[str, RelatedLookupRead] = {}

    model_config = ConfigDict(from_attributes=True)


# ===== EXECUTION SCHEMAS =====


class RunReportRequest(BaseModel):
    """Report run as submitted by a caller, before normalization."""

    entity: str
    columns: Optional[List[str]] = None
    filters: Dict[str, Any] = {}
    limit: Optional[int] = DEFAULT_LIMIT
    offset: int = 0
    order_by: Optional[str] = None
    ascending: bool = True
    summary_only: bool = False

    @field_validator("filters", mode="before")
    @classmethod
    def default_filters(cls, v: Any) -> Any:
        return {} if v is None else v


class ReportRequest(BaseModel):
    """Normalized unit of work; also the cache key material."""

    entity: str
    columns: List[str] = Field(min_length=1)
    filters: Dict[str, Any] = {}
    limit: int = Field(ge=1, le=MAX_LIMIT)
    offset: int = Field(default=0, ge=0)
    order_by: Optional[str] = None
    ascending: bool = True
    summary_only: bool = False

    model_config = ConfigDict(frozen=True)


class ReportResult(BaseModel):
    rows: List[Dict[str, Any]] = []
    columns: List[str] = []
    total_count: int = 0
    limit: Optional[int] = None
    offset: Optional[int] = None
    has_more: bool = False
    summary_only: bool = False


class RunDefinitionRequest(BaseModel):
    """Paging and ordering overrides when running a saved definition."""

    offset: int = 0
    order_by: Optional[str] = None
    ascending: bool = True
    summary_only: bool = False


# ===== DEFINITION SCHEMAS =====


class ReportDefinitionCreate(BaseModel):
    """Definition as submitted for saving; an existing id is overwritten."""

    id: Optional[str] = None
    name: str
    entity: str
    columns: List[str] = []
    filters: Dict[str, Any] = {}
    limit: int = DEFAULT_LIMIT

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Report name cannot be empty")
        if len(v.strip()) > 255:
            raise ValueError("Report name cannot exceed 255 characters")
        return v.strip()


class ReportDefinition(BaseModel):
    """Persisted definition. Missing fields in older records load as empty/zero."""

    id: str
    name: str = ""
    entity: str = ""
    columns: List[str] = []
    filters: Dict[str, Any] = {}
    limit: int = 0
    saved_at: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @field_validator("name", "entity", "columns", "filters", "limit", mode="before")
    @classmethod
    def null_as_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return v


# ===== CACHE SCHEMAS =====


class CacheStatus(BaseModel):
    entries: int
    in_flight: int
    ttl_seconds: float
