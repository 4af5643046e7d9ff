"""Query builder over the business data store.

Exposes the small capability surface the report engine needs: column
projection with single-level related lookups, conjunctive predicates,
ordering, an offset/limit window and exact counts. Statements are built with
SQLAlchemy Core and executed on an ``AsyncEngine``.

Related lookups come back nested, one dict per relation::

    {"id": 7, "total": 250.0, "clients": {"name": "Acme"}}
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, NamedTuple, Optional

from sqlalchemy import Date, DateTime, MetaData, Table, func, select
from sqlalchemy.exc import NoSuchColumnError, NoSuchTableError
from sqlalchemy.ext.asyncio import AsyncEngine

from opsdesk.core.database import DataBase

logger = logging.getLogger(__name__)

# Separator for labelled lookup columns, e.g. "clients__name"
_LOOKUP_SEP = "__"


class Lookup(NamedTuple):
    """A related-table field fetched alongside the main row."""
    table: str
    foreign_key: str
    field: str
    key: str = "id"


class QueryResponse(NamedTuple):
    rows: List[Dict[str, Any]]
    count: Optional[int]


class TableQuery:
    """Chainable query against a single table."""

    def __init__(self, store: "DataStore", table: Table):
        self._store = store
        self._table = table
        self._columns: List[str] = []
        self._lookups: Dict[str, Lookup] = {}
        self._with_count = False
        self._count_only = False
        self._conditions: List[Any] = []
        self._order = None
        self._window = None

    # ===== PROJECTION =====

    def select(self, columns: List[str], lookups: Optional[Dict[str, Lookup]] = None,
               count: bool = False) -> "TableQuery":
        """Select columns, optional related lookups, and optionally an exact count."""
        self._columns = list(columns)
        self._lookups = dict(lookups or {})
        self._with_count = count
        return self

    @property
    def lookups(self) -> Dict[str, Lookup]:
        return dict(self._lookups)

    def count_only(self) -> "TableQuery":
        """Return only the exact number of matching rows, no row payload."""
        self._count_only = True
        return self

    # ===== PREDICATES =====

    def eq(self, column: str, value: Any) -> "TableQuery":
        return self._where(column, lambda c, v: c == v, value)

    def neq(self, column: str, value: Any) -> "TableQuery":
        return self._where(column, lambda c, v: c != v, value)

    def gt(self, column: str, value: Any) -> "TableQuery":
        return self._where(column, lambda c, v: c > v, value)

    def gte(self, column: str, value: Any) -> "TableQuery":
        return self._where(column, lambda c, v: c >= v, value)

    def lt(self, column: str, value: Any) -> "TableQuery":
        return self._where(column, lambda c, v: c < v, value)

    def lte(self, column: str, value: Any) -> "TableQuery":
        return self._where(column, lambda c, v: c <= v, value)

    def ilike(self, column: str, pattern: str) -> "TableQuery":
        col = self._column(column)
        self._conditions.append(col.ilike(pattern))
        return self

    def in_(self, column: str, values: List[Any]) -> "TableQuery":
        col = self._column(column)
        try:
            coerced = [_coerce(col, v) for v in values]
        except ValueError:
            logger.warning("Dropping in_ filter on %s: unparsable value in %r", column, values)
            return self
        self._conditions.append(col.in_(coerced))
        return self

    # ===== ORDERING AND WINDOW =====

    def order(self, column: str, ascending: bool = True) -> "TableQuery":
        col = self._column(column)
        self._order = col.asc() if ascending else col.desc()
        return self

    def range(self, start: int, end: int) -> "TableQuery":
        """Inclusive row window, ``range(0, 9)`` returns the first ten rows."""
        self._window = (start, max(0, end - start + 1))
        return self

    # ===== EXECUTION =====

    async def execute(self) -> QueryResponse:
        count_stmt = select(func.count()).select_from(self._table).where(*self._conditions)

        async with self._store.engine.connect() as conn:
            if self._count_only:
                count = (await conn.execute(count_stmt)).scalar_one()
                return QueryResponse([], count)

            count = None
            if self._with_count:
                count = (await conn.execute(count_stmt)).scalar_one()

            result = await conn.execute(self._build_select())
            rows = [self._nest(dict(row._mapping)) for row in result]

        return QueryResponse(rows, count)

    # ===== HELPERS =====

    def _build_select(self):
        table = self._table
        columns = [self._column(c) for c in (self._columns or ["id"])]
        from_clause = table

        for name, lookup in self._lookups.items():
            related = self._store.table(lookup.table).alias(f"lookup_{name}")
            if lookup.field not in related.c or lookup.key not in related.c:
                raise NoSuchColumnError(f"{lookup.table}.{lookup.field}")
            from_clause = from_clause.outerjoin(
                related, self._column(lookup.foreign_key) == related.c[lookup.key]
            )
            columns.append(related.c[lookup.field].label(f"{name}{_LOOKUP_SEP}{lookup.field}"))

        stmt = select(*columns).select_from(from_clause).where(*self._conditions)
        if self._order is not None:
            stmt = stmt.order_by(self._order)
        if self._window is not None:
            offset, limit = self._window
            stmt = stmt.offset(offset).limit(limit)
        return stmt

    def _nest(self, row: Dict[str, Any]) -> Dict[str, Any]:
        for name, lookup in self._lookups.items():
            value = row.pop(f"{name}{_LOOKUP_SEP}{lookup.field}", None)
            row[name] = None if value is None else {lookup.field: value}
        return row

    def _column(self, name: str):
        if name not in self._table.c:
            raise NoSuchColumnError(f"{self._table.name}.{name}")
        return self._table.c[name]

    def _where(self, column: str, make, value: Any) -> "TableQuery":
        col = self._column(column)
        try:
            coerced = _coerce(col, value)
        except ValueError:
            logger.warning("Dropping filter on %s: unparsable value %r", column, value)
            return self
        self._conditions.append(make(col, coerced))
        return self


def _coerce(column, value: Any) -> Any:
    """Parse ISO date strings for date/datetime columns.

    Raises ``ValueError`` for strings that are not ISO dates. Aware datetimes
    (including a trailing ``Z``) are converted to naive UTC, as stored.
    """
    if not isinstance(value, str):
        return value
    if isinstance(column.type, DateTime):
        if value.endswith(("Z", "z")):
            value = value[:-1] + "+00:00"
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed
    if isinstance(column.type, Date):
        return date.fromisoformat(value)
    return value


class DataStore:
    """Entry point to the business data store."""

    def __init__(self, engine: AsyncEngine, metadata: MetaData = None):
        self.engine = engine
        self.metadata = metadata if metadata is not None else DataBase.metadata

    def table(self, name: str) -> Table:
        if name not in self.metadata.tables:
            # Make sure the business models are registered
            from opsdesk.business import models  # noqa: F401
        if name not in self.metadata.tables:
            raise NoSuchTableError(name)
        return self.metadata.tables[name]

    def from_(self, storage_location: str) -> TableQuery:
        """Start a query against a table."""
        return TableQuery(self, self.table(storage_location))
