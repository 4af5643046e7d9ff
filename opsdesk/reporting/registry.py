"""Entity registry for ad-hoc report building."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from opsdesk.reporting.errors import DisallowedEntityError, RegistryError


class ColumnDataType(str, Enum):
    """Value types a report column can hold."""
    NUMBER = "number"
    TEXT = "text"
    DATE = "date"


@dataclass(frozen=True)
class ColumnConfig:
    """A reportable column.

    Virtual columns are not stored on the entity itself; ``source`` names the
    related lookup that populates them.
    """
    label: str
    type: ColumnDataType = ColumnDataType.TEXT
    is_virtual: bool = False
    source: Optional[str] = None


@dataclass(frozen=True)
class RelatedLookup:
    """Single-level lookup into a related entity through a foreign key."""
    foreign_key: str
    selected_field: str


@dataclass(frozen=True)
class EntityConfig:
    """Static description of a reportable entity."""
    key: str
    storage_location: str
    label: str
    columns: Dict[str, ColumnConfig]
    default_columns: Tuple[str, ...]
    filterable: Tuple[str, ...] = ()
    advanced_filters: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    related_lookups: Dict[str, RelatedLookup] = field(default_factory=dict)

    def is_virtual(self, column: str) -> bool:
        col = self.columns.get(column)
        return bool(col and col.is_virtual)

    def is_filterable(self, column: str) -> bool:
        return column in self.filterable

    def physical_columns(self, columns: List[str]) -> List[str]:
        return [c for c in columns if c in self.columns and not self.columns[c].is_virtual]

    def virtual_columns(self, columns: List[str]) -> List[str]:
        return [c for c in columns if self.is_virtual(c)]


class EntityRegistry:
    """Ordered catalog of reportable entities."""

    def __init__(self):
        self._entities: Dict[str, EntityConfig] = {}

    def register(self, config: EntityConfig) -> None:
        """Register an entity after checking its declaration is self-consistent."""
        self._validate(config)
        self._entities[config.key] = config

    def list_entities(self) -> List[EntityConfig]:
        """All entities in declaration order."""
        return list(self._entities.values())

    def get_entity_config(self, key: str) -> Optional[EntityConfig]:
        return self._entities.get(key)

    def require_entity(self, key: str) -> EntityConfig:
        """Get an entity or raise ``DisallowedEntityError``."""
        config = self._entities.get(key)
        if config is None:
            raise DisallowedEntityError(key)
        return config

    def check_lookups(self) -> None:
        """Verify every related lookup targets a registered entity.

        Run once after all entities are registered, since lookups may point
        forward in declaration order.
        """
        for config in self._entities.values():
            for related_key in config.related_lookups:
                if related_key not in self._entities:
                    raise RegistryError(
                        f"{config.key}: lookup targets unknown entity {related_key!r}"
                    )

    def _validate(self, config: EntityConfig) -> None:
        missing = [c for c in config.default_columns if c not in config.columns]
        if missing:
            raise RegistryError(f"{config.key}: unknown default columns {missing}")

        missing = [c for c in config.filterable if c not in config.columns]
        if missing:
            raise RegistryError(f"{config.key}: unknown filterable columns {missing}")

        for name, column in config.columns.items():
            if column.is_virtual and column.source not in config.related_lookups:
                raise RegistryError(
                    f"{config.key}.{name}: virtual column without a known lookup source"
                )

        for related_key, lookup in config.related_lookups.items():
            fk = config.columns.get(lookup.foreign_key)
            if fk is None or fk.is_virtual:
                raise RegistryError(
                    f"{config.key}: lookup {related_key!r} uses a non-physical foreign key"
                )


# Entity Registry
ENTITY_REGISTRY = EntityRegistry()

N = ColumnDataType.NUMBER
T = ColumnDataType.TEXT
D = ColumnDataType.DATE

ENTITY_REGISTRY.register(EntityConfig(
    key="orders",
    storage_location="orders",
    label="Orders",
    default_columns=("id", "client_name", "status", "total", "created_at"),
    columns={
        "id": ColumnConfig("ID", N),
        "client_id": ColumnConfig("Client ID", N),
        "client_name": ColumnConfig("Client", T, is_virtual=True, source="clients"),
        "status": ColumnConfig("Status", T),
        "total": ColumnConfig("Total", N),
        "created_at": ColumnConfig("Created", D),
        "updated_at": ColumnConfig("Updated", D),
    },
    filterable=("status", "client_id", "created_at", "total"),
    advanced_filters={
        "total": ("gt", "gte", "lt", "lte", "between"),
        "created_at": ("between", "from", "to"),
        "status": ("eq", "neq", "in", "contains"),
    },
    related_lookups={
        "clients": RelatedLookup(foreign_key="client_id", selected_field="name"),
    },
))

ENTITY_REGISTRY.register(EntityConfig(
    key="clients",
    storage_location="clients",
    label="Clients",
    default_columns=("id", "name", "email", "phone", "customer_type", "created_at"),
    columns={
        "id": ColumnConfig("ID", N),
        "name": ColumnConfig("Name", T),
        "email": ColumnConfig("Email", T),
        "phone": ColumnConfig("Phone", T),
        "customer_type": ColumnConfig("Customer Type", T),
        "created_at": ColumnConfig("Created", D),
    },
    filterable=("customer_type", "created_at"),
))

ENTITY_REGISTRY.register(EntityConfig(
    key="products",
    storage_location="products",
    label="Products",
    default_columns=("id", "name", "category", "price", "created_at"),
    columns={
        "id": ColumnConfig("ID", N),
        "name": ColumnConfig("Name", T),
        "category": ColumnConfig("Category", T),
        "price": ColumnConfig("Price", N),
        "cost": ColumnConfig("Cost", N),
        "created_at": ColumnConfig("Created", D),
    },
    filterable=("category", "created_at"),
))

ENTITY_REGISTRY.register(EntityConfig(
    key="inventory",
    storage_location="inventory",
    label="Inventory",
    default_columns=("id", "product_name", "quantity", "min_stock", "updated_at"),
    columns={
        "id": ColumnConfig("ID", N),
        "product_id": ColumnConfig("Product ID", N),
        "product_name": ColumnConfig("Product", T, is_virtual=True, source="products"),
        "quantity": ColumnConfig("Quantity", N),
        "min_stock": ColumnConfig("Minimum Stock", N),
        "updated_at": ColumnConfig("Updated", D),
    },
    filterable=("updated_at", "quantity", "min_stock"),
    advanced_filters={
        "quantity": ("gt", "gte", "lt", "lte", "between"),
        "updated_at": ("between", "from", "to"),
    },
    related_lookups={
        "products": RelatedLookup(foreign_key="product_id", selected_field="name"),
    },
))

ENTITY_REGISTRY.check_lookups()

del N, T, D
