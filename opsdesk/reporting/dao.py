"""Data access for saved report definitions.

All definitions live in a single ordered list stored under one key of the
local ``app_settings`` table.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from pydantic import ValidationError
from sqlalchemy.orm import Session

from opsdesk.reporting.models import AppSetting
from opsdesk.reporting.schemas import ReportDefinition, ReportDefinitionCreate

logger = logging.getLogger(__name__)

STORAGE_KEY = "custom_reports_v1"


class DefinitionDAO:
    """Durable store for report definitions."""

    def __init__(self, db_session: Session, storage_key: str = STORAGE_KEY):
        self.db = db_session
        self.storage_key = storage_key

    async def get_all(self) -> List[ReportDefinition]:
        """All saved definitions, in save order."""
        return self._load()

    async def get_by_id(self, definition_id: str) -> Optional[ReportDefinition]:
        for definition in self._load():
            if definition.id == definition_id:
                return definition
        return None

    async def save(self, definition: ReportDefinitionCreate) -> ReportDefinition:
        """Upsert by id, assigning a new id when none is given.

        Only the record with the same id is replaced; stored records that no
        longer parse are written back untouched.
        """
        records = self._records()
        to_save = ReportDefinition(
            **definition.model_dump(exclude={"id"}),
            id=definition.id or str(uuid.uuid4()),
            saved_at=datetime.now(timezone.utc).isoformat(),
        )
        value = to_save.model_dump(mode="json")

        for index, record in enumerate(records):
            if _record_id(record) == to_save.id:
                records[index] = value
                break
        else:
            records.append(value)

        self._store(records)
        return to_save

    async def delete(self, definition_id: str) -> bool:
        records = self._records()
        remaining = [r for r in records if _record_id(r) != definition_id]
        if len(remaining) == len(records):
            return False
        self._store(remaining)
        return True

    def _records(self) -> List[Any]:
        """Raw stored records, in save order."""
        setting = self.db.get(AppSetting, self.storage_key)
        if setting is None or not setting.value:
            return []
        if not isinstance(setting.value, list):
            logger.warning("Ignoring unreadable saved reports under %s", self.storage_key)
            return []
        return list(setting.value)

    def _load(self) -> List[ReportDefinition]:
        definitions = []
        for record in self._records():
            try:
                definitions.append(ReportDefinition.model_validate(record))
            except ValidationError:
                logger.warning("Skipping malformed saved report: %r", record)
        return definitions

    def _store(self, records: List[Any]) -> None:
        setting = self.db.get(AppSetting, self.storage_key)
        if setting is None:
            self.db.add(AppSetting(key=self.storage_key, value=records))
        else:
            setting.value = records
        self.db.commit()


def _record_id(record: Any) -> Optional[str]:
    return record.get("id") if isinstance(record, dict) else None
