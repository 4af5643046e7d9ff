# opsdesk/reporting/models.py - Local key/value storage for report builder state

from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime
from opsdesk.core.database import Base


class AppSetting(Base):
    """One JSON document per storage key (e.g. the saved report definitions list)."""

    __tablename__ = "app_settings"

    key = Column(String, primary_key=True, index=True)
    value = Column(JSON, nullable=True)
    updated_date = Column(DateTime, default=datetime.now, onupdate=datetime.now)
