"""Database models for the logging module."""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, Float
from opsdesk.core.database import Base


class RequestLog(Base):
    """One API request with its outcome and timing."""

    __tablename__ = "request_log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=datetime.now, index=True)
    method = Column(String, nullable=False)
    path = Column(String, nullable=False)
    query_string = Column(String, nullable=True)
    status_code = Column(Integer, nullable=False)
    client_ip = Column(String, nullable=True)
    request_body = Column(String, nullable=True)
    response_body = Column(String, nullable=True)
    error_type = Column(String, nullable=True)  # exception class name for failed requests
    processing_time = Column(Float, nullable=True)  # milliseconds
    user_agent = Column(String, nullable=True)
    username = Column(String, nullable=True)
    hostname = Column(String, nullable=True)
    application_id = Column(String, nullable=True)
