"""Request log table written by the logging middleware and exception handlers."""

from sqlalchemy import Column, Integer, String, DateTime, Float, Text
from app.core.database import Base
from app.crm.models import utc_now


class Log(Base):
    """One row per API request, with the principal that made it."""

    __tablename__ = "request_log"

    id = Column(Integer, primary_key=True, index=True)
    timestamp = Column(DateTime, default=utc_now, index=True)
    method = Column(String(10), nullable=False)
    path = Column(String(500), nullable=False)
    status_code = Column(Integer, nullable=False)
    processing_time = Column(Float, nullable=True)  # milliseconds

    # Caller
    principal_id = Column(String(64), nullable=True, index=True)
    organization_id = Column(String(64), nullable=True)
    client_ip = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)

    # Payloads, credentials redacted and bodies truncated
    request_headers = Column(Text, nullable=True)
    request_body = Column(Text, nullable=True)
    response_body = Column(Text, nullable=True)
    error_type = Column(String(100), nullable=True)

    hostname = Column(String(255), nullable=True)
    application_id = Column(String(100), nullable=True)
