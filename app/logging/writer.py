# app/logging/writer.py
"""Builds and persists request ``Log`` rows for the middleware and exception handlers."""

import json
import logging
import platform
import socket
from typing import Optional

from fastapi import Request

from app.core.config import APPLICATION_ID
from app.core.database import SessionLocal
from app.crm.models import utc_now
from app.logging.models import Log

logger = logging.getLogger(__name__)

REDACTED_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})
MAX_BODY_CHARS = 10000

try:
    HOSTNAME = socket.gethostname() or platform.node() or "unknown_host"
except OSError:
    HOSTNAME = "unknown_host"


def safe_json_dumps(obj) -> str:
    return json.dumps(obj, indent=2, default=str)


def redact_headers(headers) -> str:
    """Request headers as JSON with credentials masked."""
    cleaned = {
        name: ("[REDACTED]" if name.lower() in REDACTED_HEADERS else value)
        for name, value in dict(headers).items()
    }
    return json.dumps(cleaned)


def truncate(text: Optional[str], limit: int = MAX_BODY_CHARS) -> Optional[str]:
    if text is None or len(text) <= limit:
        return text
    return text[:limit] + f"... [truncated {len(text) - limit} chars]"


def get_request_body_safely(request: Request) -> str:
    """Body captured by the logging middleware, if it ran for this request."""
    return getattr(request.state, "body", None) or ""


def session_factory_for(request: Request):
    """Session factory configured on the app, falling back to the default engine."""
    return getattr(request.app.state, "log_session_factory", None) or SessionLocal


def write_log(
    request: Request,
    status_code: int,
    response_body: Optional[str],
    processing_time: Optional[float] = None,
    request_body: Optional[str] = None,
    session_factory=None,
    error_type: Optional[str] = None,
) -> None:
    """Persist one request log row. A failure here is logged, never raised."""
    session_factory = session_factory or session_factory_for(request)
    try:
        with session_factory() as session:
            session.add(
                Log(
                    timestamp=utc_now(),
                    method=request.method,
                    path=str(request.url.path),
                    status_code=status_code,
                    client_ip=request.client.host if request.client else None,
                    request_headers=redact_headers(request.headers),
                    request_body=truncate(request_body if request_body is not None else get_request_body_safely(request)),
                    response_body=truncate(response_body),
                    processing_time=processing_time,
                    user_agent=request.headers.get("user-agent"),
                    principal_id=request.headers.get("x-user-id"),
                    organization_id=request.headers.get("x-organization-id"),
                    error_type=error_type,
                    hostname=HOSTNAME,
                    application_id=APPLICATION_ID,
                )
            )
            session.commit()
    except Exception:
        logger.exception("Error writing request log for %s %s", request.method, request.url.path)
