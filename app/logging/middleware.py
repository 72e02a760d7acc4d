import time
import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
from starlette.background import BackgroundTask

from app.core.config import APPLICATION_ID
from app.logging.writer import HOSTNAME, session_factory_for, write_log

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """Records every API request, its response and timing in the ``request_log`` table."""

    excluded_paths = ("/api/docs", "/api/redoc", "/api/openapi.json")

    def __init__(self, app: ASGIApp):
        super().__init__(app)
        logger.info("Logging middleware initialized on host %s, App ID: %s", HOSTNAME, APPLICATION_ID)

    async def dispatch(self, request: Request, call_next: Callable):
        if request.url.path.startswith(self.excluded_paths):
            return await call_next(request)

        # --- Start timer ---
        start_time = time.time()

        # --- Read request body ---
        body_bytes = await request.body()
        request_body = body_bytes.decode("utf-8", errors="ignore")
        # Exception handlers read the body from here
        request.state.body = request_body

        # Reconstruct stream
        async def receive() -> dict:
            return {"type": "http.request", "body": body_bytes}

        request = Request(request.scope, receive=receive)

        response = await call_next(request)

        duration_ms = (time.time() - start_time) * 1000
        status_code = response.status_code
        content_type = response.headers.get("content-type", "")

        response_body = b""
        if isinstance(response, Response) and hasattr(response, "body"):
            response_body = response.body
        elif hasattr(response, "body_iterator"):
            original_iterator = response.body_iterator
            chunks = []

            async def buffer_iterator():
                nonlocal response_body
                async for chunk in original_iterator:
                    chunks.append(chunk)
                    yield chunk
                response_body = b"".join(chunks)

            response.body_iterator = buffer_iterator()

        session_factory = session_factory_for(request)

        def log_to_db():
            if "spreadsheetml" in content_type:
                body_to_log = "[Spreadsheet export not logged]"
            elif response_body:
                body_to_log = response_body.decode("utf-8", errors="ignore")
            else:
                body_to_log = "[Response body not available]"

            write_log(
                request,
                status_code=status_code,
                response_body=body_to_log,
                processing_time=duration_ms,
                request_body=request_body,
                session_factory=session_factory,
            )

        response.background = getattr(response, "background", None) or BackgroundTask(log_to_db)
        return response
