"""FastAPI application entry point for the CRM workboards service."""

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import ResponseValidationError, RequestValidationError

from app.access.exceptions import AccessControlError
from app.core.database import init_db
from app.core.router import register_routes
from app.logging.middleware import LoggingMiddleware
from app.logging.exception_handlers import (
    access_control_exception_handler,
    response_validation_exception_handler,
    request_validation_exception_handler,
    general_exception_handler,
    http_exception_handler,
)

logger = logging.getLogger(__name__)


def create_app(initialize_database: bool = True) -> FastAPI:
    app = FastAPI(
        title="CRM Workboards",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    if initialize_database:
        init_db()

    # Request log writer; tests point this at their own engine
    app.state.log_session_factory = None

    # Add request logger middleware
    app.add_middleware(LoggingMiddleware)

    # Response validation errors are not seen by the middleware
    app.add_exception_handler(ResponseValidationError, response_validation_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(AccessControlError, access_control_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # In production, replace with specific origins
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app
