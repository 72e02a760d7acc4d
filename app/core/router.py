# app/core/router.py
"""
Module for registering routes in the FastAPI application.
"""

from fastapi import FastAPI

from app.workboards.router import router as workboard_router
from app.crm.router import router as crm_router


def register_routes(app: FastAPI) -> None:
    """
    Registers all the routes for the FastAPI application.

    Args:
        app (FastAPI): The FastAPI application instance.
    """
    app.include_router(workboard_router, prefix="/api")
    # Must stay last: /api/{collection} would shadow any router included after it
    app.include_router(crm_router, prefix="/api")
