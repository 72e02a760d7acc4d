# app/core/dependencies.py
"""Shared FastAPI dependencies: database session and requesting principal."""

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from app.access.policy import Principal
from app.core.database import get_db

# Core database dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_principal(
    x_user_id: Annotated[Optional[str], Header()] = None,
    x_user_role: Annotated[Optional[str], Header()] = None,
    x_organization_id: Annotated[Optional[str], Header()] = None,
) -> Principal:
    """Principal supplied by the authentication layer in request headers."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return Principal(
        id=x_user_id,
        role=(x_user_role or "rep").lower(),
        organization_id=x_organization_id or None,
    )


PrincipalDep = Annotated[Principal, Depends(get_principal)]
