"""Shared FastAPI dependencies: settings, the caller's principal, role gates."""
from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from draftroom.config import Settings
from draftroom.database import get_db
from draftroom.errors import ForbiddenError
from draftroom.services.auth_service import AuthService, Principal

_bearer = HTTPBearer(auto_error=False)


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> Principal:
    """Resolve the bearer token to a principal; 401 when absent or invalid."""
    token = credentials.credentials if credentials else None
    return AuthService(db, settings).resolve_principal(token)


def require_active_principal(principal: Principal = Depends(get_principal)) -> Principal:
    """Principal allowed to work on projects (no pending forced password change)."""
    if principal.must_change_password:
        raise ForbiddenError("You must change your password before continuing")
    return principal


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    if not principal.is_admin:
        raise ForbiddenError("Administrator access required")
    return principal
