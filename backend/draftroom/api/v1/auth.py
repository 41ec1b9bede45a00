"""Authentication endpoints — register, login, current user, password change."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from draftroom.api.deps import get_app_settings, get_principal
from draftroom.config import Settings
from draftroom.database import get_db
from draftroom.schemas.common import MessageResponse
from draftroom.schemas.user import (
    ChangePasswordRequest,
    LoginRequest,
    PrincipalResponse,
    RegisterRequest,
    TokenResponse,
)
from draftroom.services.auth_service import AuthService, Principal

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=PrincipalResponse, status_code=201)
def register(
    payload: RegisterRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = AuthService(db, settings).register(payload.email, payload.username, payload.password)
    return PrincipalResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
def login(
    payload: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    service = AuthService(db, settings)
    user = service.authenticate(payload.identifier.strip(), payload.password)
    return TokenResponse(
        access_token=service.issue_token(user),
        expires_in=settings.session_ttl_seconds,
        user=PrincipalResponse.model_validate(user),
    )


@router.get("/me", response_model=PrincipalResponse)
def me(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    user = AuthService(db, settings).get_user(principal.id)
    return PrincipalResponse.model_validate(user)


@router.post("/change-password", response_model=MessageResponse)
def change_password(
    payload: ChangePasswordRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
):
    AuthService(db, settings).change_password(principal.id, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed")
