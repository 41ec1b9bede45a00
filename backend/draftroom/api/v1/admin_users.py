"""Admin user directory endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from draftroom.api.deps import get_app_settings, require_admin
from draftroom.config import Settings
from draftroom.database import get_db
from draftroom.models import User
from draftroom.schemas.common import MessageResponse, PaginatedResponse
from draftroom.schemas.user import UserCreate, UserResponse, UserUpdate
from draftroom.services.auth_service import Principal
from draftroom.services.user_service import UserDirectory

router = APIRouter()


def _to_response(user: User, project_count: int) -> UserResponse:
    response = UserResponse.model_validate(user)
    response.project_count = project_count
    return response


@router.get("", response_model=PaginatedResponse[UserResponse])
def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, max_length=255),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    _admin: Principal = Depends(require_admin),
):
    result = UserDirectory(db, settings).list_users(page, page_size, search.strip() if search else None)
    return PaginatedResponse(
        items=[_to_response(user, count) for user, count in result.users],
        total=result.total,
        page=page,
        page_size=page_size,
        total_pages=(result.total + page_size - 1) // page_size,
    )


@router.post("", response_model=UserResponse, status_code=201)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    _admin: Principal = Depends(require_admin),
):
    user = UserDirectory(db, settings).create_user(
        payload.email, payload.username, payload.password, payload.role.value,
    )
    return _to_response(user, 0)


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    _admin: Principal = Depends(require_admin),
):
    user, count = UserDirectory(db, settings).get_user(user_id)
    return _to_response(user, count)


@router.patch("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    payload: UserUpdate,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    _admin: Principal = Depends(require_admin),
):
    changes = payload.model_dump(exclude_unset=True, mode="json")
    directory = UserDirectory(db, settings)
    directory.update_user(user_id, changes)
    user, count = directory.get_user(user_id)
    return _to_response(user, count)


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    admin: Principal = Depends(require_admin),
):
    UserDirectory(db, settings).delete_user(user_id, acting=admin)
    return MessageResponse(message="User deleted")
