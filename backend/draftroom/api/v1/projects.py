"""Project CRUD endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from draftroom.api.deps import require_active_principal
from draftroom.database import get_db
from draftroom.models import Project
from draftroom.schemas.common import MessageResponse
from draftroom.schemas.project import ProjectCreate, ProjectListItem, ProjectResponse, ProjectUpdate
from draftroom.services.auth_service import Principal
from draftroom.services.project_service import ProjectService

router = APIRouter()


def _enrich_project(project: Project, service: ProjectService) -> ProjectResponse:
    response = ProjectResponse.model_validate(project)
    response.chapter_count = service.chapter_counts([project.id]).get(project.id, 0)
    return response


@router.post("", response_model=ProjectResponse, status_code=201)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    service = ProjectService(db, principal)
    project = service.create_project(payload)
    return _enrich_project(project, service)


@router.get("", response_model=list[ProjectListItem])
def list_projects(
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    service = ProjectService(db, principal)
    projects = service.list_projects()
    counts = service.chapter_counts([p.id for p in projects])
    items = []
    for p in projects:
        item = ProjectListItem.model_validate(p)
        item.chapter_count = counts.get(p.id, 0)
        items.append(item)
    return items


@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    service = ProjectService(db, principal)
    return _enrich_project(service.get_project(project_id), service)


@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: str,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    service = ProjectService(db, principal)
    project = service.update_project(project_id, payload)
    return _enrich_project(project, service)


@router.delete("/{project_id}", response_model=MessageResponse)
def delete_project(
    project_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_active_principal),
):
    ProjectService(db, principal).delete_project(project_id)
    return MessageResponse(message="Project deleted")
