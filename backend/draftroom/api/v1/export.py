"""Export endpoint — download a project manuscript as plain text or docx."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from draftroom.api.deps import get_app_settings, require_active_principal
from draftroom.config import Settings
from draftroom.database import get_db
from draftroom.schemas.common import ExportFormat
from draftroom.services.auth_service import Principal
from draftroom.services.export_service import ProjectForExport, export_project
from draftroom.services.project_service import ProjectService

router = APIRouter()


@router.get("/projects/{project_id}/export")
def export_manuscript(
    project_id: str,
    format: ExportFormat = Query(ExportFormat.TXT),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    principal: Principal = Depends(require_active_principal),
):
    """Render the project with its chapters in reading order and stream it back."""
    project = ProjectService(db, principal).load_for_export(project_id)
    payload = export_project(
        ProjectForExport.from_model(project),
        format.value,
        max_filename_length=settings.EXPORT_FILENAME_MAX_LENGTH,
    )
    return Response(
        content=payload.data,
        media_type=payload.content_type,
        headers={
            "Content-Disposition": payload.content_disposition,
            "Cache-Control": "no-store",
            "Pragma": "no-cache",
        },
    )
