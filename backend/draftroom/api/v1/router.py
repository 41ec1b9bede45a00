"""Aggregate API v1 router — mounts all sub-routers."""
from fastapi import APIRouter
from draftroom.api.v1 import admin_users, auth, chapters, export, projects

router = APIRouter(prefix="/api/v1")

router.include_router(auth.router, prefix="/auth", tags=["Auth"])
router.include_router(admin_users.router, prefix="/admin/users", tags=["Admin"])
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(chapters.router, tags=["Chapters"])
router.include_router(export.router, tags=["Export"])
