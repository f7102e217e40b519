"""API v1 root router."""

from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.projects import router as projects_router


router = APIRouter()
router.include_router(projects_router, prefix="/projects", tags=["projects"])
