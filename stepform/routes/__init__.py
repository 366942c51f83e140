"""APIRouter registration for the form service."""

from __future__ import annotations

from fastapi import APIRouter

from stepform.routes.catalog import router as catalog_router
from stepform.routes.forms import router as forms_router

api_router = APIRouter()
api_router.include_router(forms_router, tags=["Forms"])
api_router.include_router(catalog_router, tags=["Catalog"])

__all__ = ["api_router"]
