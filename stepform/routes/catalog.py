"""Read-only question catalog endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from stepform.logic.catalog import DEFAULT_CATALOG
from stepform.models.forms import CatalogView

router = APIRouter()


@router.get(
    "/catalog",
    summary="Steps and question prompts, with their answer keys",
    operation_id="getCatalog",
    response_model=CatalogView,
)
def get_catalog():
    return CatalogView.model_validate(DEFAULT_CATALOG.to_dict())


__all__ = ["router", "get_catalog"]
