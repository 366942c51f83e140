"""Saved-form endpoints.

``GET /forms``, ``GET /form/{uuid}``, ``POST /form`` and
``DELETE /form/{uuid}``. Writes fully overwrite a form's answer mapping.
"""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, HTTPException

from stepform.logic.errors import TransportFailure
from stepform.logic.events import FORM_DELETED, FORM_SAVED, publish
from stepform.logic.repository_forms import delete_form, get_form, list_forms, upsert_form
from stepform.models.forms import DeleteResponse, FormData, FormListItem, FormRequest, FormResponse

router = APIRouter()
logger = logging.getLogger(__name__)


def _not_found(form_id: str) -> HTTPException:
    return HTTPException(
        status_code=404,
        detail={"title": "Form not found", "status": 404, "detail": f"no form with uuid {form_id}"},
    )


@router.get(
    "/forms",
    summary="List saved forms, most recently updated first",
    operation_id="listForms",
    response_model=List[FormListItem],
)
def get_forms():
    forms = list_forms()
    logger.info("forms_listed count=%d", len(forms))
    # Rows holding non-string answers are still listed, with those values dropped
    return [
        FormListItem(
            uuid=str(f["uuid"]),
            data={str(k): v for k, v in dict(f["data"]).items() if isinstance(v, str)},
            updated_at=str(f["updated_at"]),
        )
        for f in forms
    ]


@router.post(
    "/form",
    summary="Create a form (no uuid) or overwrite an existing one",
    operation_id="saveForm",
    response_model=FormResponse,
)
def save_form(payload: FormRequest):
    form_id, created = upsert_form(payload.uuid, payload.data)
    publish(FORM_SAVED, {"uuid": form_id, "created": created, "answers": len(payload.data)})
    return FormResponse(uuid=form_id, created=created)


@router.get(
    "/form/{form_id}",
    summary="Fetch one saved form",
    operation_id="getForm",
    response_model=FormData,
)
def get_form_by_id(form_id: str):
    try:
        data = get_form(form_id)
    except TransportFailure as e:
        raise HTTPException(
            status_code=500,
            detail={"title": "Form data unreadable", "status": 500, "detail": str(e)},
        ) from e
    if data is None:
        raise _not_found(form_id)
    return FormData(uuid=form_id, data={str(k): v for k, v in data.items() if isinstance(v, str)})


@router.delete(
    "/form/{form_id}",
    summary="Delete a saved form",
    operation_id="deleteForm",
    response_model=DeleteResponse,
)
def delete_form_by_id(form_id: str):
    if not delete_form(form_id):
        logger.info("form_delete_not_found uuid=%s", form_id)
        raise _not_found(form_id)
    publish(FORM_DELETED, {"uuid": form_id})
    return DeleteResponse(message="Form deleted successfully")


__all__ = ["router", "get_forms", "save_form", "get_form_by_id", "delete_form_by_id"]
