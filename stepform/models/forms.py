"""Pydantic models for form request and response bodies."""

from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from stepform.logic.catalog import is_answer_key


class FormRequest(BaseModel):
    uuid: Optional[str] = None
    data: Dict[str, str] = Field(default_factory=dict)

    @field_validator("uuid")
    @classmethod
    def uuid_must_be_non_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("uuid must be omitted or non-empty")
        return v

    @field_validator("data")
    @classmethod
    def keys_must_be_answer_keys(cls, v: Dict[str, str]) -> Dict[str, str]:
        bad = sorted(k for k in v if not is_answer_key(k))
        if bad:
            raise ValueError(f"data keys must look like '<step>-<question>': {bad}")
        return v


class FormResponse(BaseModel):
    uuid: str
    created: bool


class FormData(BaseModel):
    uuid: str
    data: Dict[str, str]


class FormListItem(BaseModel):
    uuid: str
    data: Dict[str, str]
    updated_at: str


class DeleteResponse(BaseModel):
    message: str


class CatalogQuestion(BaseModel):
    key: str
    prompt: str
    role: Optional[str] = None


class CatalogStep(BaseModel):
    name: str
    questions: List[CatalogQuestion]


class CatalogView(BaseModel):
    steps: List[CatalogStep]
    total_questions: int


__all__ = [
    "FormRequest",
    "FormResponse",
    "FormData",
    "FormListItem",
    "DeleteResponse",
    "CatalogQuestion",
    "CatalogStep",
    "CatalogView",
]
