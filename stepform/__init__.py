"""Stepwise questionnaire service.

The session engine lives in `stepform/logic/`; `create_app` builds the FastAPI
storage service that persists sessions. Route handlers live in
`stepform/routes/`.
"""

from __future__ import annotations

from stepform.main import create_app

__all__ = ["create_app"]
