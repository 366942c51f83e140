"""Form record data access.

Keeps route handlers free of inline SQL. Records are stored as
``(uuid, data JSON text, updated_at RFC3339)``; writes fully overwrite the
answer mapping for a uuid.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import text as sql_text

from stepform.db.base import get_engine
from stepform.logic.errors import TransportFailure

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def list_forms() -> List[Dict[str, object]]:
    """Return all decodable records, most recently updated first.

    Rows whose stored data is not a JSON object are skipped and logged.
    """
    eng = get_engine()
    with eng.connect() as conn:
        rows = conn.execute(
            sql_text("SELECT uuid, data, updated_at FROM forms ORDER BY updated_at DESC")
        ).fetchall()
    forms: List[Dict[str, object]] = []
    for row in rows:
        try:
            data = json.loads(row[1])
        except (TypeError, json.JSONDecodeError):
            logger.warning("form_row_undecodable uuid=%s", row[0])
            continue
        if not isinstance(data, dict):
            logger.warning("form_row_not_object uuid=%s", row[0])
            continue
        forms.append({"uuid": str(row[0]), "data": data, "updated_at": str(row[2])})
    return forms


def get_form(form_id: str) -> Optional[Dict[str, str]]:
    eng = get_engine()
    with eng.connect() as conn:
        row = conn.execute(
            sql_text("SELECT data FROM forms WHERE uuid = :uuid"),
            {"uuid": form_id},
        ).fetchone()
    if row is None:
        return None
    try:
        data = json.loads(row[0])
    except (TypeError, json.JSONDecodeError) as e:
        logger.error("form_row_undecodable uuid=%s", form_id)
        raise TransportFailure(f"form {form_id} holds undecodable data") from e
    if not isinstance(data, dict):
        logger.error("form_row_not_object uuid=%s", form_id)
        raise TransportFailure(f"form {form_id} data is not an object")
    return data


def upsert_form(form_id: Optional[str], data: Dict[str, str]) -> Tuple[str, bool]:
    """Create or fully overwrite a record; return ``(uuid, created)``.

    A missing ``form_id`` always creates a new record with a fresh uuid4. A
    supplied id that does not exist yet is inserted under that id.
    """
    resolved = form_id or str(uuid.uuid4())
    payload = json.dumps(data, ensure_ascii=False, sort_keys=True)
    now = _now()
    eng = get_engine()
    with eng.begin() as conn:
        result = conn.execute(
            sql_text("UPDATE forms SET data = :data, updated_at = :now WHERE uuid = :uuid"),
            {"data": payload, "now": now, "uuid": resolved},
        )
        created = result.rowcount == 0
        if created:
            conn.execute(
                sql_text("INSERT INTO forms (uuid, data, updated_at) VALUES (:uuid, :data, :now)"),
                {"uuid": resolved, "data": payload, "now": now},
            )
    logger.info("form_upsert uuid=%s created=%s keys=%d", resolved, created, len(data))
    return resolved, created


def delete_form(form_id: str) -> bool:
    """Delete a record; return False when nothing matched."""
    eng = get_engine()
    with eng.begin() as conn:
        result = conn.execute(
            sql_text("DELETE FROM forms WHERE uuid = :uuid"),
            {"uuid": form_id},
        )
    return result.rowcount > 0


__all__ = ["list_forms", "get_form", "upsert_form", "delete_form"]
