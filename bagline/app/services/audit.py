from __future__ import annotations

import enum
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from bagline.app.models.audit import AuditLog

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    """Quantities, ids and enums are stored as strings in the JSON column."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_jsonable(v) for v in value]
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def log_action(
    db: Session,
    *,
    user_id: UUID | None,
    action: str,
    resource_type: str,
    resource_id: str,
    changes: dict[str, Any] | None = None,
) -> None:
    """Write a single row to the audit_logs table.

    Does NOT call db.commit(); the row is committed (or rolled back) together
    with the business operation that produced it.
    """
    db.add(
        AuditLog(
            table_name=resource_type,
            record_id=resource_id,
            action=action,
            changed_by=user_id,
            new_values=_jsonable(changes) if changes is not None else None,
        )
    )
    logger.debug("audit %s %s/%s by %s", action, resource_type, resource_id, user_id)
