"""
Immutable audit trail for payout operations.

Every state change gets an append-only audit log entry with:
  - Payment ID (which upstream payment)
  - Payout ID (once a payout exists)
  - Action (what happened)
  - Details (amounts, errors, attempt counts)
  - Timestamp (UTC)

Entries are added to the caller's session so they commit or roll back
together with the change they describe. They are never modified or deleted.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import AuditAction
from app.models.payout import AuditLog

logger = logging.getLogger("payout_service.audit")


def log_event(
    session: AsyncSession,
    action: AuditAction,
    payment_id: str,
    payout_id: Optional[str] = None,
    details: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """
    Add an audit log entry to the session.

    Args:
        session: Database session holding the state change.
        action: What happened (e.g. AuditAction.PAYOUT_CREATED).
        payment_id: The upstream payment this entry relates to.
        payout_id: The payout record, when one exists.
        details: Arbitrary context (serialized to JSON).

    Returns:
        The pending AuditLog record.
    """
    entry = AuditLog(
        payment_id=payment_id,
        payout_id=payout_id,
        action=action.value,
        details=json.dumps(details) if details else None,
        timestamp=datetime.now(timezone.utc),
    )
    session.add(entry)
    logger.info(
        "AUDIT | payment=%s payout=%s action=%s | %s",
        payment_id,
        payout_id or "-",
        action.value,
        json.dumps(details)[:200] if details else "",
    )
    return entry
