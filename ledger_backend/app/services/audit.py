"""
Audit logging service for tracking accounting events.

Audit rows are written inside the caller's unit of work, so a posting and
its audit record commit or roll back together.
"""

from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from ledger_backend.app.models.audit_log import AuditLog


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    JOURNAL_ENTRY_POSTED = "JOURNAL_ENTRY_POSTED"
    LEDGER_CREATED = "LEDGER_CREATED"
    CHART_OF_ACCOUNTS_SEEDED = "CHART_OF_ACCOUNTS_SEEDED"


async def log_event(
    db: AsyncSession,
    company_id: int,
    action: str,
    actor_id: Optional[int] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Log an accounting event to the audit log.

    Args:
        db: Database session
        company_id: Tenant the event belongs to
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        entity_type: Kind of record acted upon (e.g. "journal_entry")
        entity_id: ID of the record acted upon
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance (flushed, not committed)
    """
    audit_log = AuditLog(
        company_id=company_id,
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


async def get_audit_trail(
    db: AsyncSession,
    company_id: int,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve a company's audit trail with optional filtering.

    Args:
        db: Database session
        company_id: Tenant to read
        action: Filter by action type
        limit: Maximum number of records to return

    Returns:
        List of AuditLog instances, most recent first
    """
    query = select(AuditLog).where(
        AuditLog.company_id == company_id
    ).order_by(desc(AuditLog.timestamp), desc(AuditLog.id))

    if action:
        query = query.where(AuditLog.action == action)

    query = query.limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
