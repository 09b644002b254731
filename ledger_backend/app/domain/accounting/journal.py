"""
Journal Engine.

Enforces the double-entry rule and writes a journal entry header together
with its lines as one unit of work.

Flow of create_journal_entry:
1. Validate Dr = Cr (before any write)
2. Verify every ledger belongs to the company
3. Inside one savepoint: reserve the entry number, insert the header,
   insert the lines, write the audit record
4. Return the header ID (the caller commits)
"""

import logging
from datetime import date
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ledger_backend.app.core.config import settings
from ledger_backend.app.core.exceptions import (
    AppException, ComplianceError, ResourceNotFoundError, StorageError,
    UnbalancedJournalError, ValidationError,
)
from ledger_backend.app.models.accounting_enums import TransactionType
from ledger_backend.app.models.journal_entry import JournalEntry, JournalEntryLine
from ledger_backend.app.models.ledger_account import LedgerAccount
from ledger_backend.app.schemas.accounting import (
    DoubleEntryValidation, JournalEntryCreate, JournalEntryLineIn,
)
from ledger_backend.app.domain.accounting.entry_numbers import next_entry_number
from ledger_backend.app.domain.accounting.tenant import TenantQuery
from ledger_backend.app.services.audit import log_event, AuditAction

logger = logging.getLogger("ledger.journal")

CASH_LEDGER = "Cash-in-Hand"


def validate_double_entry(lines: Iterable[JournalEntryLineIn]) -> DoubleEntryValidation:
    """
    Check that total debit equals total credit.

    A difference below 0.01 is treated as balanced to absorb floating
    point noise.

    Example:
        lines Dr 11800 / Cr 10000 / Cr 900 / Cr 900
        -> valid=True, total_debit=11800, total_credit=11800, difference=0
    """
    lines = list(lines)
    total_debit = sum(line.debit_amount for line in lines)
    total_credit = sum(line.credit_amount for line in lines)
    difference = abs(total_debit - total_credit)

    valid = difference < settings.balance_tolerance

    return DoubleEntryValidation(
        valid=valid,
        total_debit=total_debit,
        total_credit=total_credit,
        difference=difference,
        error_message=None if valid else (
            f"Journal entry is not balanced. Debit: ₹{total_debit}, "
            f"Credit: ₹{total_credit}, Difference: ₹{difference}"
        ),
    )


async def _check_ledgers_in_company(tenant: TenantQuery, lines: Sequence[JournalEntryLineIn]) -> None:
    wanted = {line.ledger_account_id for line in lines}
    found = set(await tenant.all(
        tenant.select_columns(LedgerAccount, LedgerAccount.id).where(LedgerAccount.id.in_(wanted))
    ))
    missing = sorted(wanted - found)
    if missing:
        raise ResourceNotFoundError("Ledger account", missing[0] if len(missing) == 1 else missing)


async def _insert_lines(
    tenant: TenantQuery,
    journal_entry_id: int,
    lines: Sequence[JournalEntryLineIn]
) -> None:
    for line in lines:
        tenant.add(JournalEntryLine(
            journal_entry_id=journal_entry_id,
            ledger_account_id=line.ledger_account_id,
            debit_amount=line.debit_amount,
            credit_amount=line.credit_amount,
            bill_reference=line.bill_reference or None,
        ))
    await tenant.db.flush()


async def create_journal_entry(db: AsyncSession, entry: JournalEntryCreate) -> int:
    """
    Validate and write a journal entry with all of its lines.

    Header and lines are written in one savepoint; if anything fails the
    header, its lines and the reserved entry number are all rolled back.

    Args:
        db: Database session (transaction managed by caller)
        entry: Header fields and lines

    Returns:
        ID of the created journal entry

    Raises:
        UnbalancedJournalError: If debits and credits differ (nothing written)
        ResourceNotFoundError: If a line references a ledger outside the company
        StorageError: If the store rejects the write
    """
    validation = validate_double_entry(entry.lines)
    if not validation.valid:
        raise UnbalancedJournalError(
            total_debit=validation.total_debit,
            total_credit=validation.total_credit,
            difference=validation.difference,
            message=validation.error_message,
        )

    tenant = TenantQuery(db, entry.company_id)
    await _check_ledgers_in_company(tenant, entry.lines)

    try:
        async with db.begin_nested():
            entry_number = await next_entry_number(db, entry.company_id, entry.entry_date.year)

            journal_entry = tenant.add(JournalEntry(
                entry_number=entry_number,
                transaction_type=entry.transaction_type,
                transaction_id=entry.transaction_id,
                entry_date=entry.entry_date,
                narration=entry.narration,
                created_by=entry.created_by,
            ))
            await db.flush()

            await _insert_lines(tenant, journal_entry.id, entry.lines)

            await log_event(
                db,
                company_id=entry.company_id,
                action=AuditAction.JOURNAL_ENTRY_POSTED,
                actor_id=entry.created_by,
                entity_type="journal_entry",
                entity_id=journal_entry.id,
                metadata={
                    "entry_number": entry_number,
                    "transaction_type": entry.transaction_type.value,
                    "transaction_id": entry.transaction_id,
                    "total": validation.total_debit,
                },
            )
    except AppException:
        raise
    except SQLAlchemyError as e:
        logger.error(
            "Failed to create journal entry: %s", e,
            extra={"company_id": entry.company_id, "transaction_id": entry.transaction_id}
        )
        raise StorageError(
            f"Failed to create journal entry: {e}",
            details={"transaction_type": entry.transaction_type.value, "transaction_id": entry.transaction_id}
        ) from e

    logger.info(
        "Posted %s (%s %s) Dr=Cr=%s",
        entry_number, entry.transaction_type.value, entry.transaction_id, validation.total_debit,
        extra={"company_id": entry.company_id}
    )

    return journal_entry.id


async def create_manual_journal_entry(
    db: AsyncSession,
    company_id: int,
    user_id: Optional[int],
    entry_date: date,
    narration: str,
    lines: List[JournalEntryLineIn]
) -> int:
    """
    Post a journal entry keyed in by an accountant.

    Raises:
        ValidationError: Fewer than two lines
        ComplianceError: Cash receipt above the Section 269ST limit
    """
    if len(lines) < 2:
        raise ValidationError("At least 2 lines are required for a journal entry")

    validation = validate_double_entry(lines)
    if not validation.valid:
        raise UnbalancedJournalError(
            total_debit=validation.total_debit,
            total_credit=validation.total_credit,
            difference=validation.difference,
            message=validation.error_message,
        )

    tenant = TenantQuery(db, company_id)
    cash_ledger = await tenant.first(
        tenant.select(LedgerAccount).where(
            LedgerAccount.name == CASH_LEDGER,
            LedgerAccount.is_system_ledger.is_(True),
        )
    )
    if cash_ledger:
        cash_debit = sum(line.debit_amount for line in lines if line.ledger_account_id == cash_ledger.id)
        if cash_debit > settings.cash_transaction_limit:
            raise ComplianceError(
                "Section 269ST: Cash receipts above ₹2,00,000 are not allowed",
                details={"cash_debit": cash_debit, "limit": settings.cash_transaction_limit}
            )

    return await create_journal_entry(db, JournalEntryCreate(
        transaction_type=TransactionType.MANUAL,
        transaction_id=None,
        entry_date=entry_date,
        narration=narration,
        lines=lines,
        company_id=company_id,
        created_by=user_id,
    ))


async def get_journal_entry(db: AsyncSession, journal_entry_id: int, company_id: int) -> JournalEntry:
    """Load one journal entry with its lines and their ledgers."""
    tenant = TenantQuery(db, company_id)
    journal_entry = await tenant.first(
        tenant.select(JournalEntry)
        .where(JournalEntry.id == journal_entry_id)
        .options(selectinload(JournalEntry.lines).selectinload(JournalEntryLine.ledger_account))
    )
    if not journal_entry:
        raise ResourceNotFoundError("Journal entry", journal_entry_id)
    return journal_entry


async def list_journal_entries(
    db: AsyncSession,
    company_id: int,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    transaction_type: Optional[TransactionType] = None,
    search: Optional[str] = None
) -> List[JournalEntry]:
    """
    List a company's journal entries, newest first, with lines loaded.

    `search` matches the entry number, the narration, or the name of any
    ledger on the entry, case-insensitively.
    """
    tenant = TenantQuery(db, company_id)
    query = (
        tenant.select(JournalEntry)
        .options(selectinload(JournalEntry.lines).selectinload(JournalEntryLine.ledger_account))
        .order_by(JournalEntry.entry_date.desc(), JournalEntry.created_at.desc(), JournalEntry.id.desc())
    )

    if start_date:
        query = query.where(JournalEntry.entry_date >= start_date)
    if end_date:
        query = query.where(JournalEntry.entry_date <= end_date)
    if transaction_type:
        query = query.where(JournalEntry.transaction_type == TransactionType(transaction_type))
    if search:
        pattern = f"%{search.lower()}%"
        ledger_match = JournalEntry.lines.any(
            JournalEntryLine.ledger_account.has(LedgerAccount.name.ilike(pattern))
        )
        query = query.where(or_(
            JournalEntry.entry_number.ilike(pattern),
            JournalEntry.narration.ilike(pattern),
            ledger_match,
        ))

    return await tenant.all(query)


def entry_totals(journal_entry: JournalEntry) -> tuple[float, float]:
    """(total_debit, total_credit) of a loaded journal entry."""
    return (
        sum(line.debit_amount for line in journal_entry.lines),
        sum(line.credit_amount for line in journal_entry.lines),
    )
