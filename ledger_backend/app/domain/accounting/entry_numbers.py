"""
Journal entry numbering.

Numbers look like JE-2025-0001: prefix, four-digit year, four-digit
sequence restarting each year and scoped to one company. The sequence is
drawn from a counter row incremented with a single UPDATE ... RETURNING,
so concurrent postings in the same company and year never share a number.
"""

import re
import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.config import settings
from ledger_backend.app.core.exceptions import StorageError
from ledger_backend.app.models.journal_entry import JournalEntry
from ledger_backend.app.models.journal_entry_sequence import JournalEntrySequence
from ledger_backend.app.domain.accounting.tenant import TenantQuery

logger = logging.getLogger("ledger.journal")


def format_entry_number(year: int, sequence: int, prefix: str = None) -> str:
    """format_entry_number(2025, 1) -> "JE-2025-0001"."""
    return f"{prefix or settings.entry_number_prefix}-{year}-{sequence:04d}"


def parse_entry_sequence(entry_number: str) -> int | None:
    """Trailing sequence of an entry number, or None if it doesn't parse."""
    match = re.fullmatch(r"[A-Z]+-(\d{4})-(\d+)", entry_number or "")
    if not match:
        return None
    return int(match.group(2))


async def _highest_existing_sequence(tenant: TenantQuery, year: int) -> int:
    """Highest sequence already used by this company's entries for `year`."""
    pattern = f"{settings.entry_number_prefix}-{year}-%"
    numbers = await tenant.all(
        tenant.select_columns(JournalEntry, JournalEntry.entry_number).where(
            JournalEntry.entry_number.like(pattern)
        )
    )
    sequences = [seq for seq in (parse_entry_sequence(n) for n in numbers) if seq is not None]
    return max(sequences, default=0)


async def _increment(db: AsyncSession, company_id: int, year: int) -> int | None:
    result = await db.execute(
        update(JournalEntrySequence)
        .where(
            JournalEntrySequence.company_id == company_id,
            JournalEntrySequence.year == year,
        )
        .values(last_value=JournalEntrySequence.last_value + 1)
        .returning(JournalEntrySequence.last_value)
        .execution_options(synchronize_session=False)
    )
    return result.scalar_one_or_none()


async def next_entry_number(db: AsyncSession, company_id: int, year: int) -> str:
    """
    Reserve the next entry number for a company and year.

    The reservation is part of the caller's transaction: if the posting
    rolls back, the number is released and no gap appears.

    The first posting of a year creates the counter, continuing from any
    entry numbers already present for that year.

    Raises:
        StorageError: If the counter could not be reserved after retries
    """
    tenant = TenantQuery(db, company_id)

    for attempt in range(settings.entry_number_retries):
        value = await _increment(db, company_id, year)
        if value is not None:
            return format_entry_number(year, value)

        start = await _highest_existing_sequence(tenant, year) + 1
        try:
            async with db.begin_nested():
                tenant.add(JournalEntrySequence(year=year, last_value=start))
                await db.flush()
        except IntegrityError:
            # A concurrent posting created the counter; increment theirs
            logger.info(
                "Entry counter for %s/%s created concurrently, retrying (attempt %s)",
                company_id, year, attempt + 1
            )
            continue

        return format_entry_number(year, start)

    raise StorageError(
        "Could not reserve a journal entry number",
        details={"company_id": company_id, "year": year}
    )
