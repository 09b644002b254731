"""
Ledger Manager.

Maps business partners to their receivable/payable ledgers and derives a
ledger's balance by replaying its journal entry lines. The stored
`current_balance` is never consulted.
"""

import logging
from typing import Dict, Iterable, List

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.exceptions import ConfigurationError, ResourceNotFoundError
from ledger_backend.app.models.account_group import AccountGroup
from ledger_backend.app.models.ledger_account import LedgerAccount
from ledger_backend.app.models.journal_entry import JournalEntryLine
from ledger_backend.app.models.accounting_enums import (
    AccountType, BalanceType, PartnerType, DEBIT_NATURE_ACCOUNT_TYPES
)
from ledger_backend.app.schemas.accounting import LedgerBalance
from ledger_backend.app.domain.accounting.tenant import TenantQuery
from ledger_backend.app.services.audit import log_event, AuditAction

logger = logging.getLogger("ledger.ledgers")

SUNDRY_DEBTORS = "Sundry Debtors"
SUNDRY_CREDITORS = "Sundry Creditors"

# partner type -> (parent group, account type, natural side)
PARTNER_LEDGER_RULES = {
    PartnerType.CUSTOMER: (SUNDRY_DEBTORS, AccountType.ASSET, BalanceType.DEBIT),
    PartnerType.SUPPLIER: (SUNDRY_CREDITORS, AccountType.LIABILITY, BalanceType.CREDIT),
}


async def _find_partner_ledger(tenant: TenantQuery, partner_id: int) -> LedgerAccount | None:
    return await tenant.first(
        tenant.select(LedgerAccount).where(LedgerAccount.partner_id == partner_id)
    )


async def get_or_create_ledger(
    db: AsyncSession,
    partner_id: int,
    partner_type: PartnerType,
    partner_name: str,
    company_id: int
) -> LedgerAccount:
    """
    Get a partner's ledger, creating it under Sundry Debtors / Creditors.

    An existing ledger is returned unchanged, even if `partner_name` has
    since changed.

    Args:
        db: Database session
        partner_id: Customer or supplier ID
        partner_type: CUSTOMER or SUPPLIER
        partner_name: Name given to a newly created ledger
        company_id: Tenant

    Returns:
        The partner's ledger account

    Raises:
        ConfigurationError: If the parent account group was never seeded
    """
    partner_type = PartnerType(partner_type)
    tenant = TenantQuery(db, company_id)

    existing = await _find_partner_ledger(tenant, partner_id)
    if existing:
        return existing

    group_name, account_type, balance_type = PARTNER_LEDGER_RULES[partner_type]

    account_group = await tenant.first(
        tenant.select(AccountGroup).where(AccountGroup.name == group_name)
    )
    if not account_group:
        raise ConfigurationError(
            f'Account group "{group_name}" not found. Please run database seeding.',
            details={"account_group": group_name, "company_id": company_id}
        )

    ledger = LedgerAccount(
        name=partner_name,
        account_group_id=account_group.id,
        account_type=account_type,
        current_balance=0.0,
        balance_type=balance_type,
        partner_id=partner_id,
        is_system_ledger=False,
    )

    try:
        async with db.begin_nested():
            tenant.add(ledger)
            await db.flush()
    except IntegrityError:
        # Another request created this partner's ledger first
        winner = await _find_partner_ledger(tenant, partner_id)
        if winner is None:
            raise
        return winner

    await log_event(
        db,
        company_id=company_id,
        action=AuditAction.LEDGER_CREATED,
        entity_type="ledger_account",
        entity_id=ledger.id,
        metadata={"partner_id": partner_id, "partner_type": partner_type.value, "name": partner_name},
    )
    logger.info(
        "Created ledger %s for %s %s",
        ledger.id, partner_type.value, partner_id,
        extra={"company_id": company_id}
    )

    return ledger


async def calculate_ledger_balance(
    db: AsyncSession,
    ledger_account_id: int,
    company_id: int
) -> LedgerBalance:
    """
    Derive a ledger's balance from every line ever posted to it.

    Asset and expense ledgers carry debit minus credit; liability and
    income ledgers carry credit minus debit. A negative net flips the
    reported side.

    Raises:
        ResourceNotFoundError: If the ledger does not exist in the company
    """
    tenant = TenantQuery(db, company_id)

    ledger = await tenant.first(
        tenant.select(LedgerAccount).where(LedgerAccount.id == ledger_account_id)
    )
    if not ledger:
        raise ResourceNotFoundError("Ledger account", ledger_account_id)

    debit_nature = ledger.account_type in DEBIT_NATURE_ACCOUNT_TYPES

    result = await db.execute(
        tenant.select_columns(
            JournalEntryLine,
            func.count(JournalEntryLine.id),
            func.coalesce(func.sum(JournalEntryLine.debit_amount), 0.0),
            func.coalesce(func.sum(JournalEntryLine.credit_amount), 0.0),
        ).where(JournalEntryLine.ledger_account_id == ledger_account_id)
    )
    line_count, total_debit, total_credit = result.one()

    if not line_count:
        return LedgerBalance(
            balance=0.0,
            balance_type=BalanceType.DEBIT if debit_nature else BalanceType.CREDIT,
        )

    if debit_nature:
        net = total_debit - total_credit
        balance_type = BalanceType.DEBIT if net >= 0 else BalanceType.CREDIT
    else:
        net = total_credit - total_debit
        balance_type = BalanceType.CREDIT if net >= 0 else BalanceType.DEBIT

    return LedgerBalance(balance=abs(net), balance_type=balance_type)


async def get_system_ledgers(
    db: AsyncSession,
    company_id: int,
    names: Iterable[str]
) -> Dict[str, LedgerAccount]:
    """
    Resolve fixed chart-of-account ledgers (e.g. "Sales") by name.

    Missing names are simply absent from the result; callers decide which
    are required.
    """
    tenant = TenantQuery(db, company_id)
    ledgers = await tenant.all(
        tenant.select(LedgerAccount).where(
            LedgerAccount.is_system_ledger.is_(True),
            LedgerAccount.name.in_(list(names)),
        )
    )
    return {ledger.name: ledger for ledger in ledgers}


async def require_system_ledger(db: AsyncSession, company_id: int, name: str) -> LedgerAccount:
    """Resolve one system ledger or fail with a ConfigurationError."""
    ledger = (await get_system_ledgers(db, company_id, [name])).get(name)
    if not ledger:
        raise ConfigurationError(
            f"{name} ledger not found",
            details={"ledger": name, "company_id": company_id}
        )
    return ledger


async def list_ledger_accounts(
    db: AsyncSession,
    company_id: int,
    active_only: bool = True
) -> List[LedgerAccount]:
    """List a company's ledgers ordered by name."""
    tenant = TenantQuery(db, company_id)
    query = tenant.select(LedgerAccount).order_by(LedgerAccount.name)
    if active_only:
        query = query.where(LedgerAccount.is_active.is_(True))
    return await tenant.all(query)
