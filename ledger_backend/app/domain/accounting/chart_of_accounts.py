"""
Chart of accounts seeding.

Creates the account groups and system ledgers the accounting core looks up
by name. Safe to run repeatedly: existing groups and ledgers are left as
they are.
"""

import logging
from typing import Dict

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.models.account_group import AccountGroup
from ledger_backend.app.models.ledger_account import LedgerAccount
from ledger_backend.app.models.accounting_enums import AccountType, BalanceType
from ledger_backend.app.domain.accounting.tenant import TenantQuery
from ledger_backend.app.services.audit import log_event, AuditAction

logger = logging.getLogger("ledger.seed")

# group name -> nature
ACCOUNT_GROUPS = {
    "Sundry Debtors": AccountType.ASSET,
    "Sundry Creditors": AccountType.LIABILITY,
    "Sales Accounts": AccountType.INCOME,
    "Duties & Taxes": AccountType.LIABILITY,
    "Direct Expenses": AccountType.EXPENSE,
    "Current Assets": AccountType.ASSET,
    "Cash-in-Hand": AccountType.ASSET,
    "Bank Accounts": AccountType.ASSET,
}

# ledger name -> (group name, account type, natural side)
SYSTEM_LEDGERS = {
    "Sales": ("Sales Accounts", AccountType.INCOME, BalanceType.CREDIT),
    "CGST Output": ("Duties & Taxes", AccountType.LIABILITY, BalanceType.CREDIT),
    "SGST Output": ("Duties & Taxes", AccountType.LIABILITY, BalanceType.CREDIT),
    "IGST Output": ("Duties & Taxes", AccountType.LIABILITY, BalanceType.CREDIT),
    "Cost of Goods Sold": ("Direct Expenses", AccountType.EXPENSE, BalanceType.DEBIT),
    "Inventory": ("Current Assets", AccountType.ASSET, BalanceType.DEBIT),
    "Cash-in-Hand": ("Cash-in-Hand", AccountType.ASSET, BalanceType.DEBIT),
    "Bank Account (Default)": ("Bank Accounts", AccountType.ASSET, BalanceType.DEBIT),
}


async def seed_chart_of_accounts(db: AsyncSession, company_id: int) -> Dict[str, int]:
    """
    Seed a company's account groups and system ledgers.

    Returns:
        Counts of newly created rows: {"account_groups": n, "ledgers": m}
    """
    tenant = TenantQuery(db, company_id)

    groups = {
        group.name: group
        for group in await tenant.all(tenant.select(AccountGroup))
    }
    created_groups = 0
    for name, nature in ACCOUNT_GROUPS.items():
        if name not in groups:
            groups[name] = tenant.add(AccountGroup(name=name, nature=nature))
            created_groups += 1
    await db.flush()

    existing_ledgers = set(await tenant.all(
        tenant.select_columns(LedgerAccount, LedgerAccount.name).where(
            LedgerAccount.is_system_ledger.is_(True)
        )
    ))
    created_ledgers = 0
    for name, (group_name, account_type, balance_type) in SYSTEM_LEDGERS.items():
        if name in existing_ledgers:
            continue
        tenant.add(LedgerAccount(
            name=name,
            account_group_id=groups[group_name].id,
            account_type=account_type,
            current_balance=0.0,
            balance_type=balance_type,
            is_system_ledger=True,
        ))
        created_ledgers += 1
    await db.flush()

    if created_groups or created_ledgers:
        await log_event(
            db,
            company_id=company_id,
            action=AuditAction.CHART_OF_ACCOUNTS_SEEDED,
            entity_type="company",
            entity_id=company_id,
            metadata={"account_groups": created_groups, "ledgers": created_ledgers},
        )

    logger.info(
        "Seeded chart of accounts: %s groups, %s ledgers",
        created_groups, created_ledgers,
        extra={"company_id": company_id}
    )

    return {"account_groups": created_groups, "ledgers": created_ledgers}
