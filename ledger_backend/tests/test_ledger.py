"""
Ledger Manager Tests.

Partner ledger creation, idempotence, tenant isolation and balance replay.
"""

import pytest
from datetime import date
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from ledger_backend.app.core.exceptions import ConfigurationError, ResourceNotFoundError
from ledger_backend.app.models.accounting_enums import AccountType, BalanceType, PartnerType, TransactionType
from ledger_backend.app.models.ledger_account import LedgerAccount
from ledger_backend.app.models.audit_log import AuditLog
from ledger_backend.app.schemas.accounting import JournalEntryCreate, JournalEntryLineIn
from ledger_backend.app.domain.accounting.chart_of_accounts import seed_chart_of_accounts
from ledger_backend.app.domain.accounting.journal import create_journal_entry
from ledger_backend.app.domain.accounting.ledger import (
    calculate_ledger_balance, get_or_create_ledger, list_ledger_accounts,
)
from ledger_backend.app.services.audit import AuditAction, get_audit_trail


async def post(db, company_id, *lines):
    """Post a balanced manual entry from (ledger_id, debit, credit) tuples."""
    return await create_journal_entry(db, JournalEntryCreate(
        transaction_type=TransactionType.MANUAL,
        entry_date=date(2025, 4, 1),
        narration="test",
        company_id=company_id,
        lines=[
            JournalEntryLineIn(ledger_account_id=ledger_id, debit_amount=dr, credit_amount=cr)
            for ledger_id, dr, cr in lines
        ],
    ))


@pytest.mark.asyncio
async def test_customer_ledger_created_under_sundry_debtors(db_session, company):
    customer = company.local_customer

    ledger = await get_or_create_ledger(
        db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id
    )

    assert ledger.id is not None
    assert ledger.name == "Sharma Textiles"
    assert ledger.account_type == AccountType.ASSET
    assert ledger.balance_type == BalanceType.DEBIT
    assert ledger.partner_id == customer.id
    assert ledger.is_system_ledger is False
    assert ledger.current_balance == 0


@pytest.mark.asyncio
async def test_supplier_ledger_is_a_liability(db_session, company, make_partner):
    supplier = await make_partner(company.id, PartnerType.SUPPLIER, company_name="Arvind Mills")

    ledger = await get_or_create_ledger(
        db_session, supplier.id, PartnerType.SUPPLIER, "Arvind Mills", company.id
    )

    assert ledger.account_type == AccountType.LIABILITY
    assert ledger.balance_type == BalanceType.CREDIT


@pytest.mark.asyncio
async def test_get_or_create_is_idempotent(db_session, company):
    customer = company.local_customer

    first = await get_or_create_ledger(db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id)
    second = await get_or_create_ledger(db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id)

    assert first.id == second.id

    count = await db_session.scalar(
        select(func.count(LedgerAccount.id)).where(LedgerAccount.partner_id == customer.id)
    )
    assert count == 1


@pytest.mark.asyncio
async def test_existing_ledger_keeps_its_name(db_session, company):
    customer = company.local_customer

    await get_or_create_ledger(db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id)
    again = await get_or_create_ledger(db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles Pvt Ltd", company.id)

    assert again.name == "Sharma Textiles"


@pytest.mark.asyncio
async def test_concurrently_created_ledger_is_returned(db_session, company, mocker):
    customer = company.local_customer
    winner = await get_or_create_ledger(
        db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id
    )

    # The lookup misses the row another request has just inserted
    lookups = []

    async def miss_then_find(tenant, partner_id):
        lookups.append(partner_id)
        return None if len(lookups) == 1 else winner

    mocker.patch(
        "ledger_backend.app.domain.accounting.ledger._find_partner_ledger",
        side_effect=miss_then_find,
    )

    ledger = await get_or_create_ledger(
        db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles (late)", company.id
    )

    assert ledger.id == winner.id
    assert ledger.name == "Sharma Textiles"
    assert len(lookups) == 2

    count = await db_session.scalar(
        select(func.count(LedgerAccount.id)).where(LedgerAccount.partner_id == customer.id)
    )
    assert count == 1

    trail = await get_audit_trail(db_session, company.id, action=AuditAction.LEDGER_CREATED)
    assert [event.entity_id for event in trail] == [winner.id]


@pytest.mark.asyncio
async def test_unique_conflict_without_winner_is_raised(db_session, company, mocker):
    customer = company.local_customer
    await get_or_create_ledger(db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id)

    mocker.patch(
        "ledger_backend.app.domain.accounting.ledger._find_partner_ledger",
        return_value=None,
    )

    with pytest.raises(IntegrityError):
        await get_or_create_ledger(db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id)


@pytest.mark.asyncio
async def test_ledger_creation_is_audited(db_session, company):
    ledger = await get_or_create_ledger(
        db_session, company.local_customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id
    )

    trail = await get_audit_trail(db_session, company.id, action=AuditAction.LEDGER_CREATED)
    assert [event.entity_id for event in trail] == [ledger.id]


@pytest.mark.asyncio
async def test_missing_group_raises_configuration_error(db_session, make_partner):
    # Company 3 was never seeded
    customer = await make_partner(3)

    with pytest.raises(ConfigurationError) as exc_info:
        await get_or_create_ledger(db_session, customer.id, PartnerType.CUSTOMER, "Sharma Textiles", 3)

    assert 'Account group "Sundry Debtors" not found' in exc_info.value.message
    assert await db_session.scalar(select(func.count(LedgerAccount.id))) == 0


@pytest.mark.asyncio
async def test_ledgers_are_isolated_per_company(db_session, company, make_partner):
    await seed_chart_of_accounts(db_session, 2)
    other_customer = await make_partner(2, company_name="Sharma Textiles")

    ours = await get_or_create_ledger(db_session, company.local_customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id)
    theirs = await get_or_create_ledger(db_session, other_customer.id, PartnerType.CUSTOMER, "Sharma Textiles", 2)

    assert ours.id != theirs.id
    assert theirs.company_id == 2


@pytest.mark.asyncio
async def test_balance_of_ledger_without_lines(db_session, company):
    sales = company.ledgers["Sales"]
    inventory = company.ledgers["Inventory"]

    assert (await calculate_ledger_balance(db_session, sales.id, company.id)).model_dump() == {
        "balance": 0, "balance_type": BalanceType.CREDIT,
    }
    assert (await calculate_ledger_balance(db_session, inventory.id, company.id)).model_dump() == {
        "balance": 0, "balance_type": BalanceType.DEBIT,
    }


@pytest.mark.asyncio
async def test_asset_balance_replays_debits_minus_credits(db_session, company):
    customer = await get_or_create_ledger(
        db_session, company.local_customer.id, PartnerType.CUSTOMER, "Sharma Textiles", company.id
    )
    sales = company.ledgers["Sales"]

    await post(db_session, company.id, (customer.id, 11800, 0), (sales.id, 0, 11800))
    await post(db_session, company.id, (customer.id, 5000, 0), (sales.id, 0, 5000))
    await post(db_session, company.id, (sales.id, 3000, 0), (customer.id, 0, 3000))

    balance = await calculate_ledger_balance(db_session, customer.id, company.id)
    assert balance.balance == 13800
    assert balance.balance_type == BalanceType.DEBIT


@pytest.mark.asyncio
async def test_income_balance_replays_credits_minus_debits(db_session, company):
    cash = company.ledgers["Cash-in-Hand"]
    sales = company.ledgers["Sales"]

    await post(db_session, company.id, (cash.id, 10000, 0), (sales.id, 0, 10000))
    await post(db_session, company.id, (sales.id, 2500, 0), (cash.id, 0, 2500))

    balance = await calculate_ledger_balance(db_session, sales.id, company.id)
    assert balance.balance == 7500
    assert balance.balance_type == BalanceType.CREDIT


@pytest.mark.asyncio
async def test_overdrawn_asset_reports_credit_side(db_session, company):
    cash = company.ledgers["Cash-in-Hand"]
    sales = company.ledgers["Sales"]

    await post(db_session, company.id, (sales.id, 4000, 0), (cash.id, 0, 4000))

    balance = await calculate_ledger_balance(db_session, cash.id, company.id)
    assert balance.balance == 4000
    assert balance.balance_type == BalanceType.CREDIT


@pytest.mark.asyncio
async def test_posting_never_touches_cached_balance(db_session, company):
    cash = company.ledgers["Cash-in-Hand"]
    sales = company.ledgers["Sales"]

    await post(db_session, company.id, (cash.id, 10000, 0), (sales.id, 0, 10000))

    cached = await db_session.scalar(
        select(LedgerAccount.current_balance).where(LedgerAccount.id == cash.id)
    )
    assert cached == 0


@pytest.mark.asyncio
async def test_balance_of_unknown_ledger(db_session, company):
    with pytest.raises(ResourceNotFoundError):
        await calculate_ledger_balance(db_session, 9999, company.id)


@pytest.mark.asyncio
async def test_balance_of_other_company_ledger_not_visible(db_session, company):
    with pytest.raises(ResourceNotFoundError):
        await calculate_ledger_balance(db_session, company.ledgers["Sales"].id, 2)


@pytest.mark.asyncio
async def test_list_ledger_accounts_ordered_by_name(db_session, company):
    ledgers = await list_ledger_accounts(db_session, company.id)
    names = [ledger.name for ledger in ledgers]

    assert names == sorted(names)
    assert "Sales" in names and "Bank Account (Default)" in names


@pytest.mark.asyncio
async def test_seeding_twice_creates_nothing_new(db_session, company):
    created = await seed_chart_of_accounts(db_session, company.id)
    assert created == {"account_groups": 0, "ledgers": 0}

    seeded = await db_session.scalar(
        select(func.count(AuditLog.id)).where(AuditLog.action == AuditAction.CHART_OF_ACCOUNTS_SEEDED)
    )
    assert seeded == 1
