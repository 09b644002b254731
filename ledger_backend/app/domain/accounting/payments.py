"""
Payment postings.

A payment received from a customer:
    Dr Cash-in-Hand / Bank   Cr Customer

Cash receipts are capped by Section 269ST of the Income Tax Act.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.config import settings
from ledger_backend.app.core.exceptions import ComplianceError, ResourceNotFoundError, ValidationError
from ledger_backend.app.models.accounting_enums import PartnerType, TransactionType
from ledger_backend.app.models.ledger_account import LedgerAccount
from ledger_backend.app.models.partner import Partner
from ledger_backend.app.schemas.accounting import JournalEntryCreate, JournalEntryLineIn
from ledger_backend.app.domain.accounting.journal import CASH_LEDGER, create_journal_entry
from ledger_backend.app.domain.accounting.ledger import get_or_create_ledger, require_system_ledger
from ledger_backend.app.domain.accounting.tenant import TenantQuery

logger = logging.getLogger("ledger.payments")

DEFAULT_BANK_LEDGER = "Bank Account (Default)"


async def _receiving_ledger(
    tenant: TenantQuery,
    payment_method: str,
    bank_ledger_account_id: Optional[int]
) -> LedgerAccount:
    if payment_method == "cash":
        return await require_system_ledger(tenant.db, tenant.company_id, CASH_LEDGER)

    if bank_ledger_account_id is not None:
        bank_ledger = await tenant.first(
            tenant.select(LedgerAccount).where(LedgerAccount.id == bank_ledger_account_id)
        )
        if not bank_ledger:
            raise ResourceNotFoundError("Ledger account", bank_ledger_account_id)
        return bank_ledger

    return await require_system_ledger(tenant.db, tenant.company_id, DEFAULT_BANK_LEDGER)


async def create_payment_journal_entry(
    db: AsyncSession,
    payment_id: str,
    customer_id: int,
    amount: float,
    payment_method: str,
    company_id: int,
    user_id: Optional[int],
    payment_number: str,
    payment_date: date,
    bank_ledger_account_id: Optional[int] = None,
    invoice_number: Optional[str] = None
) -> int:
    """
    Post a payment received from a customer.

    The customer line carries the invoice number as bill reference when
    the payment settles a specific invoice, else the payment number.

    Raises:
        ValidationError: Amount is not positive
        ComplianceError: Cash payment above the Section 269ST limit
        ResourceNotFoundError: Customer or bank ledger does not exist
        ConfigurationError: Cash / default bank ledger was never seeded
    """
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero", details={"amount": amount})

    if payment_method == "cash" and amount > settings.cash_transaction_limit:
        raise ComplianceError(
            "Section 269ST: Cash receipts above ₹2,00,000 are not allowed",
            details={"amount": amount, "limit": settings.cash_transaction_limit}
        )

    tenant = TenantQuery(db, company_id)

    customer = await tenant.first(tenant.select(Partner).where(Partner.id == customer_id))
    if not customer:
        raise ResourceNotFoundError("Customer", customer_id)

    customer_ledger = await get_or_create_ledger(
        db, customer.id, PartnerType.CUSTOMER, customer.display_name, company_id
    )
    receiving_ledger = await _receiving_ledger(tenant, payment_method, bank_ledger_account_id)

    narration = f"Payment received {payment_number}"
    if invoice_number:
        narration += f" for Invoice {invoice_number}"
    narration += f" via {payment_method}"

    lines = [
        JournalEntryLineIn(
            ledger_account_id=receiving_ledger.id,
            debit_amount=amount,
            credit_amount=0,
            bill_reference=payment_number,
        ),
        JournalEntryLineIn(
            ledger_account_id=customer_ledger.id,
            debit_amount=0,
            credit_amount=amount,
            bill_reference=invoice_number or payment_number,
        ),
    ]

    journal_entry_id = await create_journal_entry(db, JournalEntryCreate(
        transaction_type=TransactionType.PAYMENT_RECEIVED,
        transaction_id=str(payment_id),
        entry_date=payment_date,
        narration=narration,
        lines=lines,
        company_id=company_id,
        created_by=user_id,
    ))

    logger.info(
        "Payment %s of %s received into %s",
        payment_number, amount, receiving_ledger.name,
        extra={"company_id": company_id, "customer_id": customer_id}
    )

    return journal_entry_id
