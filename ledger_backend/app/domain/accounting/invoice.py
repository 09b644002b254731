"""
Invoice / Credit-Note Mapper.

Translates invoice finalization, cost-of-goods-sold recognition and credit
notes into balanced journal entries:

    Invoice:      Dr Customer (total)   Cr Sales (taxable)   Cr CGST/SGST/IGST Output
    COGS:         Dr Cost of Goods Sold                      Cr Inventory
    Credit note:  Dr Sales   Dr CGST/SGST/IGST Output        Cr Customer
"""

import logging
from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.exceptions import ConfigurationError, ResourceNotFoundError, ValidationError
from ledger_backend.app.models.accounting_enums import PartnerType, TransactionType
from ledger_backend.app.models.inventory import GoodsDispatchItem, Product, StockUnit
from ledger_backend.app.models.ledger_account import LedgerAccount
from ledger_backend.app.models.partner import Partner
from ledger_backend.app.schemas.accounting import (
    InvoiceFormData, InvoiceItem, InvoicePostingResult, InvoiceTotals,
    JournalEntryCreate, JournalEntryLineIn,
)
from ledger_backend.app.domain.accounting.gst import calculate_gst, get_gst_rate
from ledger_backend.app.domain.accounting.journal import create_journal_entry
from ledger_backend.app.domain.accounting.ledger import (
    get_or_create_ledger, get_system_ledgers, require_system_ledger,
)
from ledger_backend.app.domain.accounting.tenant import TenantQuery

logger = logging.getLogger("ledger.invoice")

SALES_LEDGER = "Sales"
CGST_OUTPUT_LEDGER = "CGST Output"
SGST_OUTPUT_LEDGER = "SGST Output"
IGST_OUTPUT_LEDGER = "IGST Output"
COGS_LEDGER = "Cost of Goods Sold"
INVENTORY_LEDGER = "Inventory"

SALES_LEDGERS = (SALES_LEDGER, CGST_OUTPUT_LEDGER, SGST_OUTPUT_LEDGER, IGST_OUTPUT_LEDGER)


def calculate_invoice_totals(
    items: Iterable[InvoiceItem],
    invoice_discount: float = 0,
    adjustment: float = 0
) -> InvoiceTotals:
    """
    Aggregate invoice totals from its items.

    subtotal       = sum(quantity * unit_rate)
    total_discount = sum(item discounts) + invoice discount
    taxable_amount = subtotal - total_discount
    gst_amount     = sum(cgst + sgst + igst)
    total_amount   = taxable_amount + gst_amount + adjustment
    """
    items = list(items)

    subtotal = sum(item.quantity * item.unit_rate for item in items)
    line_discounts = sum(item.discount_amount or 0 for item in items)
    total_discount = line_discounts + invoice_discount
    taxable_amount = subtotal - total_discount

    cgst_amount = sum(item.cgst_amount or 0 for item in items)
    sgst_amount = sum(item.sgst_amount or 0 for item in items)
    igst_amount = sum(item.igst_amount or 0 for item in items)
    gst_amount = cgst_amount + sgst_amount + igst_amount

    return InvoiceTotals(
        subtotal=subtotal,
        total_discount=total_discount,
        taxable_amount=taxable_amount,
        cgst_amount=cgst_amount,
        sgst_amount=sgst_amount,
        igst_amount=igst_amount,
        gst_amount=gst_amount,
        adjustment_amount=adjustment,
        total_amount=taxable_amount + gst_amount + adjustment,
    )


async def calculate_item_gst(
    db: AsyncSession,
    item: InvoiceItem,
    customer_state: str,
    company_state: str,
    company_id: int,
    gst_rate: Optional[float] = None
) -> InvoiceItem:
    """
    Fill an item's taxable amount, GST split and line total.

    A tax type that does not apply (amount 0) is recorded with rate 0.
    """
    rate = gst_rate if gst_rate is not None else await get_gst_rate(db, company_id)

    taxable_amount = item.quantity * item.unit_rate - (item.discount_amount or 0)
    gst = calculate_gst(taxable_amount, customer_state, company_state, rate)

    return item.model_copy(update={
        "taxable_amount": taxable_amount,
        "cgst_rate": rate / 2 if gst.cgst > 0 else 0,
        "cgst_amount": gst.cgst,
        "sgst_rate": rate / 2 if gst.sgst > 0 else 0,
        "sgst_amount": gst.sgst,
        "igst_rate": rate if gst.igst > 0 else 0,
        "igst_amount": gst.igst,
        "line_total": taxable_amount + gst.total_gst,
    })


async def _get_customer(tenant: TenantQuery, customer_id: int) -> Partner:
    customer = await tenant.first(tenant.select(Partner).where(Partner.id == customer_id))
    if not customer:
        raise ResourceNotFoundError("Customer", customer_id)
    return customer


async def _customer_ledger(db: AsyncSession, customer_id: int, company_id: int) -> LedgerAccount:
    customer = await _get_customer(TenantQuery(db, company_id), customer_id)
    return await get_or_create_ledger(
        db, customer.id, PartnerType.CUSTOMER, customer.display_name, company_id
    )


async def _sales_ledgers(db: AsyncSession, company_id: int, totals: InvoiceTotals) -> dict:
    """
    Resolve Sales and the tax output ledgers.

    Sales is always required; a tax ledger is required only when the
    invoice carries that tax.
    """
    ledgers = await get_system_ledgers(db, company_id, SALES_LEDGERS)

    if SALES_LEDGER not in ledgers:
        raise ConfigurationError(
            "Sales ledger not found",
            details={"ledger": SALES_LEDGER, "company_id": company_id}
        )

    for name, amount in _tax_amounts(totals):
        if amount != 0 and name not in ledgers:
            raise ConfigurationError(
                f"{name} ledger not found",
                details={"ledger": name, "company_id": company_id}
            )

    return ledgers


def _tax_amounts(totals: InvoiceTotals) -> list[tuple[str, float]]:
    return [
        (CGST_OUTPUT_LEDGER, totals.cgst_amount),
        (SGST_OUTPUT_LEDGER, totals.sgst_amount),
        (IGST_OUTPUT_LEDGER, totals.igst_amount),
    ]


async def create_invoice_journal_entry(
    db: AsyncSession,
    invoice_id: str,
    customer_id: int,
    totals: InvoiceTotals,
    company_id: int,
    user_id: Optional[int],
    invoice_number: str,
    invoice_date: date
) -> int:
    """
    Post a finalized invoice.

    Dr Customer for the invoice total (bill reference = invoice number),
    Cr Sales for the taxable amount, Cr each tax output ledger with a
    positive amount.

    Raises:
        ResourceNotFoundError: Customer does not exist
        ValidationError: Taxable or total amount is negative
        ConfigurationError: Sales (or a needed tax ledger) was never seeded
    """
    if totals.taxable_amount < 0 or totals.total_amount < 0:
        raise ValidationError(
            "Invoice amounts cannot be negative",
            details={"taxable_amount": totals.taxable_amount, "total_amount": totals.total_amount},
        )

    customer_ledger = await _customer_ledger(db, customer_id, company_id)
    ledgers = await _sales_ledgers(db, company_id, totals)

    lines = [
        JournalEntryLineIn(
            ledger_account_id=customer_ledger.id,
            debit_amount=totals.total_amount,
            credit_amount=0,
            bill_reference=invoice_number,
        ),
        JournalEntryLineIn(
            ledger_account_id=ledgers[SALES_LEDGER].id,
            debit_amount=0,
            credit_amount=totals.taxable_amount,
        ),
    ]

    for name, amount in _tax_amounts(totals):
        if amount > 0:
            lines.append(JournalEntryLineIn(
                ledger_account_id=ledgers[name].id,
                debit_amount=0,
                credit_amount=amount,
            ))

    return await create_journal_entry(db, JournalEntryCreate(
        transaction_type=TransactionType.INVOICE,
        transaction_id=str(invoice_id),
        entry_date=invoice_date,
        narration=f"Invoice {invoice_number}",
        lines=lines,
        company_id=company_id,
        created_by=user_id,
    ))


async def calculate_dispatch_cost(db: AsyncSession, dispatch_id: int, company_id: int) -> tuple[int, float]:
    """
    Cost of the goods on a dispatch.

    Returns:
        (number of dispatch items, sum of dispatched quantity x product cost)
    """
    tenant = TenantQuery(db, company_id)
    result = await db.execute(
        tenant.scope(
            tenant.select_columns(
                GoodsDispatchItem,
                GoodsDispatchItem.dispatched_quantity,
                Product.cost_price_per_unit,
            )
            .join(StockUnit, GoodsDispatchItem.stock_unit_id == StockUnit.id)
            .join(Product, StockUnit.product_id == Product.id)
            .where(GoodsDispatchItem.dispatch_id == dispatch_id),
            StockUnit, Product,
        )
    )
    rows = result.all()

    total_cost = sum((quantity or 0) * (cost or 0) for quantity, cost in rows)
    return len(rows), total_cost


async def create_cogs_entry(
    db: AsyncSession,
    invoice_id: str,
    dispatch_id: int,
    company_id: int,
    user_id: Optional[int],
    invoice_number: str,
    invoice_date: date
) -> Optional[int]:
    """
    Recognise cost of goods sold for an invoiced dispatch.

    Returns None (no entry) when the dispatch has no items or costs nothing.

    Raises:
        ConfigurationError: Cost of Goods Sold or Inventory ledger missing
    """
    item_count, total_cost = await calculate_dispatch_cost(db, dispatch_id, company_id)

    if item_count == 0:
        logger.warning(
            "No dispatch items found for COGS calculation (dispatch %s)", dispatch_id,
            extra={"company_id": company_id, "invoice_id": invoice_id}
        )
        return None

    if total_cost == 0:
        logger.warning(
            "Total cost is zero, skipping COGS entry (dispatch %s)", dispatch_id,
            extra={"company_id": company_id, "invoice_id": invoice_id}
        )
        return None

    cogs_ledger = await require_system_ledger(db, company_id, COGS_LEDGER)
    inventory_ledger = await require_system_ledger(db, company_id, INVENTORY_LEDGER)

    lines = [
        JournalEntryLineIn(ledger_account_id=cogs_ledger.id, debit_amount=total_cost, credit_amount=0),
        JournalEntryLineIn(ledger_account_id=inventory_ledger.id, debit_amount=0, credit_amount=total_cost),
    ]

    return await create_journal_entry(db, JournalEntryCreate(
        transaction_type=TransactionType.INVOICE,
        transaction_id=str(invoice_id),
        entry_date=invoice_date,
        narration=f"COGS for Invoice {invoice_number}",
        lines=lines,
        company_id=company_id,
        created_by=user_id,
    ))


async def create_credit_note_journal_entry(
    db: AsyncSession,
    credit_note_id: str,
    customer_id: int,
    totals: InvoiceTotals,
    company_id: int,
    user_id: Optional[int],
    credit_note_number: str,
    credit_note_date: date
) -> int:
    """
    Post a credit note as the full reversal of an invoice posting.

    Totals may arrive already negated by the invoice layer; every amount
    is taken as its absolute value, so either sign posts the same entry.
    """
    customer_ledger = await _customer_ledger(db, customer_id, company_id)
    ledgers = await _sales_ledgers(db, company_id, totals)

    lines = [
        JournalEntryLineIn(
            ledger_account_id=ledgers[SALES_LEDGER].id,
            debit_amount=abs(totals.taxable_amount),
            credit_amount=0,
        ),
    ]

    for name, amount in _tax_amounts(totals):
        if amount != 0:
            lines.append(JournalEntryLineIn(
                ledger_account_id=ledgers[name].id,
                debit_amount=abs(amount),
                credit_amount=0,
            ))

    lines.append(JournalEntryLineIn(
        ledger_account_id=customer_ledger.id,
        debit_amount=0,
        credit_amount=abs(totals.total_amount),
        bill_reference=credit_note_number,
    ))

    return await create_journal_entry(db, JournalEntryCreate(
        transaction_type=TransactionType.INVOICE,
        transaction_id=str(credit_note_id),
        entry_date=credit_note_date,
        narration=f"Credit Note {credit_note_number}",
        lines=lines,
        company_id=company_id,
        created_by=user_id,
    ))


async def finalize_invoice_postings(
    db: AsyncSession,
    invoice_id: str,
    invoice_number: str,
    form: InvoiceFormData,
    company_id: int,
    user_id: Optional[int],
    company_state: str
) -> InvoicePostingResult:
    """
    Post everything an invoice needs when it is finalized.

    Flow:
    1. Resolve the customer's state (GST regime)
    2. Compute GST per item and the invoice totals
    3. Post the invoice entry
    4. Post the COGS entry if the invoice came from a dispatch
    """
    # Adjustments have no ledger to credit
    if form.adjustment_amount:
        raise ValidationError(
            "Invoice adjustment cannot be posted: no round-off ledger is configured",
            details={"adjustment_amount": form.adjustment_amount},
        )

    customer = await _get_customer(TenantQuery(db, company_id), form.customer_id)
    customer_state = customer.state_code or ""

    rate = await get_gst_rate(db, company_id)
    items: List[InvoiceItem] = [
        await calculate_item_gst(db, item, customer_state, company_state, company_id, rate)
        for item in form.items
    ]
    totals = calculate_invoice_totals(items, form.discount_amount, form.adjustment_amount)

    journal_entry_id = await create_invoice_journal_entry(
        db, invoice_id, form.customer_id, totals, company_id, user_id,
        invoice_number, form.invoice_date
    )

    cogs_journal_entry_id = None
    if form.dispatch_id is not None:
        cogs_journal_entry_id = await create_cogs_entry(
            db, invoice_id, form.dispatch_id, company_id, user_id,
            invoice_number, form.invoice_date
        )

    return InvoicePostingResult(
        journal_entry_id=journal_entry_id,
        cogs_journal_entry_id=cogs_journal_entry_id,
        items=items,
        totals=totals,
    )
