"""
Accounting API Endpoints.

HTTP surface over the accounting core: GST calculation, manual journal
entries, ledgers and balances, and the postings triggered by invoices,
credit notes and payments.

Every route is scoped to the company in the X-Company-ID header.
Services only flush; routes commit once the posting succeeds.
"""

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.db.session import get_db
from ledger_backend.app.core.dependencies import TenantContext, get_tenant_context
from ledger_backend.app.models.accounting_enums import TransactionType
from ledger_backend.app.models.journal_entry import JournalEntry
from ledger_backend.app.schemas.accounting import (
    CreditNoteJournalRequest, GSTCalculateRequest, GSTCalculation,
    InvoiceFinalizeRequest, InvoicePostingResult, JournalEntryCreatedResponse,
    JournalEntryLineResponse, JournalEntryResponse, LedgerAccountResponse,
    LedgerBalance, ManualJournalEntryRequest, PaymentJournalRequest,
)
from ledger_backend.app.domain.accounting.gst import calculate_gst
from ledger_backend.app.domain.accounting.invoice import (
    create_credit_note_journal_entry, finalize_invoice_postings,
)
from ledger_backend.app.domain.accounting.journal import (
    create_manual_journal_entry, entry_totals, get_journal_entry, list_journal_entries,
)
from ledger_backend.app.domain.accounting.ledger import (
    calculate_ledger_balance, list_ledger_accounts,
)
from ledger_backend.app.domain.accounting.payments import create_payment_journal_entry

router = APIRouter(prefix="/accounting", tags=["Accounting"])


def _journal_entry_response(journal_entry: JournalEntry) -> JournalEntryResponse:
    total_debit, total_credit = entry_totals(journal_entry)
    return JournalEntryResponse(
        id=journal_entry.id,
        entry_number=journal_entry.entry_number,
        entry_date=journal_entry.entry_date,
        transaction_type=journal_entry.transaction_type.value,
        transaction_id=journal_entry.transaction_id,
        narration=journal_entry.narration,
        created_at=journal_entry.created_at,
        total_debit=total_debit,
        total_credit=total_credit,
        lines=[
            JournalEntryLineResponse(
                id=line.id,
                ledger_account_id=line.ledger_account_id,
                ledger_name=line.ledger_account.name,
                account_type=line.ledger_account.account_type.value,
                debit_amount=line.debit_amount,
                credit_amount=line.credit_amount,
                bill_reference=line.bill_reference,
            )
            for line in journal_entry.lines
        ],
    )


async def _created(db: AsyncSession, journal_entry_id: int, company_id: int) -> JournalEntryCreatedResponse:
    journal_entry = await get_journal_entry(db, journal_entry_id, company_id)
    return JournalEntryCreatedResponse(
        journal_entry_id=journal_entry.id,
        entry_number=journal_entry.entry_number,
    )


@router.post("/gst/calculate", response_model=GSTCalculation)
async def calculate_gst_split(request: GSTCalculateRequest):
    """Split GST for an amount into CGST/SGST or IGST."""
    return calculate_gst(
        request.amount,
        request.customer_state_code,
        request.company_state_code,
        request.gst_rate,
    )


@router.post("/journal-entries", response_model=JournalEntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_manual_entry(
    request: ManualJournalEntryRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Post a manual journal entry.

    Rejected with 422 if debits and credits differ, 400 if fewer than two
    lines or a cash debit breaches Section 269ST.
    """
    journal_entry_id = await create_manual_journal_entry(
        db,
        company_id=tenant.company_id,
        user_id=tenant.user_id,
        entry_date=request.entry_date,
        narration=request.narration,
        lines=request.lines,
    )
    response = await _created(db, journal_entry_id, tenant.company_id)
    await db.commit()
    return response


@router.get("/journal-entries", response_model=List[JournalEntryResponse])
async def list_entries(
    start_date: Optional[date] = Query(None, description="Entries on or after"),
    end_date: Optional[date] = Query(None, description="Entries on or before"),
    transaction_type: Optional[TransactionType] = Query(None),
    search: Optional[str] = Query(None, description="Entry number, narration or ledger name"),
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """List the company's journal entries, newest first."""
    entries = await list_journal_entries(
        db, tenant.company_id,
        start_date=start_date,
        end_date=end_date,
        transaction_type=transaction_type,
        search=search,
    )
    return [_journal_entry_response(entry) for entry in entries]


@router.get("/journal-entries/{journal_entry_id}", response_model=JournalEntryResponse)
async def get_entry(
    journal_entry_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """Get one journal entry with its lines."""
    return _journal_entry_response(await get_journal_entry(db, journal_entry_id, tenant.company_id))


@router.get("/ledgers", response_model=List[LedgerAccountResponse])
async def list_ledgers(
    active_only: bool = Query(True),
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """List the company's ledger accounts by name."""
    ledgers = await list_ledger_accounts(db, tenant.company_id, active_only=active_only)
    return [
        LedgerAccountResponse(
            id=ledger.id,
            name=ledger.name,
            account_type=ledger.account_type.value,
            balance_type=ledger.balance_type.value,
            current_balance=ledger.current_balance,
            partner_id=ledger.partner_id,
            is_system_ledger=ledger.is_system_ledger,
        )
        for ledger in ledgers
    ]


@router.get("/ledgers/{ledger_account_id}/balance", response_model=LedgerBalance)
async def get_ledger_balance(
    ledger_account_id: int,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """Balance of a ledger, derived from all of its journal lines."""
    return await calculate_ledger_balance(db, ledger_account_id, tenant.company_id)


@router.post("/invoices/{invoice_id}/finalize", response_model=InvoicePostingResult, status_code=status.HTTP_201_CREATED)
async def finalize_invoice(
    invoice_id: str,
    request: InvoiceFinalizeRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """
    Post the journal entries for a finalized invoice.

    Writes the sales entry and, for invoices raised against a goods
    dispatch, the cost-of-goods-sold entry.
    """
    result = await finalize_invoice_postings(
        db,
        invoice_id=invoice_id,
        invoice_number=request.invoice_number,
        form=request.form,
        company_id=tenant.company_id,
        user_id=tenant.user_id,
        company_state=request.company_state_code,
    )
    await db.commit()
    return result


@router.post("/credit-notes/{credit_note_id}/journal", response_model=JournalEntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def post_credit_note(
    credit_note_id: str,
    request: CreditNoteJournalRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """Post the reversal entry for a credit note."""
    journal_entry_id = await create_credit_note_journal_entry(
        db,
        credit_note_id=credit_note_id,
        customer_id=request.customer_id,
        totals=request.totals,
        company_id=tenant.company_id,
        user_id=tenant.user_id,
        credit_note_number=request.credit_note_number,
        credit_note_date=request.credit_note_date,
    )
    response = await _created(db, journal_entry_id, tenant.company_id)
    await db.commit()
    return response


@router.post("/payments/{payment_id}/journal", response_model=JournalEntryCreatedResponse, status_code=status.HTTP_201_CREATED)
async def post_payment(
    payment_id: str,
    request: PaymentJournalRequest,
    tenant: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db)
):
    """Post a payment received from a customer."""
    journal_entry_id = await create_payment_journal_entry(
        db,
        payment_id=payment_id,
        customer_id=request.customer_id,
        amount=request.amount,
        payment_method=request.payment_method,
        company_id=tenant.company_id,
        user_id=tenant.user_id,
        payment_number=request.payment_number,
        payment_date=request.payment_date,
        bank_ledger_account_id=request.bank_ledger_account_id,
        invoice_number=request.invoice_number,
    )
    response = await _created(db, journal_entry_id, tenant.company_id)
    await db.commit()
    return response
