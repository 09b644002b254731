"""
Accounting Schemas.

Value objects passed across the accounting core's boundary. Invoice items
arrive from the invoice layer loosely shaped; they are validated here once.
"""

from pydantic import BaseModel, Field, model_validator
from datetime import date, datetime
from typing import Optional, List
from ledger_backend.app.models.accounting_enums import BalanceType, TransactionType


class JournalEntryLineIn(BaseModel):
    """One debit-or-credit line to be posted."""
    ledger_account_id: int
    debit_amount: float = Field(0, ge=0)
    credit_amount: float = Field(0, ge=0)
    bill_reference: Optional[str] = None


class JournalEntryCreate(BaseModel):
    """A complete journal entry handed to the journal engine."""
    transaction_type: TransactionType
    transaction_id: Optional[str] = None
    entry_date: date
    narration: str
    lines: List[JournalEntryLineIn]
    company_id: int
    created_by: Optional[int] = None


class DoubleEntryValidation(BaseModel):
    """Result of the Dr = Cr check."""
    valid: bool
    total_debit: float
    total_credit: float
    difference: float
    error_message: Optional[str] = None


class LedgerBalance(BaseModel):
    """Balance derived by replaying a ledger's lines."""
    balance: float
    balance_type: BalanceType


class GSTCalculation(BaseModel):
    """GST breakdown for one taxable amount."""
    cgst: float
    sgst: float
    igst: float
    total_gst: float
    total_amount: float


class GSTCalculateRequest(BaseModel):
    amount: float = Field(..., ge=0)
    customer_state_code: str
    company_state_code: str
    gst_rate: float = Field(18, ge=0)


class InvoiceItem(BaseModel):
    """
    One product line of an invoice.

    Tax fields are filled by `calculate_item_gst`; they default to zero so
    a bare item (product, quantity, rate, discount) is accepted as input.
    """
    product_id: int
    product_name: Optional[str] = None
    hsn_code: Optional[str] = None
    dispatch_item_id: Optional[int] = None
    quantity: float = Field(..., gt=0)
    unit_rate: float = Field(..., ge=0)
    discount_amount: float = Field(0, ge=0)
    taxable_amount: float = 0
    cgst_rate: float = 0
    cgst_amount: float = 0
    sgst_rate: float = 0
    sgst_amount: float = 0
    igst_rate: float = 0
    igst_amount: float = 0
    line_total: float = 0

    @model_validator(mode="after")
    def discount_within_line(self) -> "InvoiceItem":
        if self.discount_amount > self.quantity * self.unit_rate:
            raise ValueError("discount_amount cannot exceed quantity * unit_rate")
        return self


class InvoiceTotals(BaseModel):
    """Invoice aggregate, recomputed from items every time."""
    subtotal: float
    total_discount: float
    taxable_amount: float
    cgst_amount: float = 0
    sgst_amount: float = 0
    igst_amount: float = 0
    gst_amount: float
    adjustment_amount: float = 0
    total_amount: float


class InvoiceFormData(BaseModel):
    """Invoice as submitted by the invoice layer."""
    customer_id: int
    dispatch_id: Optional[int] = None
    invoice_date: date
    due_date: Optional[date] = None
    items: List[InvoiceItem]
    discount_amount: float = Field(0, ge=0)
    adjustment_amount: float = 0
    notes: Optional[str] = None

    @model_validator(mode="after")
    def discount_within_items(self) -> "InvoiceFormData":
        net = sum(item.quantity * item.unit_rate - item.discount_amount for item in self.items)
        if self.discount_amount > net:
            raise ValueError("discount_amount cannot exceed the net amount of the items")
        return self


class InvoicePostingResult(BaseModel):
    """Journal entries written when an invoice is finalized."""
    journal_entry_id: int
    cogs_journal_entry_id: Optional[int] = None
    items: List[InvoiceItem]
    totals: InvoiceTotals


class InvoiceFinalizeRequest(BaseModel):
    invoice_number: str = Field(..., min_length=1, max_length=64)
    company_state_code: str
    form: InvoiceFormData


class CreditNoteJournalRequest(BaseModel):
    customer_id: int
    credit_note_number: str = Field(..., min_length=1, max_length=64)
    credit_note_date: date
    totals: InvoiceTotals


class PaymentJournalRequest(BaseModel):
    customer_id: int
    amount: float = Field(..., gt=0)
    payment_method: str = Field(..., pattern="^(cash|bank|cheque|upi)$")
    payment_number: str = Field(..., min_length=1, max_length=64)
    payment_date: date
    bank_ledger_account_id: Optional[int] = None
    invoice_number: Optional[str] = None


class ManualJournalEntryRequest(BaseModel):
    entry_date: date
    narration: str = Field(..., min_length=1)
    lines: List[JournalEntryLineIn]


class JournalEntryCreatedResponse(BaseModel):
    journal_entry_id: int
    entry_number: Optional[str] = None


class JournalEntryLineResponse(BaseModel):
    id: int
    ledger_account_id: int
    ledger_name: str
    account_type: str
    debit_amount: float
    credit_amount: float
    bill_reference: Optional[str]


class JournalEntryResponse(BaseModel):
    id: int
    entry_number: str
    entry_date: date
    transaction_type: str
    transaction_id: Optional[str]
    narration: Optional[str]
    created_at: datetime
    total_debit: float
    total_credit: float
    lines: List[JournalEntryLineResponse]


class LedgerAccountResponse(BaseModel):
    """Schema for displaying a ledger account."""
    id: int
    name: str
    account_type: str
    balance_type: str
    current_balance: float
    partner_id: Optional[int]
    is_system_ledger: bool

    class Config:
        from_attributes = True
