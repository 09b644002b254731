"""
Accounting enumerations.
"""

import enum


class AccountType(str, enum.Enum):
    """Chart-of-accounts classification of a ledger."""
    ASSET = "asset"
    LIABILITY = "liability"
    INCOME = "income"
    EXPENSE = "expense"


class BalanceType(str, enum.Enum):
    """Side of a ledger: the side that increases it, or the side a balance sits on."""
    DEBIT = "debit"
    CREDIT = "credit"


class PartnerType(str, enum.Enum):
    """Business partner classification used for ledger creation."""
    CUSTOMER = "customer"
    SUPPLIER = "supplier"


class TransactionType(str, enum.Enum):
    """Business event that originated a journal entry."""
    INVOICE = "invoice"
    PURCHASE_INVOICE = "purchase_invoice"
    PAYMENT_RECEIVED = "payment_received"
    PAYMENT_MADE = "payment_made"
    MANUAL = "manual"  # Entered directly by an accountant


# Accounts whose natural (increasing) side is debit
DEBIT_NATURE_ACCOUNT_TYPES = (AccountType.ASSET, AccountType.EXPENSE)
