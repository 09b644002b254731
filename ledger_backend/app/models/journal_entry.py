"""
Journal Entry database models.

Immutable double-entry records. A header is written together with all of
its lines in one unit of work; corrections are new reversing entries.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Date, Enum, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base
from ledger_backend.app.models.accounting_enums import TransactionType


class JournalEntry(Base):
    """
    Journal Entry header.

    Entry numbers follow JE-YYYY-NNNN and are unique per company.
    NO updates or deletions allowed.
    """
    __tablename__ = "journal_entries"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    entry_number = Column(String(32), nullable=False)
    transaction_type = Column(Enum(TransactionType), nullable=False, index=True)
    transaction_id = Column(String(64), nullable=True, index=True)  # Originating invoice/payment
    entry_date = Column(Date, nullable=False, index=True)
    narration = Column(Text, nullable=True)

    created_by = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    lines = relationship("JournalEntryLine", back_populates="journal_entry", order_by="JournalEntryLine.id")

    __table_args__ = (
        UniqueConstraint('company_id', 'entry_number', name='uq_journal_entries_company_number'),
    )

    def __repr__(self):
        return f"<JournalEntry(id={self.id}, number='{self.entry_number}', type='{self.transaction_type.value}')>"


class JournalEntryLine(Base):
    """
    One debit-or-credit posting against one ledger account.
    """
    __tablename__ = "journal_entry_lines"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    journal_entry_id = Column(Integer, ForeignKey('journal_entries.id'), nullable=False, index=True)
    ledger_account_id = Column(Integer, ForeignKey('ledger_accounts.id'), nullable=False, index=True)

    debit_amount = Column(Float, default=0.0, nullable=False)
    credit_amount = Column(Float, default=0.0, nullable=False)
    bill_reference = Column(String(64), nullable=True)  # AR/AP sub-ledger tracking

    journal_entry = relationship("JournalEntry", back_populates="lines")
    ledger_account = relationship("LedgerAccount")

    def __repr__(self):
        return f"<JournalEntryLine(id={self.id}, ledger={self.ledger_account_id}, dr={self.debit_amount}, cr={self.credit_amount})>"
