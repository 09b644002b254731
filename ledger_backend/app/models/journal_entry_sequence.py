"""
Journal Entry Sequence database model.

Per-company, per-year counter backing JE-YYYY-NNNN entry numbers.
"""

from sqlalchemy import Column, Integer, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base


class JournalEntrySequence(Base):
    """
    Counter row incremented atomically for every journal entry.
    """
    __tablename__ = "journal_entry_sequences"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)
    year = Column(Integer, nullable=False)
    last_value = Column(Integer, default=0, nullable=False)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('company_id', 'year', name='uq_journal_entry_sequences_company_year'),
    )

    def __repr__(self):
        return f"<JournalEntrySequence(company_id={self.company_id}, year={self.year}, last={self.last_value})>"
