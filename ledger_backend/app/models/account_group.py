"""
Account Group database model.

Groups are the fixed parents of ledgers in the chart of accounts
(e.g. "Sundry Debtors", "Duties & Taxes").
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum, UniqueConstraint
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base
from ledger_backend.app.models.accounting_enums import AccountType


class AccountGroup(Base):
    """
    Account Group model.

    Seeded per company before any transaction is posted.
    """
    __tablename__ = "account_groups"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    name = Column(String(100), nullable=False)
    nature = Column(Enum(AccountType), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint('company_id', 'name', name='uq_account_groups_company_name'),
    )

    def __repr__(self):
        return f"<AccountGroup(id={self.id}, name='{self.name}', nature='{self.nature.value}')>"
