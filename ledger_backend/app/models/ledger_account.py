"""
Ledger Account database model.

One posting account in the chart of accounts. Partner ledgers are created
lazily on a partner's first transaction; system ledgers are seeded.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Enum, Boolean, UniqueConstraint
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base
from ledger_backend.app.models.accounting_enums import AccountType, BalanceType


class LedgerAccount(Base):
    """
    Ledger Account model.

    Never deleted: financial history must remain addressable.
    `current_balance` is a cache only; balances are derived from
    journal entry lines.
    """
    __tablename__ = "ledger_accounts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    name = Column(String(255), nullable=False)
    account_group_id = Column(Integer, ForeignKey('account_groups.id'), nullable=False, index=True)
    account_type = Column(Enum(AccountType), nullable=False)

    current_balance = Column(Float, default=0.0, nullable=False)
    balance_type = Column(Enum(BalanceType), nullable=False)  # Natural (increasing) side

    # Receivable/payable ledgers link to one customer or supplier
    partner_id = Column(Integer, ForeignKey('partners.id'), nullable=True, index=True)
    is_system_ledger = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        # At most one ledger per partner per company
        UniqueConstraint('company_id', 'partner_id', name='uq_ledger_accounts_company_partner'),
    )

    def __repr__(self):
        return f"<LedgerAccount(id={self.id}, name='{self.name}', type='{self.account_type.value}')>"
