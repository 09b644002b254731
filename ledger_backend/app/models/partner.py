"""
Partner database model.

Customers and suppliers, read by the accounting core to name ledgers
and to pick the GST regime.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base
from ledger_backend.app.models.accounting_enums import PartnerType


class Partner(Base):
    """
    Partner model (customer or supplier).
    """
    __tablename__ = "partners"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    partner_type = Column(Enum(PartnerType), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    company_name = Column(String(255), nullable=True)
    state_code = Column(String(8), nullable=True)  # e.g. "MH", "GJ"

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    @property
    def display_name(self) -> str:
        """Company name, else "first last"."""
        if self.company_name:
            return self.company_name
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Partner(id={self.id}, name='{self.display_name}', type='{self.partner_type.value}')>"
