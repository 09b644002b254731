"""
GST Settings database model.

Per-company tax defaults.
"""

from sqlalchemy import Column, Integer, Float, DateTime
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base


class GSTSettings(Base):
    """
    GST Settings model. One row per company at most.
    """
    __tablename__ = "gst_settings"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, unique=True, index=True)

    default_gst_rate = Column(Float, nullable=True)  # Percent, e.g. 18

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<GSTSettings(company_id={self.company_id}, rate={self.default_gst_rate})>"
