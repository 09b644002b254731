"""
GST Calculator.

India's dual tax: a supply within one state carries CGST + SGST (half the
rate each); a supply across states carries IGST at the full rate.
"""

import math
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ledger_backend.app.core.config import settings
from ledger_backend.app.models.gst_settings import GSTSettings
from ledger_backend.app.schemas.accounting import GSTCalculation
from ledger_backend.app.domain.accounting.tenant import TenantQuery

logger = logging.getLogger("ledger.gst")


def round_currency(value: float) -> float:
    """
    Round to the nearest whole rupee, halves rounding up.

    Matches the half-up rounding used on issued invoices (not Python's
    banker's rounding).
    """
    return float(math.floor(value + 0.5))


def calculate_gst(
    amount: float,
    customer_state_code: str,
    company_state_code: str,
    gst_rate: float = 18
) -> GSTCalculation:
    """
    Calculate the GST breakdown for a taxable amount.

    CGST and SGST are rounded independently, so together they may differ
    from round(amount * rate / 100) by one rupee.

    Example:
        calculate_gst(10000, "MH", "MH", 18)
        -> cgst=900, sgst=900, igst=0, total_gst=1800, total_amount=11800
        calculate_gst(10000, "GJ", "MH", 18)
        -> cgst=0, sgst=0, igst=1800, total_gst=1800, total_amount=11800
    """
    cgst = sgst = igst = 0.0

    if customer_state_code == company_state_code:
        half_rate = gst_rate / 2
        cgst = round_currency(amount * half_rate / 100)
        sgst = round_currency(amount * half_rate / 100)
    else:
        igst = round_currency(amount * gst_rate / 100)

    total_gst = cgst + sgst + igst

    return GSTCalculation(
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        total_gst=total_gst,
        total_amount=amount + total_gst,
    )


async def get_gst_rate(db: AsyncSession, company_id: int) -> float:
    """
    Get the company's default GST rate.

    A missing settings row (or an unset rate) is not an error; it falls
    back to the configured default of 18%.
    """
    tenant = TenantQuery(db, company_id)
    gst_settings = await tenant.first(tenant.select(GSTSettings))

    if gst_settings is None or gst_settings.default_gst_rate is None:
        logger.debug("No GST rate configured for company %s, using default", company_id)
        return settings.default_gst_rate

    return gst_settings.default_gst_rate
