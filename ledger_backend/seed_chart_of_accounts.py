"""
Database seeding script for a company's chart of accounts.

Creates the account groups and system ledgers (Sales, GST output ledgers,
COGS, Inventory, Cash, Bank) the accounting core depends on.
Run this once per company before its first posting.

Usage:
    python -m ledger_backend.seed_chart_of_accounts <company_id>
"""

import asyncio
import sys

from ledger_backend.app.db.session import AsyncSessionLocal, engine, Base
from ledger_backend.app.domain.accounting.chart_of_accounts import seed_chart_of_accounts
# Import models to ensure they are registered with Base
from ledger_backend.app.models.account_group import AccountGroup  # noqa: F401
from ledger_backend.app.models.ledger_account import LedgerAccount  # noqa: F401
from ledger_backend.app.models.journal_entry import JournalEntry, JournalEntryLine  # noqa: F401
from ledger_backend.app.models.journal_entry_sequence import JournalEntrySequence  # noqa: F401
from ledger_backend.app.models.partner import Partner  # noqa: F401
from ledger_backend.app.models.gst_settings import GSTSettings  # noqa: F401
from ledger_backend.app.models.inventory import Product, StockUnit, GoodsDispatchItem  # noqa: F401
from ledger_backend.app.models.audit_log import AuditLog  # noqa: F401


async def seed(company_id: int):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as db:
        print(f"🌱 Seeding chart of accounts for company {company_id}...")

        created = await seed_chart_of_accounts(db, company_id)
        await db.commit()

        if not created["account_groups"] and not created["ledgers"]:
            print("ℹ️  Chart of accounts already present, nothing to do")
            return

        print(f"✅ Created {created['account_groups']} account groups")
        print(f"✅ Created {created['ledgers']} system ledgers")
        print("\n🎉 Chart of accounts seeding completed successfully!")


if __name__ == "__main__":
    if len(sys.argv) != 2 or not sys.argv[1].isdigit():
        print("Usage: python -m ledger_backend.seed_chart_of_accounts <company_id>")
        sys.exit(1)
    asyncio.run(seed(int(sys.argv[1])))
