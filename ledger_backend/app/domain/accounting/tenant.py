"""
Tenant-scoped query helper.

Every table the accounting core touches carries `company_id`. Queries are
built through `TenantQuery` so the tenant filter is always present and new
rows are always stamped with the tenant.
"""

from typing import Any, Type
from sqlalchemy import select, Select
from sqlalchemy.ext.asyncio import AsyncSession


class TenantQuery:
    """
    Builds company-scoped statements for one session.

    Usage:
        tenant = TenantQuery(db, company_id)
        stmt = tenant.select(LedgerAccount).where(LedgerAccount.partner_id == 7)
    """

    def __init__(self, db: AsyncSession, company_id: int):
        if company_id is None:
            raise ValueError("company_id is required for tenant-scoped access")
        self.db = db
        self.company_id = company_id

    def scope(self, stmt: Select, *models: Type[Any]) -> Select:
        """Add the tenant filter for each model to an existing statement."""
        for model in models:
            stmt = stmt.where(model.company_id == self.company_id)
        return stmt

    def select(self, model: Type[Any], *joined: Type[Any]) -> Select:
        """`select(model)` filtered to this tenant, including joined models."""
        return self.scope(select(model), model, *joined)

    def select_columns(self, model: Type[Any], *columns: Any) -> Select:
        """`select(*columns)` from `model`, filtered to this tenant."""
        return self.scope(select(*columns).select_from(model), model)

    async def first(self, stmt: Select) -> Any:
        result = await self.db.execute(stmt.limit(1))
        return result.scalars().first()

    async def all(self, stmt: Select) -> list:
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    def add(self, obj: Any) -> Any:
        """Stamp the tenant onto a new row and add it to the session."""
        obj.company_id = self.company_id
        self.db.add(obj)
        return obj
