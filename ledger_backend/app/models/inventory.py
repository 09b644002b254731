"""
Inventory database models read for cost-of-goods-sold.

Only the columns the accounting core needs: dispatched quantity and the
product's cost price, reached through the stock unit.
"""

from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from ledger_backend.app.db.session import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    name = Column(String(255), nullable=False)
    cost_price_per_unit = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', cost={self.cost_price_per_unit})>"


class StockUnit(Base):
    __tablename__ = "stock_units"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    product_id = Column(Integer, ForeignKey('products.id'), nullable=False, index=True)

    product = relationship("Product")

    def __repr__(self):
        return f"<StockUnit(id={self.id}, product_id={self.product_id})>"


class GoodsDispatchItem(Base):
    """
    One stock unit leaving the warehouse as part of a goods dispatch.
    """
    __tablename__ = "goods_dispatch_items"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    company_id = Column(Integer, nullable=False, index=True)

    dispatch_id = Column(Integer, nullable=False, index=True)
    stock_unit_id = Column(Integer, ForeignKey('stock_units.id'), nullable=False, index=True)
    dispatched_quantity = Column(Float, nullable=True)

    stock_unit = relationship("StockUnit")

    def __repr__(self):
        return f"<GoodsDispatchItem(id={self.id}, dispatch_id={self.dispatch_id}, qty={self.dispatched_quantity})>"
