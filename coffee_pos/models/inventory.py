from sqlalchemy import Column, Integer, String, Numeric, DateTime
from sqlalchemy.sql import func
from coffee_pos.db.database import Base


class InventoryItem(Base):
    """Raw ingredient stock.

    current_stock_level has no database check constraint: orders enforce the
    never-negative rule with a conditional debit inside their transaction
    (see InventoryService.debit_stock).
    """
    __tablename__ = "inventory_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False, unique=True)
    current_stock_level = Column(Numeric(12, 3), nullable=False, default=0)
    unit = Column(String(20), nullable=False)
    minimum_stock_level = Column(Numeric(12, 3), nullable=False, default=0)
    cost_per_unit = Column(Numeric(10, 2))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock_level < self.minimum_stock_level
