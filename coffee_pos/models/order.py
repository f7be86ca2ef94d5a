from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, CheckConstraint, Index
from sqlalchemy.orm import relationship
from coffee_pos.db.database import Base


class PaymentMethod:
    CASH = "cash"
    CARD = "card"

    ALL = (CASH, CARD)


class OrderStatus:
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (PENDING, COMPLETED, CANCELLED)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    total_amount = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(10), nullable=False)
    status = Column(String(20), nullable=False, default=OrderStatus.PENDING)
    cash_received = Column(Numeric(10, 2))
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("payment_method IN ('cash', 'card')", name="payment_method_valid"),
        CheckConstraint("status IN ('pending', 'completed', 'cancelled')", name="order_status_valid"),
        Index("idx_orders_created", "created_at", "id"),
        Index("idx_orders_user", "user_id"),
        Index("idx_orders_status", "status"),
    )

    items = relationship(
        "OrderItem",
        back_populates="order",
        order_by="OrderItem.id",
        cascade="all, delete-orphan",
    )
    user = relationship("User")

    @property
    def user_name(self) -> str:
        return self.user.username if self.user is not None else "Unknown User"

    @property
    def change_due(self) -> Optional[Decimal]:
        if self.payment_method != PaymentMethod.CASH or self.cash_received is None:
            return None
        return self.cash_received - self.total_amount


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)  # catalog price at order time
    subtotal = Column(Numeric(10, 2), nullable=False)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_item_quantity"),
        Index("idx_order_items_order", "order_id"),
        Index("idx_order_items_product", "product_id"),
    )

    order = relationship("Order", back_populates="items")
    product = relationship("Product")

    @property
    def product_name(self) -> str:
        return self.product.name if self.product is not None else "Unknown Product"

    @property
    def product_category(self) -> str:
        return self.product.category if self.product is not None else "Unknown Category"
