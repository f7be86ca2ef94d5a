from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional
from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from coffee_pos.models.order import Order, OrderItem, OrderStatus
from coffee_pos.models.product import Product
from coffee_pos.models.inventory import InventoryItem
from coffee_pos.models.user import User
from coffee_pos.services.order_query import day_bounds
from coffee_pos.services.order_service import to_money
from coffee_pos.errors import InvalidDateRange

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _money(value: Optional[Any]) -> Decimal:
    if value is None:
        return ZERO
    return to_money(Decimal(str(value)))


def _day(value: Any) -> str:
    # func.date() gives a string on SQLite and a date on PostgreSQL
    return value.isoformat() if isinstance(value, date) else str(value)


class ReportService:
    """Read-only aggregates over orders, catalog and inventory"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def daily_sales(self, day: date) -> List[Dict[str, Any]]:
        lower, upper = day_bounds(day, day)
        result = await self.db.execute(
            select(
                Order.payment_method,
                func.count(Order.id).label("order_count"),
                func.sum(Order.total_amount).label("total_sales"),
                func.sum(case((Order.status == OrderStatus.COMPLETED, 1), else_=0)).label("completed_orders"),
                func.sum(case((Order.status == OrderStatus.CANCELLED, 1), else_=0)).label("cancelled_orders"),
            )
            .where(Order.created_at >= lower, Order.created_at < upper)
            .group_by(Order.payment_method)
            .order_by(Order.payment_method)
        )
        return [
            {
                "date": day.isoformat(),
                "payment_method": row.payment_method,
                "order_count": row.order_count,
                "total_sales": _money(row.total_sales),
                "completed_orders": row.completed_orders or 0,
                "cancelled_orders": row.cancelled_orders or 0,
            }
            for row in result.all()
        ]

    async def sales_by_range(self, start: date, end: date) -> List[Dict[str, Any]]:
        if end < start:
            raise InvalidDateRange(start, end)
        lower, upper = day_bounds(start, end)
        day = func.date(Order.created_at).label("day")
        result = await self.db.execute(
            select(
                day,
                func.count(Order.id).label("order_count"),
                func.sum(Order.total_amount).label("total_sales"),
            )
            .where(Order.created_at >= lower, Order.created_at < upper)
            .group_by(day)
            .order_by(day)
        )
        return [
            {
                "date": _day(row.day),
                "order_count": row.order_count,
                "total_sales": _money(row.total_sales),
            }
            for row in result.all()
        ]

    async def best_sellers(
        self,
        limit: int = 5,
        start: Optional[date] = None,
        end: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """Top products by units sold in completed orders"""
        if start and end and end < start:
            raise InvalidDateRange(start, end)
        total_quantity = func.sum(OrderItem.quantity).label("total_quantity")
        query = (
            select(
                OrderItem.product_id,
                func.coalesce(Product.name, "Unknown Product").label("name"),
                func.coalesce(Product.category, "Unknown Category").label("category"),
                total_quantity,
                func.sum(OrderItem.subtotal).label("total_sales"),
            )
            .join(Order, Order.id == OrderItem.order_id)
            .outerjoin(Product, Product.id == OrderItem.product_id)
            .where(Order.status == OrderStatus.COMPLETED)
        )
        lower, upper = day_bounds(start, end)
        if lower:
            query = query.where(Order.created_at >= lower)
        if upper:
            query = query.where(Order.created_at < upper)

        result = await self.db.execute(
            query
            .group_by(OrderItem.product_id, Product.name, Product.category)
            .order_by(total_quantity.desc(), OrderItem.product_id)
            .limit(limit)
        )
        return [
            {
                "product_id": row.product_id,
                "name": row.name,
                "category": row.category,
                "total_quantity": int(row.total_quantity),
                "total_sales": _money(row.total_sales),
            }
            for row in result.all()
        ]

    async def inventory_valuation(self) -> Dict[str, Any]:
        result = await self.db.execute(select(InventoryItem).order_by(InventoryItem.name))
        items = []
        total_value = ZERO
        low_stock = 0
        for item in result.scalars().all():
            # Items without a cost cannot be valued
            if not item.cost_per_unit or item.cost_per_unit <= 0:
                continue
            value = to_money(item.current_stock_level * item.cost_per_unit)
            if item.is_low_stock:
                low_stock += 1
            total_value += value
            items.append({
                "id": item.id,
                "name": item.name,
                "current_stock": item.current_stock_level,
                "unit": item.unit,
                "cost_per_unit": _money(item.cost_per_unit),
                "total_value": value,
                "status": "low" if item.is_low_stock else "normal",
            })

        items.sort(key=lambda i: i["total_value"], reverse=True)
        logger.info(f"Inventory valued at {total_value} across {len(items)} items ({low_stock} low)")
        return {
            "items": items,
            "summary": {
                "total_value": to_money(total_value),
                "total_items": len(items),
                "low_stock_items": low_stock,
            },
        }

    async def category_mix(self) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(
                Product.category,
                func.count(Product.id).label("count"),
                func.sum(case((Product.is_available.is_(True), 1), else_=0)).label("available_count"),
                func.sum(Product.price).label("total_price"),
            )
            .group_by(Product.category)
            .order_by(Product.category)
        )
        report = []
        for row in result.all():
            available = row.available_count or 0
            report.append({
                "category": row.category,
                "count": row.count,
                "available_count": available,
                "unavailable_count": row.count - available,
                "avg_price": _money(Decimal(str(row.total_price)) / row.count),
            })
        return report

    async def user_activity(self) -> List[Dict[str, Any]]:
        result = await self.db.execute(
            select(
                User.id,
                User.username,
                User.role,
                User.last_login_at,
                func.count(Order.id).label("orders_count"),
                func.sum(Order.total_amount).label("total_sales"),
                func.max(Order.created_at).label("last_order_at"),
            )
            .outerjoin(Order, Order.user_id == User.id)
            .group_by(User.id, User.username, User.role, User.last_login_at)
            .order_by(User.id)
        )
        report = []
        for row in result.all():
            candidates = [t for t in (row.last_login_at, row.last_order_at) if t is not None]
            report.append({
                "user_id": row.id,
                "username": row.username,
                "role": row.role,
                "orders_count": row.orders_count,
                "total_sales": _money(row.total_sales),
                "last_active": max(candidates) if candidates else None,
            })
        return report
