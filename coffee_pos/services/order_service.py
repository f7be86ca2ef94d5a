from collections import OrderedDict
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select
from sqlalchemy.ext.asyncio import AsyncSession
import asyncio
import logging

from coffee_pos.config import Settings
from coffee_pos.models.order import Order, OrderItem, OrderStatus, PaymentMethod
from coffee_pos.models.system_log import LogLevel, LogCategory
from coffee_pos.services.audit import AuditSink
from coffee_pos.services.catalog_service import CatalogService
from coffee_pos.services.inventory_service import InventoryService
from coffee_pos.services.order_query import OrderQueryBuilder, OrderSearchCriteria
from coffee_pos.errors import (
    PosError, EmptyOrder, InvalidQuantity, InvalidPaymentMethod, MissingCashReceived,
    InvalidStatus, InvalidAmount, ProductNotFound, ProductUnavailable, InsufficientStock,
    InsufficientPayment, InventoryItemNotFound, OrderNotFound, InvalidStatusTransition,
    OrderPersistenceError, OrderTimeout,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Only used when strict_order_transitions is enabled
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: (OrderStatus.COMPLETED, OrderStatus.CANCELLED),
    OrderStatus.COMPLETED: (),
    OrderStatus.CANCELLED: (),
}


def to_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _field(item: Any, name: str) -> Any:
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


class OrderService:
    """Order engine.

    ``create_order`` prices the cart from the catalog, expands recipes into
    ingredient requirements, checks and debits stock, and persists the order
    with its items. All of it happens in one transaction on ``self.db``: it
    either commits completely or leaves no trace.
    """

    def __init__(self, db: AsyncSession, audit: Optional[AuditSink] = None, settings: Optional[Settings] = None):
        self.db = db
        self.audit = audit
        self.settings = settings
        self.catalog = CatalogService(db)
        self.inventory = InventoryService(db)

    @property
    def _max_page_size(self) -> int:
        return self.settings.max_page_size if self.settings else 100

    def _validate_order(
        self,
        items: Iterable[Any],
        payment_method: Any,
        cash_received: Any
    ) -> Tuple[List[Tuple[int, int]], Optional[Decimal]]:
        """Shape checks done before touching storage"""
        lines = []
        for item in items or []:
            product_id = _field(item, "product_id")
            quantity = _field(item, "quantity")
            valid_id = isinstance(product_id, int) and not isinstance(product_id, bool)
            valid_quantity = isinstance(quantity, int) and not isinstance(quantity, bool) and quantity > 0
            if not (valid_id and valid_quantity):
                raise InvalidQuantity(product_id, quantity)
            lines.append((product_id, quantity))
        if not lines:
            raise EmptyOrder()

        if payment_method not in PaymentMethod.ALL:
            raise InvalidPaymentMethod(payment_method)

        if payment_method != PaymentMethod.CASH:
            # Card payments never record cash
            return lines, None
        if cash_received is None:
            raise MissingCashReceived()
        try:
            cash = Decimal(str(cash_received))
        except ArithmeticError:
            raise InvalidAmount("cash_received", cash_received)
        if not cash.is_finite() or cash < 0:
            raise InvalidAmount("cash_received", cash_received)
        return lines, to_money(cash)

    def _order_query(self, order_id: int, lock: bool = False) -> Select:
        query = (
            select(Order)
            .where(Order.id == order_id)
            .options(
                selectinload(Order.items).selectinload(OrderItem.product),
                selectinload(Order.user),
            )
            .execution_options(populate_existing=True)
        )
        if lock:
            query = query.with_for_update()
        return query

    async def _load_order(self, order_id: int, lock: bool = False) -> Optional[Order]:
        result = await self.db.execute(self._order_query(order_id, lock))
        return result.scalar_one_or_none()

    async def _requirements(self, lines: List[Tuple[int, int]]) -> Dict[int, Decimal]:
        """Ingredient totals for the whole order, summed across lines"""
        recipes = await self.catalog.get_recipes(product_id for product_id, _ in lines)
        required: Dict[int, Decimal] = OrderedDict()
        for product_id, quantity in lines:
            recipe = recipes.get(product_id)
            if recipe is None:
                continue
            for ingredient in recipe.ingredients:
                amount = ingredient.quantity * quantity
                required[ingredient.inventory_item_id] = required.get(ingredient.inventory_item_id, Decimal("0")) + amount
        return required

    async def _fulfil(
        self,
        creator_id: int,
        lines: List[Tuple[int, int]],
        payment_method: str,
        cash: Optional[Decimal]
    ) -> Order:
        # Price from the catalog as it is right now; the item rows keep this snapshot
        products = await self.catalog.get_products(product_id for product_id, _ in lines)
        order_items = []
        total = Decimal("0.00")
        for product_id, quantity in lines:
            product = products.get(product_id)
            if product is None:
                raise ProductNotFound(product_id)
            if not product.is_available:
                raise ProductUnavailable(product.id, product.name)
            unit_price = to_money(product.price)
            subtotal = to_money(unit_price * quantity)
            total += subtotal
            order_items.append(OrderItem(
                product_id=product_id,
                quantity=quantity,
                unit_price=unit_price,
                subtotal=subtotal,
            ))
        total = to_money(total)

        if cash is not None and cash < total:
            raise InsufficientPayment(total, cash)

        required = await self._requirements(lines)
        stock = await self.inventory.lock_items(required.keys())
        for item_id, quantity in required.items():
            item = stock.get(item_id)
            if item is None:
                raise InventoryItemNotFound(item_id)
            if item.current_stock_level < quantity:
                raise InsufficientStock(item.name, item.id, quantity, item.current_stock_level)

        order = Order(
            user_id=creator_id,
            total_amount=total,
            payment_method=payment_method,
            status=OrderStatus.COMPLETED,
            cash_received=cash,
            items=order_items,
        )
        self.db.add(order)
        await self.db.flush()

        # Conditional debits; a concurrent order that got there first makes one fail
        for item_id in sorted(required):
            await self.inventory.debit_stock(item_id, required[item_id])

        await self.db.commit()
        return order

    async def create_order(
        self,
        creator_id: int,
        items: Iterable[Any],
        payment_method: Any,
        cash_received: Any = None,
        timeout: Optional[float] = None
    ) -> Order:
        """Create an order and debit its ingredients atomically"""
        lines, cash = self._validate_order(items, payment_method, cash_received)
        if timeout is None and self.settings is not None:
            timeout = self.settings.order_timeout_seconds

        try:
            order = await asyncio.wait_for(
                self._fulfil(creator_id, lines, payment_method, cash),
                timeout=timeout
            )
        except asyncio.TimeoutError:
            await self.db.rollback()
            logger.error(f"Order creation for user {creator_id} timed out after {timeout}s, rolled back")
            raise OrderTimeout(timeout)
        except PosError as e:
            await self.db.rollback()
            logger.info(f"Order rejected for user {creator_id}: {e.message}")
            raise
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error creating order for user {creator_id}: {e}", exc_info=True)
            if self.audit:
                self.audit.log(
                    LogLevel.ERROR,
                    LogCategory.ORDER,
                    "Order creation failed",
                    {"error": str(e), "items": len(lines)},
                    creator_id,
                )
            raise OrderPersistenceError()

        order = await self._load_order(order.id)
        logger.info(f"Order #{order.id} created: {len(order.items)} items, total {order.total_amount}")
        if self.audit:
            self.audit.log(
                LogLevel.INFO,
                LogCategory.ORDER,
                f"Order #{order.id} created with {len(order.items)} items for {order.total_amount}",
                {"order_id": order.id, "items": len(order.items), "total": order.total_amount},
                creator_id,
            )
        return order

    async def update_status(self, order_id: int, new_status: Any, actor_id: Optional[int] = None) -> Order:
        """Change the order status. Inventory is left untouched in both directions."""
        if new_status not in OrderStatus.ALL:
            raise InvalidStatus(new_status)

        strict = self.settings is not None and self.settings.strict_order_transitions
        # Strict mode checks the current status, so hold the row until commit
        order = await self._load_order(order_id, lock=strict)
        if order is None:
            raise OrderNotFound(order_id)

        previous_status = order.status
        if strict:
            if new_status not in ALLOWED_TRANSITIONS[previous_status]:
                await self.db.rollback()
                raise InvalidStatusTransition(previous_status, new_status)

        try:
            order.status = new_status
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Error updating status of order #{order_id}: {e}", exc_info=True)
            raise OrderPersistenceError("Error updating order status.")

        logger.info(f"Order #{order_id} status changed from {previous_status} to {new_status}")
        if self.audit:
            self.audit.log(
                LogLevel.INFO,
                LogCategory.ORDER,
                f"Order #{order_id} status changed from {previous_status} to {new_status}",
                {"order_id": order_id, "previous_status": previous_status, "new_status": new_status},
                actor_id,
            )
        return await self._load_order(order_id)

    async def get_by_id(self, order_id: int) -> Order:
        order = await self._load_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return order

    async def list_paged(self, page: int = 1, page_size: int = 10) -> Tuple[List[Order], int]:
        """Newest first; the same query path as search with no filters"""
        builder = OrderQueryBuilder(self.db, self._max_page_size)
        result = await builder.search(OrderSearchCriteria(page=page, page_size=page_size))
        return result.orders, result.total
