from decimal import Decimal
from typing import Dict, Iterable, List, Optional
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from coffee_pos.models.inventory import InventoryItem
from coffee_pos.models.system_log import LogLevel, LogCategory
from coffee_pos.schemas.inventory import InventoryItemCreate, InventoryItemUpdate
from coffee_pos.services.audit import AuditSink
from coffee_pos.errors import InventoryItemNotFound, InsufficientStock, DuplicateInventoryItem, InvalidAmount

logger = logging.getLogger(__name__)


class InventoryService:
    """Service layer for the ingredient ledger.

    ``lock_items`` and ``debit_stock`` never commit; they run inside the
    caller's transaction (the order engine owns that boundary). The
    remaining write methods commit on their own.
    """

    def __init__(self, db: AsyncSession, audit: Optional[AuditSink] = None):
        self.db = db
        self.audit = audit

    async def get_item(self, item_id: int) -> InventoryItem:
        item = await self.db.get(InventoryItem, item_id, populate_existing=True)
        if item is None:
            raise InventoryItemNotFound(item_id)
        return item

    async def get_stock(self, item_id: int) -> Decimal:
        item = await self.get_item(item_id)
        return item.current_stock_level

    async def lock_items(self, item_ids: Iterable[int]) -> Dict[int, InventoryItem]:
        """Read (and row-lock, where the database supports it) the given items.

        Rows are locked in id order so that two orders touching the same
        ingredients always acquire them in the same sequence.
        """
        ids = sorted(set(item_ids))
        if not ids:
            return {}
        result = await self.db.execute(
            select(InventoryItem)
            .where(InventoryItem.id.in_(ids))
            .order_by(InventoryItem.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {item.id: item for item in result.scalars().all()}

    async def debit_stock(self, item_id: int, quantity: Decimal) -> None:
        """Decrement stock only if enough remains; never clamps at zero"""
        result = await self.db.execute(
            update(InventoryItem)
            .where(
                InventoryItem.id == item_id,
                InventoryItem.current_stock_level >= quantity,
            )
            .values(
                current_stock_level=InventoryItem.current_stock_level - quantity,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        item = await self.db.get(InventoryItem, item_id, populate_existing=True)
        if item is None:
            raise InventoryItemNotFound(item_id)
        logger.info(
            f"Debit of {quantity} {item.unit} {item.name} refused, "
            f"{item.current_stock_level} available"
        )
        raise InsufficientStock(item.name, item.id, quantity, item.current_stock_level)

    async def adjust_stock(self, item_id: int, delta: Decimal, actor_id: Optional[int] = None) -> InventoryItem:
        """Manual stock correction (delivery, waste). Same never-negative rule as orders."""
        if delta == 0:
            raise InvalidAmount("quantity", delta)
        try:
            if delta < 0:
                await self.debit_stock(item_id, -delta)
            else:
                result = await self.db.execute(
                    update(InventoryItem)
                    .where(InventoryItem.id == item_id)
                    .values(
                        current_stock_level=InventoryItem.current_stock_level + delta,
                        updated_at=func.now(),
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise InventoryItemNotFound(item_id)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        item = await self.get_item(item_id)
        logger.info(f"Stock of {item.name} adjusted by {delta}, now {item.current_stock_level}")
        if self.audit:
            self.audit.log(
                LogLevel.INFO,
                LogCategory.INVENTORY,
                f"Stock of {item.name} adjusted by {delta} {item.unit}",
                {"inventory_item_id": item.id, "delta": delta, "stock": item.current_stock_level},
                actor_id,
            )
        return item

    async def list_items(self) -> List[InventoryItem]:
        result = await self.db.execute(select(InventoryItem).order_by(InventoryItem.name))
        return list(result.scalars().all())

    async def list_low_stock(self) -> List[InventoryItem]:
        """Items whose current stock is below their minimum level"""
        result = await self.db.execute(
            select(InventoryItem)
            .where(InventoryItem.current_stock_level < InventoryItem.minimum_stock_level)
            .order_by(InventoryItem.current_stock_level, InventoryItem.name)
        )
        return list(result.scalars().all())

    async def _ensure_unique_name(self, name: str, exclude_id: Optional[int] = None):
        query = select(InventoryItem.id).where(InventoryItem.name == name)
        if exclude_id is not None:
            query = query.where(InventoryItem.id != exclude_id)
        if await self.db.scalar(query) is not None:
            raise DuplicateInventoryItem(name)

    async def create_item(self, item_data: InventoryItemCreate, actor_id: Optional[int] = None) -> InventoryItem:
        await self._ensure_unique_name(item_data.name)

        item = InventoryItem(**item_data.model_dump())
        self.db.add(item)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateInventoryItem(item_data.name)

        item = await self.get_item(item.id)
        logger.info(f"Inventory item created: {item.name} (id={item.id})")
        if self.audit:
            self.audit.log(
                LogLevel.INFO,
                LogCategory.INVENTORY,
                f"Inventory item {item.name} created",
                {"inventory_item_id": item.id},
                actor_id,
            )
        return item

    async def update_item(
        self,
        item_id: int,
        item_data: InventoryItemUpdate,
        actor_id: Optional[int] = None
    ) -> InventoryItem:
        item = await self.get_item(item_id)
        changes = item_data.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != item.name:
            await self._ensure_unique_name(changes["name"], exclude_id=item_id)

        for field, value in changes.items():
            setattr(item, field, value)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise DuplicateInventoryItem(changes.get("name", item.name))

        item = await self.get_item(item_id)
        if self.audit:
            self.audit.log(
                LogLevel.INFO,
                LogCategory.INVENTORY,
                f"Inventory item {item.name} updated",
                {"inventory_item_id": item.id, "fields": sorted(changes)},
                actor_id,
            )
        return item
