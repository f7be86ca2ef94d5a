from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from coffee_pos.context import AppContext, get_context
from coffee_pos.db.database import get_db
from coffee_pos.schemas.inventory import InventoryItemCreate, InventoryItemUpdate, InventoryItemResponse, StockAdjustment
from coffee_pos.auth.dependencies import require_manager_or_admin
from coffee_pos.services.inventory_service import InventoryService

router = APIRouter(
    prefix="/inventory",
    tags=["Inventory"]
)


def get_inventory_service(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context)
) -> InventoryService:
    """Dependency to get inventory service"""
    return InventoryService(db, audit=context.audit)


@router.get(
    "",
    response_model=List[InventoryItemResponse],
    summary="List inventory items",
    responses={
        200: {"description": "All ingredients ordered by name"},
        403: {"description": "Requires MANAGER or ADMIN"}
    }
)
async def list_items(
    current_user: dict = Depends(require_manager_or_admin),
    inventory: InventoryService = Depends(get_inventory_service)
):
    return await inventory.list_items()


@router.get(
    "/low-stock",
    response_model=List[InventoryItemResponse],
    summary="Low-stock items",
    description="""
    Items whose current stock is below their minimum level. Computed on every
    request; nothing is stored.
    """,
    responses={200: {"description": "Items that need restocking"}}
)
async def list_low_stock(
    current_user: dict = Depends(require_manager_or_admin),
    inventory: InventoryService = Depends(get_inventory_service)
):
    return await inventory.list_low_stock()


@router.post(
    "",
    response_model=InventoryItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an inventory item",
    responses={
        201: {"description": "Item created"},
        409: {"description": "An item with this name already exists"}
    }
)
async def create_item(
    item_data: InventoryItemCreate,
    current_user: dict = Depends(require_manager_or_admin),
    inventory: InventoryService = Depends(get_inventory_service)
):
    return await inventory.create_item(item_data, actor_id=current_user["user_id"])


@router.get(
    "/{item_id}",
    response_model=InventoryItemResponse,
    summary="Get inventory item",
    responses={404: {"description": "Inventory item not found"}}
)
async def get_item(
    item_id: int,
    current_user: dict = Depends(require_manager_or_admin),
    inventory: InventoryService = Depends(get_inventory_service)
):
    return await inventory.get_item(item_id)


@router.put(
    "/{item_id}",
    response_model=InventoryItemResponse,
    summary="Update an inventory item",
    description="""
    Update name, unit, minimum level or cost. Stock levels change only through
    orders and `PATCH /inventory/{item_id}/stock`.
    """,
    responses={
        404: {"description": "Inventory item not found"},
        409: {"description": "An item with this name already exists"}
    }
)
async def update_item(
    item_id: int,
    item_data: InventoryItemUpdate,
    current_user: dict = Depends(require_manager_or_admin),
    inventory: InventoryService = Depends(get_inventory_service)
):
    return await inventory.update_item(item_id, item_data, actor_id=current_user["user_id"])


@router.patch(
    "/{item_id}/stock",
    response_model=InventoryItemResponse,
    summary="Adjust stock",
    description="""
    Add (positive `quantity`) or remove (negative `quantity`) stock. Removing
    more than is on hand is rejected; stock never goes below zero.
    """,
    responses={
        400: {"description": "Quantity must be non-zero"},
        404: {"description": "Inventory item not found"},
        409: {"description": "Insufficient stock"}
    }
)
async def adjust_stock(
    item_id: int,
    adjustment: StockAdjustment,
    current_user: dict = Depends(require_manager_or_admin),
    inventory: InventoryService = Depends(get_inventory_service)
):
    return await inventory.adjust_stock(item_id, adjustment.quantity, actor_id=current_user["user_id"])
