from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
import logging

from coffee_pos.context import AppContext, get_context
from coffee_pos.db.database import get_db
from coffee_pos.models.user import UserRole
from coffee_pos.schemas.order import (
    OrderCreate, OrderStatusUpdate, OrderResponse, OrderSummaryResponse,
    OrderCreatedResponse, OrderListResponse, Pagination,
)
from coffee_pos.auth.dependencies import get_current_user, require_manager_or_admin
from coffee_pos.services.order_service import OrderService
from coffee_pos.services.order_query import OrderQueryBuilder, OrderSearchCriteria, OrderSearchResult

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/orders",
    tags=["Orders"]
)


def get_order_service(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context)
) -> OrderService:
    """Dependency to get order service"""
    return OrderService(db, audit=context.audit, settings=context.settings)


def get_query_builder(
    db: AsyncSession = Depends(get_db),
    context: AppContext = Depends(get_context)
) -> OrderQueryBuilder:
    return OrderQueryBuilder(db, max_page_size=context.settings.max_page_size)


def _list_response(result: OrderSearchResult) -> OrderListResponse:
    return OrderListResponse(
        orders=[OrderSummaryResponse.model_validate(o) for o in result.orders],
        total=result.total,
        pagination=Pagination(
            page=result.page,
            limit=result.page_size,
            total=result.total,
            pages=result.total_pages,
        ),
    )


@router.post(
    "",
    response_model=OrderCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an order",
    description="""
    Price the cart from the current catalog, consume recipe ingredients from
    inventory and store the order, all in one transaction.

    **Requirements:**
    - Authentication: Required (JWT token)
    - Any staff role

    **Payment:**
    - `cash`: `cash_received` is required and must cover the total; the response includes `change_due`
    - `card`: `cash_received` is ignored

    Orders are booked as `completed`. If any ingredient is short the whole order
    is rejected and nothing is stored or debited.
    """,
    responses={
        201: {"description": "Order created"},
        400: {"description": "Invalid cart, payment method or insufficient cash"},
        401: {"description": "Authentication required"},
        404: {"description": "Product or inventory item not found"},
        409: {"description": "Product unavailable or insufficient stock"},
        504: {"description": "Order creation timed out; nothing was stored"}
    }
)
async def create_order(
    order_data: OrderCreate,
    current_user: dict = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
):
    """Create an order (any authenticated user)"""
    order = await order_service.create_order(
        creator_id=current_user["user_id"],
        items=order_data.items,
        payment_method=order_data.payment_method,
        cash_received=order_data.cash_received,
    )
    return OrderCreatedResponse(
        message="Order created successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get(
    "",
    response_model=OrderListResponse,
    summary="List orders",
    description="""
    Newest orders first, paginated.

    **Requirements:**
    - Account Type: MANAGER or ADMIN

    **Pagination:**
    - `page`: Page number (1-indexed, default: 1)
    - `limit`: Orders per page (default: 10, max: 100)
    """,
    responses={
        200: {"description": "Paginated list of orders"},
        400: {"description": "Invalid page or limit"},
        403: {"description": "Requires MANAGER or ADMIN"}
    }
)
async def list_orders(
    page: Optional[str] = Query(None, description="Page number (1-indexed)"),
    limit: Optional[str] = Query(None, description="Orders per page"),
    current_user: dict = Depends(require_manager_or_admin),
    context: AppContext = Depends(get_context),
    builder: OrderQueryBuilder = Depends(get_query_builder)
):
    criteria = OrderSearchCriteria.from_params(
        page=page,
        limit=limit,
        default_page_size=context.settings.default_page_size,
        max_page_size=context.settings.max_page_size,
    )
    return _list_response(await builder.search(criteria))


@router.get(
    "/search",
    response_model=OrderListResponse,
    summary="Advanced order search",
    description="""
    Search orders with any combination of filters. Filters left out do not
    constrain the result.

    **Filters:**
    - `startDate`, `endDate`: YYYY-MM-DD, both days inclusive
    - `minAmount`, `maxAmount`: order total range
    - `paymentMethod`: cash or card
    - `status`: pending, completed or cancelled
    - `userId`: creator
    - `productId`: orders containing this product (each order counted once)

    **Requirements:**
    - Account Type: MANAGER or ADMIN
    """,
    responses={
        200: {"description": "Matching orders with total count"},
        400: {"description": "Invalid filter values"},
        403: {"description": "Requires MANAGER or ADMIN"},
        500: {"description": "Search failed"}
    }
)
async def search_orders(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    min_amount: Optional[str] = Query(None, alias="minAmount"),
    max_amount: Optional[str] = Query(None, alias="maxAmount"),
    payment_method: Optional[str] = Query(None, alias="paymentMethod"),
    order_status: Optional[str] = Query(None, alias="status"),
    user_id: Optional[str] = Query(None, alias="userId"),
    product_id: Optional[str] = Query(None, alias="productId"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    current_user: dict = Depends(require_manager_or_admin),
    context: AppContext = Depends(get_context),
    builder: OrderQueryBuilder = Depends(get_query_builder)
):
    criteria = OrderSearchCriteria.from_params(
        start_date=start_date,
        end_date=end_date,
        min_amount=min_amount,
        max_amount=max_amount,
        payment_method=payment_method,
        status=order_status,
        user_id=user_id,
        product_id=product_id,
        page=page,
        limit=limit,
        default_page_size=context.settings.default_page_size,
        max_page_size=context.settings.max_page_size,
    )
    logger.info(f"Order search by {current_user['username']}: {criteria}")
    return _list_response(await builder.search(criteria))


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    summary="Get order by ID",
    description="""
    Order with its line items. Cashiers can only read their own orders.
    """,
    responses={
        200: {"description": "Order details"},
        403: {"description": "Cashiers can only view their own orders"},
        404: {"description": "Order not found"}
    }
)
async def get_order(
    order_id: int,
    current_user: dict = Depends(get_current_user),
    order_service: OrderService = Depends(get_order_service)
):
    order = await order_service.get_by_id(order_id)
    if current_user["role"] == UserRole.CASHIER and order.user_id != current_user["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied."
        )
    return order


@router.patch(
    "/{order_id}/status",
    response_model=OrderResponse,
    summary="Update order status",
    description="""
    Set the order status to pending, completed or cancelled.

    Inventory is not touched: cancelling an order does not return its
    ingredients to stock.

    **Requirements:**
    - Account Type: MANAGER or ADMIN
    """,
    responses={
        200: {"description": "Updated order"},
        400: {"description": "Invalid status"},
        403: {"description": "Requires MANAGER or ADMIN"},
        404: {"description": "Order not found"},
        409: {"description": "Transition not allowed"}
    }
)
async def update_order_status(
    order_id: int,
    status_data: OrderStatusUpdate,
    current_user: dict = Depends(require_manager_or_admin),
    order_service: OrderService = Depends(get_order_service)
):
    return await order_service.update_status(order_id, status_data.status, actor_id=current_user["user_id"])
