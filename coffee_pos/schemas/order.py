from pydantic import BaseModel, Field
from typing import Optional, List, Any
from decimal import Decimal
from datetime import datetime


class OrderItemCreate(BaseModel):
    # Range checks happen in OrderService so callers get the typed 400 errors
    product_id: Any = Field(..., description="Product ID", example=1)
    quantity: Any = Field(..., description="Units ordered (positive integer)", example=2)


class OrderCreate(BaseModel):
    items: List[OrderItemCreate] = Field(..., description="Cart lines (non-empty)")
    payment_method: Any = Field(..., description="cash or card", example="cash")
    cash_received: Optional[Decimal] = Field(None, description="Cash handed over (cash payments only)", example="10.00")


class OrderStatusUpdate(BaseModel):
    status: Any = Field(..., description="pending, completed or cancelled", example="cancelled")


class OrderItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: str = Field(..., description="Current product name", example="Latte")
    product_category: str = Field(..., description="Current product category", example="Coffee")
    quantity: int = Field(..., example=2)
    unit_price: Decimal = Field(..., description="Price at the time of the order", example="3.50")
    subtotal: Decimal = Field(..., example="7.00")

    class Config:
        from_attributes = True


class OrderSummaryResponse(BaseModel):
    id: int = Field(..., description="Order ID", example=42)
    user_id: int = Field(..., description="Creator user ID", example=1)
    user_name: str = Field(..., description="Creator username", example="alice")
    total_amount: Decimal = Field(..., example="14.00")
    payment_method: str = Field(..., example="cash")
    status: str = Field(..., example="completed")
    cash_received: Optional[Decimal] = Field(None, example="20.00")
    change_due: Optional[Decimal] = Field(None, description="cash_received - total_amount (cash only)", example="6.00")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderResponse(OrderSummaryResponse):
    items: List[OrderItemResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 42,
                "user_id": 1,
                "user_name": "alice",
                "total_amount": "14.00",
                "payment_method": "cash",
                "status": "completed",
                "cash_received": "20.00",
                "change_due": "6.00",
                "created_at": "2024-01-05T09:12:00Z",
                "updated_at": "2024-01-05T09:12:00Z",
                "items": [
                    {
                        "id": 1,
                        "product_id": 1,
                        "product_name": "Latte",
                        "product_category": "Coffee",
                        "quantity": 4,
                        "unit_price": "3.50",
                        "subtotal": "14.00"
                    }
                ]
            }
        }


class OrderCreatedResponse(BaseModel):
    message: str = Field(default="Order created successfully")
    order: OrderResponse


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class OrderListResponse(BaseModel):
    orders: List[OrderSummaryResponse]
    total: int
    pagination: Pagination
