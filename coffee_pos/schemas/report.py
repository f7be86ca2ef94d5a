from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime


class DailySalesRow(BaseModel):
    date: str = Field(..., example="2024-01-05")
    payment_method: str = Field(..., example="cash")
    order_count: int = Field(..., example=12)
    total_sales: Decimal = Field(..., example="86.50")
    completed_orders: int = Field(..., example=11)
    cancelled_orders: int = Field(..., example=1)


class RangeSalesRow(BaseModel):
    date: str = Field(..., example="2024-01-05")
    order_count: int = Field(..., example=12)
    total_sales: Decimal = Field(..., example="86.50")


class BestSellerRow(BaseModel):
    product_id: int
    name: str = Field(..., example="Latte")
    category: str = Field(..., example="Coffee")
    total_quantity: int = Field(..., example=40)
    total_sales: Decimal = Field(..., example="140.00")


class InventoryValueRow(BaseModel):
    id: int
    name: str
    current_stock: Decimal
    unit: str
    cost_per_unit: Decimal
    total_value: Decimal
    status: str = Field(..., description="low or normal")


class InventoryValueSummary(BaseModel):
    total_value: Decimal
    total_items: int
    low_stock_items: int


class InventoryValueReport(BaseModel):
    items: List[InventoryValueRow]
    summary: InventoryValueSummary


class CategoryMixRow(BaseModel):
    category: str
    count: int
    available_count: int
    unavailable_count: int
    avg_price: Decimal


class UserActivityRow(BaseModel):
    user_id: int
    username: str
    role: str
    orders_count: int
    total_sales: Decimal
    last_active: Optional[datetime] = None


class DailySalesResponse(BaseModel):
    report: List[DailySalesRow]


class RangeSalesResponse(BaseModel):
    report: List[RangeSalesRow]


class BestSellersResponse(BaseModel):
    products: List[BestSellerRow]


class InventoryValueResponse(BaseModel):
    report: InventoryValueReport


class CategoryMixResponse(BaseModel):
    report: List[CategoryMixRow]


class UserActivityResponse(BaseModel):
    report: List[UserActivityRow]
