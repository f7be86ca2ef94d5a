from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal
from datetime import datetime


class InventoryItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Ingredient name (unique)", example="Milk")
    current_stock_level: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=3, description="Opening stock", example="10")
    unit: str = Field(..., min_length=1, max_length=20, description="Unit of measure", example="l")
    minimum_stock_level: Decimal = Field(default=Decimal("0"), ge=0, max_digits=12, decimal_places=3, description="Low-stock threshold", example="2")
    cost_per_unit: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2, description="Purchase cost per unit", example="1.20")


class InventoryItemUpdate(BaseModel):
    """Descriptive fields only; stock moves through the stock adjustment endpoint"""
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="Ingredient name (unique)")
    unit: Optional[str] = Field(None, min_length=1, max_length=20, description="Unit of measure")
    minimum_stock_level: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=3, description="Low-stock threshold")
    cost_per_unit: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2, description="Purchase cost per unit")


class StockAdjustment(BaseModel):
    quantity: Decimal = Field(..., max_digits=12, decimal_places=3, description="Signed change in stock (negative to remove)", example="5")


class InventoryItemResponse(BaseModel):
    id: int = Field(..., description="Inventory item ID", example=1)
    name: str = Field(..., description="Ingredient name", example="Milk")
    current_stock_level: Decimal = Field(..., description="Current stock", example="6.000")
    unit: str = Field(..., description="Unit of measure", example="l")
    minimum_stock_level: Decimal = Field(..., description="Low-stock threshold", example="2.000")
    cost_per_unit: Optional[Decimal] = Field(None, description="Purchase cost per unit")
    is_low_stock: bool = Field(..., description="Current stock is below the minimum")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        from_attributes = True
