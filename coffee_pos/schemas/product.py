from pydantic import BaseModel, Field
from typing import Optional, List
from decimal import Decimal
from datetime import datetime


class RecipeIngredientIn(BaseModel):
    inventory_item_id: int = Field(..., description="Inventory item consumed", example=1)
    quantity: Decimal = Field(..., gt=0, max_digits=10, decimal_places=3, description="Quantity used per unit sold", example="0.25")


class RecipeUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100, description="Recipe name (defaults to the product name)", example="Latte")
    ingredients: List[RecipeIngredientIn] = Field(..., description="Ordered ingredient list; an empty list clears the recipe")


class RecipeIngredientResponse(BaseModel):
    inventory_item_id: int
    ingredient_name: str
    unit: Optional[str] = None
    quantity: Decimal

    class Config:
        from_attributes = True


class RecipeResponse(BaseModel):
    product_id: int = Field(..., description="Product ID", example=1)
    name: str = Field(..., description="Recipe name", example="Latte")
    ingredients: List[RecipeIngredientResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Product name", example="Latte")
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2, description="Unit price", example="3.50")
    category: str = Field(..., min_length=1, max_length=50, description="Menu category", example="Coffee")
    description: Optional[str] = Field(None, description="Product description", example="Espresso with steamed milk")
    image_url: Optional[str] = Field(None, max_length=255, description="Image URL")
    is_available: bool = Field(default=True, description="Whether the product can be ordered")
    recipe: Optional[List[RecipeIngredientIn]] = Field(None, description="Ingredients consumed per unit sold")


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100, description="Product name", example="Oat Latte")
    price: Optional[Decimal] = Field(None, gt=0, max_digits=10, decimal_places=2, description="Unit price", example="3.80")
    category: Optional[str] = Field(None, min_length=1, max_length=50, description="Menu category", example="Coffee")
    description: Optional[str] = Field(None, description="Product description")
    image_url: Optional[str] = Field(None, max_length=255, description="Image URL")
    is_available: Optional[bool] = Field(None, description="Whether the product can be ordered")
    recipe: Optional[List[RecipeIngredientIn]] = Field(None, description="Replaces the recipe when given")


class ProductResponse(BaseModel):
    id: int = Field(..., description="Product ID", example=1)
    name: str = Field(..., description="Product name", example="Latte")
    price: Decimal = Field(..., description="Unit price", example="3.50")
    category: str = Field(..., description="Menu category", example="Coffee")
    description: Optional[str] = Field(None, description="Product description")
    image_url: Optional[str] = Field(None, description="Image URL")
    is_available: bool = Field(..., description="Whether the product can be ordered")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "name": "Latte",
                "price": "3.50",
                "category": "Coffee",
                "description": "Espresso with steamed milk",
                "image_url": None,
                "is_available": True,
                "created_at": "2024-01-15T10:30:00Z",
                "updated_at": "2024-01-15T10:30:00Z"
            }
        }
