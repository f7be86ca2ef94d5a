from sqlalchemy import (
    Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey,
    CheckConstraint, UniqueConstraint, Index,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from coffee_pos.db.database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    category = Column(String(50), nullable=False)
    description = Column(Text)
    image_url = Column(String(255))
    is_available = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("price > 0", name="positive_price"),
        Index("idx_products_category", "category"),
    )

    recipe = relationship("Recipe", back_populates="product", uselist=False)


class Recipe(Base):
    """Raw ingredients consumed when one unit of a product is sold"""
    __tablename__ = "recipes"

    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True)
    name = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    product = relationship("Product", back_populates="recipe")
    ingredients = relationship(
        "RecipeIngredient",
        back_populates="recipe",
        order_by="RecipeIngredient.position",
        cascade="all, delete-orphan",
    )


class RecipeIngredient(Base):
    __tablename__ = "recipe_ingredients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    product_id = Column(Integer, ForeignKey("recipes.product_id", ondelete="CASCADE"), nullable=False)
    inventory_item_id = Column(Integer, ForeignKey("inventory_items.id"), nullable=False)
    quantity = Column(Numeric(10, 3), nullable=False)  # per unit of product sold
    position = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_recipe_quantity"),
        UniqueConstraint("product_id", "inventory_item_id", name="uq_recipe_ingredient"),
    )

    recipe = relationship("Recipe", back_populates="ingredients")
    inventory_item = relationship("InventoryItem")

    @property
    def ingredient_name(self) -> str:
        return self.inventory_item.name if self.inventory_item is not None else "Unknown Ingredient"

    @property
    def unit(self):
        return self.inventory_item.unit if self.inventory_item is not None else None
