from typing import Dict, Iterable, List, Optional
from sqlalchemy import select
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from coffee_pos.models.product import Product, Recipe, RecipeIngredient
from coffee_pos.models.inventory import InventoryItem
from coffee_pos.models.system_log import LogLevel, LogCategory
from coffee_pos.schemas.product import ProductCreate, ProductUpdate, RecipeIngredientIn
from coffee_pos.services.audit import AuditSink
from coffee_pos.errors import ProductNotFound, InventoryItemNotFound, InvalidCriteria

logger = logging.getLogger(__name__)


def _recipe_options():
    return selectinload(Recipe.ingredients).selectinload(RecipeIngredient.inventory_item)


class CatalogService:
    """Service layer for products and their recipes"""

    def __init__(self, db: AsyncSession, audit: Optional[AuditSink] = None):
        self.db = db
        self.audit = audit

    async def get_product(self, product_id: int) -> Product:
        product = await self.db.get(Product, product_id, populate_existing=True)
        if product is None:
            raise ProductNotFound(product_id)
        return product

    async def get_products(self, product_ids: Iterable[int]) -> Dict[int, Product]:
        """Batch lookup; missing ids are simply absent from the result"""
        ids = set(product_ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(Product)
            .where(Product.id.in_(ids))
            .execution_options(populate_existing=True)
        )
        return {p.id: p for p in result.scalars().all()}

    async def get_recipe(self, product_id: int) -> Optional[Recipe]:
        result = await self.db.execute(
            select(Recipe)
            .where(Recipe.product_id == product_id)
            .options(_recipe_options())
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_recipes(self, product_ids: Iterable[int]) -> Dict[int, Recipe]:
        ids = set(product_ids)
        if not ids:
            return {}
        result = await self.db.execute(
            select(Recipe)
            .where(Recipe.product_id.in_(ids))
            .options(_recipe_options())
            .execution_options(populate_existing=True)
        )
        return {r.product_id: r for r in result.scalars().all()}

    async def list_products(self, category: Optional[str] = None, available_only: bool = False) -> List[Product]:
        query = select(Product)
        if category:
            query = query.where(Product.category == category)
        if available_only:
            query = query.where(Product.is_available.is_(True))
        result = await self.db.execute(query.order_by(Product.category, Product.name))
        return list(result.scalars().all())

    async def list_categories(self) -> List[str]:
        result = await self.db.execute(select(Product.category).distinct().order_by(Product.category))
        return list(result.scalars().all())

    async def _build_ingredients(self, ingredients: List[RecipeIngredientIn]) -> List[RecipeIngredient]:
        item_ids = [i.inventory_item_id for i in ingredients]
        if len(set(item_ids)) != len(item_ids):
            raise InvalidCriteria("recipe", item_ids)

        if item_ids:
            result = await self.db.execute(select(InventoryItem.id).where(InventoryItem.id.in_(item_ids)))
            found = set(result.scalars().all())
            for item_id in item_ids:
                if item_id not in found:
                    raise InventoryItemNotFound(item_id)

        return [
            RecipeIngredient(inventory_item_id=i.inventory_item_id, quantity=i.quantity, position=pos)
            for pos, i in enumerate(ingredients)
        ]

    async def _replace_recipe(self, product: Product, ingredients: List[RecipeIngredientIn], name: Optional[str]):
        """Swap the product's recipe rows inside the current transaction"""
        new_rows = await self._build_ingredients(ingredients)
        recipe = await self.get_recipe(product.id)

        if not new_rows:
            if recipe is not None:
                await self.db.delete(recipe)
            return

        if recipe is None:
            self.db.add(Recipe(product_id=product.id, name=name or product.name, ingredients=new_rows))
            return

        if name:
            recipe.name = name
        # Old rows must be gone before the new ones hit the unique constraint
        recipe.ingredients.clear()
        await self.db.flush()
        recipe.ingredients.extend(new_rows)

    async def create_product(self, product_data: ProductCreate, actor_id: Optional[int] = None) -> Product:
        """Create a product, optionally with its recipe, in one transaction"""
        try:
            product = Product(**product_data.model_dump(exclude={"recipe"}))
            self.db.add(product)
            await self.db.flush()
            if product_data.recipe:
                await self._replace_recipe(product, product_data.recipe, None)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        product = await self.get_product(product.id)
        logger.info(f"Product created: {product.name} (id={product.id})")
        if self.audit:
            self.audit.log(
                LogLevel.INFO,
                LogCategory.PRODUCT,
                f"Product {product.name} created",
                {"product_id": product.id, "price": product.price},
                actor_id,
            )
        return product

    async def update_product(
        self,
        product_id: int,
        product_data: ProductUpdate,
        actor_id: Optional[int] = None
    ) -> Product:
        """Partial update. Existing order items keep the price they were sold at."""
        product = await self.get_product(product_id)
        changes = product_data.model_dump(exclude_unset=True, exclude={"recipe"})
        previous_price = product.price
        try:
            for field, value in changes.items():
                setattr(product, field, value)
            if product_data.recipe is not None:
                await self._replace_recipe(product, product_data.recipe, None)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        product = await self.get_product(product_id)
        details = {"product_id": product.id, "fields": sorted(changes)}
        if "price" in changes and product.price != previous_price:
            details["previous_price"] = previous_price
            details["new_price"] = product.price
        if self.audit:
            self.audit.log(LogLevel.INFO, LogCategory.PRODUCT, f"Product {product.name} updated", details, actor_id)
        return product

    async def set_recipe(
        self,
        product_id: int,
        ingredients: List[RecipeIngredientIn],
        actor_id: Optional[int] = None,
        name: Optional[str] = None
    ) -> Optional[Recipe]:
        product = await self.get_product(product_id)
        try:
            await self._replace_recipe(product, ingredients, name)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        recipe = await self.get_recipe(product_id)
        if self.audit:
            self.audit.log(
                LogLevel.INFO,
                LogCategory.PRODUCT,
                f"Recipe for {product.name} updated",
                {"product_id": product_id, "ingredients": len(ingredients)},
                actor_id,
            )
        return recipe
