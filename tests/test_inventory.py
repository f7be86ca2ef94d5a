from decimal import Decimal

import pytest

from conftest import audit_entries, stock_of
from coffee_pos.errors import (
    DuplicateInventoryItem, InsufficientStock, InvalidAmount, InvalidCriteria, InventoryItemNotFound,
)
from coffee_pos.models import LogCategory
from coffee_pos.schemas.inventory import InventoryItemCreate, InventoryItemUpdate
from coffee_pos.schemas.product import ProductCreate, ProductUpdate, RecipeIngredientIn
from coffee_pos.services.catalog_service import CatalogService
from coffee_pos.services.inventory_service import InventoryService

pytestmark = pytest.mark.anyio


async def test_debit_refuses_to_go_negative(context, db, seed):
    async with db() as session:
        inventory = InventoryService(session)
        with pytest.raises(InsufficientStock) as exc_info:
            await inventory.debit_stock(seed.milk_id, Decimal("10.5"))
        await session.rollback()

    assert exc_info.value.available == Decimal("10")
    assert await stock_of(context, seed.milk_id) == Decimal("10")


async def test_debit_to_exactly_zero(context, db, seed):
    async with db() as session:
        await InventoryService(session).debit_stock(seed.milk_id, Decimal("10"))
        await session.commit()

    assert await stock_of(context, seed.milk_id) == Decimal("0")


async def test_debit_unknown_item(db, seed):
    async with db() as session:
        with pytest.raises(InventoryItemNotFound):
            await InventoryService(session).debit_stock(9999, Decimal("1"))


async def test_adjust_stock_both_directions(context, db, seed):
    async with db() as session:
        inventory = InventoryService(session, audit=context.audit)
        item = await inventory.adjust_stock(seed.milk_id, Decimal("5"), actor_id=seed.manager_id)
        assert item.current_stock_level == Decimal("15")
        item = await inventory.adjust_stock(seed.milk_id, Decimal("-14"), actor_id=seed.manager_id)
        assert item.current_stock_level == Decimal("1")
        assert item.is_low_stock

    entries = await audit_entries(context, LogCategory.INVENTORY)
    assert len(entries) == 2
    assert {e.user_id for e in entries} == {seed.manager_id}


async def test_adjust_stock_rejects_zero_and_overdraw(context, db, seed):
    async with db() as session:
        inventory = InventoryService(session)
        with pytest.raises(InvalidAmount):
            await inventory.adjust_stock(seed.milk_id, Decimal("0"))
        with pytest.raises(InsufficientStock):
            await inventory.adjust_stock(seed.milk_id, Decimal("-11"))
        with pytest.raises(InventoryItemNotFound):
            await inventory.adjust_stock(9999, Decimal("1"))

    assert await stock_of(context, seed.milk_id) == Decimal("10")


async def test_low_stock_list(db, seed):
    async with db() as session:
        inventory = InventoryService(session)
        assert await inventory.list_low_stock() == []
        await inventory.adjust_stock(seed.beans_id, Decimal("-4.5"))
        low = await inventory.list_low_stock()

    assert [i.name for i in low] == ["Espresso Beans"]


async def test_create_and_rename_items(db, seed):
    async with db() as session:
        inventory = InventoryService(session)
        sugar = await inventory.create_item(InventoryItemCreate(name="Sugar", unit="kg", current_stock_level=Decimal("3")))
        assert sugar.updated_at is not None

        with pytest.raises(DuplicateInventoryItem):
            await inventory.create_item(InventoryItemCreate(name="Milk", unit="l"))
        with pytest.raises(DuplicateInventoryItem):
            await inventory.update_item(sugar.id, InventoryItemUpdate(name="Milk"))

        renamed = await inventory.update_item(sugar.id, InventoryItemUpdate(name="Cane Sugar", minimum_stock_level=Decimal("1")))
        names = [i.name for i in await inventory.list_items()]

    assert renamed.name == "Cane Sugar"
    assert renamed.current_stock_level == Decimal("3")
    assert names == ["Cane Sugar", "Espresso Beans", "Milk"]


async def test_create_product_with_recipe(context, db, seed):
    async with db() as session:
        catalog = CatalogService(session, audit=context.audit)
        mocha = await catalog.create_product(
            ProductCreate(
                name="Mocha",
                price=Decimal("4.20"),
                category="Coffee",
                recipe=[
                    RecipeIngredientIn(inventory_item_id=seed.beans_id, quantity=Decimal("0.02")),
                    RecipeIngredientIn(inventory_item_id=seed.milk_id, quantity=Decimal("0.3")),
                ],
            ),
            actor_id=seed.manager_id,
        )
        recipe = await catalog.get_recipe(mocha.id)

    assert recipe.name == "Mocha"
    assert [i.ingredient_name for i in recipe.ingredients] == ["Espresso Beans", "Milk"]
    assert recipe.ingredients[1].quantity == Decimal("0.3")

    entries = await audit_entries(context, LogCategory.PRODUCT)
    assert entries[0].details["product_id"] == mocha.id


async def test_replace_and_clear_recipe(db, seed):
    async with db() as session:
        catalog = CatalogService(session)
        recipe = await catalog.set_recipe(
            seed.latte_id,
            [
                RecipeIngredientIn(inventory_item_id=seed.milk_id, quantity=Decimal("0.8")),
                RecipeIngredientIn(inventory_item_id=seed.beans_id, quantity=Decimal("0.018")),
            ],
            name="Latte (double)",
        )
        assert recipe.name == "Latte (double)"
        assert [(i.inventory_item_id, i.quantity) for i in recipe.ingredients] == [
            (seed.milk_id, Decimal("0.8")),
            (seed.beans_id, Decimal("0.018")),
        ]

        assert await catalog.set_recipe(seed.latte_id, []) is None
        assert await catalog.get_recipe(seed.latte_id) is None


async def test_recipe_validation(db, seed):
    async with db() as session:
        catalog = CatalogService(session)
        with pytest.raises(InventoryItemNotFound):
            await catalog.set_recipe(seed.cake_id, [RecipeIngredientIn(inventory_item_id=9999, quantity=Decimal("1"))])
        with pytest.raises(InvalidCriteria):
            await catalog.set_recipe(seed.cake_id, [
                RecipeIngredientIn(inventory_item_id=seed.milk_id, quantity=Decimal("1")),
                RecipeIngredientIn(inventory_item_id=seed.milk_id, quantity=Decimal("2")),
            ])
        assert await catalog.get_recipe(seed.cake_id) is None


async def test_price_change_is_audited(context, db, seed):
    async with db() as session:
        await CatalogService(session, audit=context.audit).update_product(
            seed.latte_id, ProductUpdate(price=Decimal("3.80")), actor_id=seed.manager_id
        )

    entries = await audit_entries(context, LogCategory.PRODUCT)
    assert entries[-1].details["previous_price"] == "3.50"
    assert entries[-1].details["new_price"] == "3.80"


async def test_list_products_and_categories(db, seed):
    async with db() as session:
        catalog = CatalogService(session)
        coffee = await catalog.list_products(category="Coffee")
        available = await catalog.list_products(available_only=True)
        categories = await catalog.list_categories()

    assert [p.name for p in coffee] == ["Cappuccino", "Latte", "Seasonal Special"]
    assert "Seasonal Special" not in [p.name for p in available]
    assert categories == ["Bakery", "Coffee"]
