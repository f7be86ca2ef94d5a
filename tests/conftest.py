from __future__ import annotations

from contextlib import asynccontextmanager
from decimal import Decimal
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from coffee_pos.config import Settings
from coffee_pos.context import AppContext
from coffee_pos.db.database import create_all
from coffee_pos.main import create_app
from coffee_pos.models import (
    InventoryItem, Product, Recipe, RecipeIngredient, SystemLog, User, UserRole,
)
from coffee_pos.services.order_service import OrderService


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    # A real file: concurrent sessions need separate SQLite connections
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'pos.db'}",
        jwt_secret="test-secret",
        run_migrations=False,
        sqlite_busy_timeout=30.0,
    )


@pytest.fixture
async def context(settings, anyio_backend):
    ctx = AppContext.from_settings(settings)
    await create_all(ctx.engine)
    yield ctx
    await ctx.dispose()


@pytest.fixture
async def seed(context):
    """
    Staff accounts plus a small menu:

    - Latte 3.50: 1 l milk
    - Cappuccino 4.00: 0.5 l milk, 0.02 kg espresso beans
    - Cake 4.50: no recipe
    - Seasonal Special 5.00: not available
    """
    async with context.session_factory() as s:
        cashier = User(username="cashier", role=UserRole.CASHIER)
        other_cashier = User(username="cashier2", role=UserRole.CASHIER)
        manager = User(username="manager", role=UserRole.MANAGER)
        admin = User(username="admin", role=UserRole.ADMIN)
        milk = InventoryItem(
            name="Milk", current_stock_level=Decimal("10"), unit="l",
            minimum_stock_level=Decimal("2"), cost_per_unit=Decimal("1.20"),
        )
        beans = InventoryItem(
            name="Espresso Beans", current_stock_level=Decimal("5"), unit="kg",
            minimum_stock_level=Decimal("1"), cost_per_unit=Decimal("20.00"),
        )
        latte = Product(name="Latte", price=Decimal("3.50"), category="Coffee")
        cappuccino = Product(name="Cappuccino", price=Decimal("4.00"), category="Coffee")
        cake = Product(name="Cake", price=Decimal("4.50"), category="Bakery")
        special = Product(name="Seasonal Special", price=Decimal("5.00"), category="Coffee", is_available=False)
        s.add_all([cashier, other_cashier, manager, admin, milk, beans, latte, cappuccino, cake, special])
        await s.flush()

        s.add_all([
            Recipe(product_id=latte.id, name="Latte", ingredients=[
                RecipeIngredient(inventory_item_id=milk.id, quantity=Decimal("1"), position=0),
            ]),
            Recipe(product_id=cappuccino.id, name="Cappuccino", ingredients=[
                RecipeIngredient(inventory_item_id=milk.id, quantity=Decimal("0.5"), position=0),
                RecipeIngredient(inventory_item_id=beans.id, quantity=Decimal("0.02"), position=1),
            ]),
        ])
        await s.commit()

        return SimpleNamespace(
            cashier_id=cashier.id,
            other_cashier_id=other_cashier.id,
            manager_id=manager.id,
            admin_id=admin.id,
            milk_id=milk.id,
            beans_id=beans.id,
            latte_id=latte.id,
            cappuccino_id=cappuccino.id,
            cake_id=cake.id,
            special_id=special.id,
        )


@pytest.fixture
def order_service(context):
    """Factory for an OrderService bound to a fresh session"""
    @asynccontextmanager
    async def factory(**overrides):
        async with context.session_factory() as session:
            yield OrderService(
                session,
                audit=overrides.get("audit", context.audit),
                settings=overrides.get("settings", context.settings),
            )
    return factory


@pytest.fixture
def db(context):
    """Factory for a short-lived session; SQLite write locks last until it closes"""
    return context.session_factory


async def stock_of(context, item_id) -> Decimal:
    async with context.session_factory() as s:
        return await s.scalar(select(InventoryItem.current_stock_level).where(InventoryItem.id == item_id))


async def count_rows(context, model) -> int:
    async with context.session_factory() as s:
        return await s.scalar(select(func.count()).select_from(model))


async def audit_entries(context, category=None):
    await context.audit.drain()
    async with context.session_factory() as s:
        query = select(SystemLog).order_by(SystemLog.id)
        if category:
            query = query.where(SystemLog.category == category)
        return list((await s.execute(query)).scalars().all())


@pytest.fixture
def app(context):
    return create_app(context=context)


@pytest.fixture
async def client(app, anyio_backend):
    # ASGITransport does not run the lifespan; the context fixture created the tables
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
def auth(context, seed):
    """Bearer headers per role"""
    def headers(user_id, username, role):
        token = context.jwt_validator.create_access_token(user_id, username, role)
        return {"Authorization": f"Bearer {token}"}

    return SimpleNamespace(
        cashier=headers(seed.cashier_id, "cashier", UserRole.CASHIER),
        other_cashier=headers(seed.other_cashier_id, "cashier2", UserRole.CASHIER),
        manager=headers(seed.manager_id, "manager", UserRole.MANAGER),
        admin=headers(seed.admin_id, "admin", UserRole.ADMIN),
    )
