from decimal import Decimal

import pytest

from conftest import stock_of

pytestmark = pytest.mark.anyio


def latte_order(seed, quantity=1, **extra):
    body = {"items": [{"product_id": seed.latte_id, "quantity": quantity}], "payment_method": "card"}
    body.update(extra)
    return body


async def create(client, auth, seed, headers=None, **kwargs):
    response = await client.post("/api/orders", json=latte_order(seed, **kwargs), headers=headers or auth.cashier)
    assert response.status_code == 201, response.text
    return response.json()["order"]


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["database"] == "ok"


async def test_requests_without_token_are_rejected(client, seed):
    response = await client.post("/api/orders", json=latte_order(seed))
    assert response.status_code == 401


async def test_requests_with_bad_token_are_rejected(client, seed):
    response = await client.get("/api/products", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_create_order(client, auth, seed, context):
    response = await client.post(
        "/api/orders",
        json={
            "items": [{"product_id": seed.latte_id, "quantity": 4}],
            "payment_method": "cash",
            "cash_received": "20.00",
        },
        headers=auth.cashier,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "Order created successfully"
    order = body["order"]
    assert Decimal(order["total_amount"]) == Decimal("14.00")
    assert Decimal(order["change_due"]) == Decimal("6.00")
    assert order["status"] == "completed"
    assert order["user_name"] == "cashier"
    assert order["items"][0]["product_name"] == "Latte"
    assert await stock_of(context, seed.milk_id) == Decimal("6")


async def test_order_errors_have_typed_bodies(client, auth, seed, context):
    short = await client.post("/api/orders", json=latte_order(seed, quantity=12), headers=auth.cashier)
    assert short.status_code == 409
    assert short.json()["code"] == "insufficient_stock"
    assert short.json()["ingredient"] == "Milk"
    assert Decimal(short.json()["required"]) == Decimal("12")

    empty = await client.post("/api/orders", json={"items": [], "payment_method": "card"}, headers=auth.cashier)
    assert empty.status_code == 400
    assert empty.json()["code"] == "empty_order"

    bad_quantity = await client.post("/api/orders", json=latte_order(seed, quantity=0), headers=auth.cashier)
    assert bad_quantity.status_code == 400
    assert bad_quantity.json()["code"] == "invalid_quantity"

    no_cash = await client.post("/api/orders", json=latte_order(seed, payment_method="cash"), headers=auth.cashier)
    assert no_cash.status_code == 400
    assert no_cash.json()["code"] == "missing_cash_received"

    underpaid = await client.post(
        "/api/orders", json=latte_order(seed, payment_method="cash", cash_received="1.00"), headers=auth.cashier
    )
    assert underpaid.status_code == 400
    assert underpaid.json()["code"] == "insufficient_payment"

    assert await stock_of(context, seed.milk_id) == Decimal("10")


async def test_cashier_reads_only_own_orders(client, auth, seed):
    order = await create(client, auth, seed)

    own = await client.get(f"/api/orders/{order['id']}", headers=auth.cashier)
    assert own.status_code == 200
    assert own.json()["id"] == order["id"]

    other = await client.get(f"/api/orders/{order['id']}", headers=auth.other_cashier)
    assert other.status_code == 403

    manager = await client.get(f"/api/orders/{order['id']}", headers=auth.manager)
    assert manager.status_code == 200

    missing = await client.get("/api/orders/9999", headers=auth.manager)
    assert missing.status_code == 404


async def test_order_listing_requires_manager(client, auth, seed):
    assert (await client.get("/api/orders", headers=auth.cashier)).status_code == 403
    assert (await client.get("/api/orders/search", headers=auth.cashier)).status_code == 403


async def test_list_and_search_orders(client, auth, seed):
    first = await create(client, auth, seed, quantity=1)
    await create(client, auth, seed, quantity=2, headers=auth.other_cashier)
    await create(client, auth, seed, quantity=3)

    listing = await client.get("/api/orders", params={"limit": 2}, headers=auth.manager)
    assert listing.status_code == 200
    assert listing.json()["total"] == 3
    assert listing.json()["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
    assert "items" not in listing.json()["orders"][0]

    search = await client.get(
        "/api/orders/search",
        params={"userId": seed.cashier_id, "maxAmount": "5", "productId": seed.latte_id},
        headers=auth.manager,
    )
    assert search.status_code == 200
    assert search.json()["total"] == 1
    assert search.json()["orders"][0]["id"] == first["id"]


async def test_search_rejects_bad_criteria(client, auth, seed):
    cases = {
        "page": ("0", "invalid_page"),
        "limit": ("500", "invalid_page_size"),
        "startDate": ("yesterday", "invalid_date"),
        "paymentMethod": ("bitcoin", "invalid_payment_method"),
    }
    for param, (value, code) in cases.items():
        response = await client.get("/api/orders/search", params={param: value}, headers=auth.manager)
        assert response.status_code == 400, param
        assert response.json()["code"] == code

    reversed_dates = await client.get(
        "/api/orders/search", params={"startDate": "2024-02-01", "endDate": "2024-01-01"}, headers=auth.manager
    )
    assert reversed_dates.json()["code"] == "invalid_date_range"


async def test_update_status(client, auth, seed, context):
    order = await create(client, auth, seed, quantity=2)

    forbidden = await client.patch(f"/api/orders/{order['id']}/status", json={"status": "cancelled"}, headers=auth.cashier)
    assert forbidden.status_code == 403

    response = await client.patch(f"/api/orders/{order['id']}/status", json={"status": "cancelled"}, headers=auth.manager)
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert await stock_of(context, seed.milk_id) == Decimal("8")

    invalid = await client.patch(f"/api/orders/{order['id']}/status", json={"status": "lost"}, headers=auth.manager)
    assert invalid.status_code == 400
    assert invalid.json()["code"] == "invalid_status"


async def test_catalog_routes(client, auth, seed):
    products = await client.get("/api/products", params={"category": "Coffee"}, headers=auth.cashier)
    assert products.status_code == 200
    assert [p["name"] for p in products.json()] == ["Cappuccino", "Latte", "Seasonal Special"]

    categories = await client.get("/api/products/categories", headers=auth.cashier)
    assert categories.json() == ["Bakery", "Coffee"]

    recipe = await client.get(f"/api/products/{seed.cappuccino_id}/recipe", headers=auth.cashier)
    assert recipe.status_code == 200
    assert [i["ingredient_name"] for i in recipe.json()["ingredients"]] == ["Milk", "Espresso Beans"]

    no_recipe = await client.get(f"/api/products/{seed.cake_id}/recipe", headers=auth.cashier)
    assert no_recipe.status_code == 404

    denied = await client.post(
        "/api/products", json={"name": "Tea", "price": "2.00", "category": "Tea"}, headers=auth.cashier
    )
    assert denied.status_code == 403

    created = await client.post(
        "/api/products",
        json={
            "name": "Flat White",
            "price": "3.80",
            "category": "Coffee",
            "recipe": [{"inventory_item_id": seed.milk_id, "quantity": "0.2"}],
        },
        headers=auth.manager,
    )
    assert created.status_code == 201
    assert created.json()["name"] == "Flat White"


async def test_inventory_routes(client, auth, seed):
    assert (await client.get("/api/inventory", headers=auth.cashier)).status_code == 403

    adjusted = await client.patch(
        f"/api/inventory/{seed.milk_id}/stock", json={"quantity": "-9"}, headers=auth.manager
    )
    assert adjusted.status_code == 200
    assert Decimal(adjusted.json()["current_stock_level"]) == Decimal("1")
    assert adjusted.json()["is_low_stock"] is True

    low = await client.get("/api/inventory/low-stock", headers=auth.manager)
    assert [i["name"] for i in low.json()] == ["Milk"]

    overdraw = await client.patch(
        f"/api/inventory/{seed.milk_id}/stock", json={"quantity": "-5"}, headers=auth.manager
    )
    assert overdraw.status_code == 409


async def test_reports_and_logs_permissions(client, auth, seed, context):
    await create(client, auth, seed, quantity=2)

    value = await client.get("/api/reports/inventory-value", headers=auth.manager)
    assert value.status_code == 200
    assert Decimal(value.json()["report"]["summary"]["total_value"]) == Decimal("109.60")

    best = await client.get("/api/reports/best-selling", headers=auth.manager)
    assert best.json()["products"][0]["name"] == "Latte"

    bad_day = await client.get("/api/reports/daily/2024-13-40", headers=auth.manager)
    assert bad_day.status_code == 400

    assert (await client.get("/api/reports/user-activity", headers=auth.manager)).status_code == 403
    assert (await client.get("/api/reports/user-activity", headers=auth.admin)).status_code == 200

    await context.audit.drain()
    assert (await client.get("/api/logs", headers=auth.manager)).status_code == 403
    logs = await client.get("/api/logs", params={"category": "order"}, headers=auth.admin)
    assert logs.status_code == 200
    assert logs.json()["pagination"]["total"] == 1
    assert logs.json()["logs"][0]["category"] == "order"
