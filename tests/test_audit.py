from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from conftest import audit_entries
from coffee_pos.errors import InvalidCriteria, InvalidDateRange
from coffee_pos.models import LogCategory, LogLevel, SystemLog
from coffee_pos.services.audit import AuditSink, LogService

pytestmark = pytest.mark.anyio


async def test_sink_serializes_details(context):
    context.audit.log(
        LogLevel.WARNING,
        LogCategory.INVENTORY,
        "Milk running low",
        {"stock": Decimal("1.50"), "checked": date(2024, 5, 1), "ids": (1, 2)},
        7,
    )
    entries = await audit_entries(context)

    assert len(entries) == 1
    assert entries[0].level == "warning"
    assert entries[0].user_id == 7
    assert entries[0].details == {"stock": "1.50", "checked": "2024-05-01", "ids": [1, 2]}


async def test_write_failures_are_swallowed(caplog):
    def factory():
        raise RuntimeError("no database")

    await AuditSink(factory).write(LogLevel.INFO, LogCategory.SYSTEM, "hello")
    assert "Failed to write audit entry 'hello'" in caplog.text


@pytest.fixture
async def entries(db, seed):
    def entry(level, category, message, day):
        return SystemLog(
            level=level,
            category=category,
            message=message,
            created_at=datetime(2024, 5, day, 12, 0, tzinfo=timezone.utc),
        )

    async with db() as session:
        session.add_all([
            entry(LogLevel.INFO, LogCategory.ORDER, "Order #1 created", 1),
            entry(LogLevel.INFO, LogCategory.ORDER, "Order #2 created", 2),
            entry(LogLevel.ERROR, LogCategory.ORDER, "Order creation failed", 2),
            entry(LogLevel.INFO, LogCategory.PRODUCT, "Product Latte updated", 3),
        ])
        await session.commit()


async def test_list_logs_filters_and_pages(db, entries):
    async with db() as session:
        logs = LogService(session)
        everything, total = await logs.list_logs()
        orders, order_total = await logs.list_logs(category=LogCategory.ORDER, limit=2)
        errors, _ = await logs.list_logs(level=LogLevel.ERROR)
        on_day, day_total = await logs.list_logs(start_date=date(2024, 5, 2), end_date=date(2024, 5, 2))

    assert total == 4
    assert everything[0].message == "Product Latte updated"
    assert order_total == 3
    assert len(orders) == 2
    assert [e.message for e in errors] == ["Order creation failed"]
    assert day_total == 2
    assert len(on_day) == 2


async def test_list_logs_validation(db, entries):
    async with db() as session:
        logs = LogService(session)
        with pytest.raises(InvalidCriteria):
            await logs.list_logs(level="debug")
        with pytest.raises(InvalidCriteria):
            await logs.list_logs(category="payments")
        with pytest.raises(InvalidDateRange):
            await logs.list_logs(start_date=date(2024, 5, 3), end_date=date(2024, 5, 1))


async def test_summary_counts(db, entries):
    async with db() as session:
        summary = await LogService(session).summary()

    assert summary["categories"] == [
        {"category": "order", "count": 3},
        {"category": "product", "count": 1},
    ]
    assert summary["levels"] == [
        {"level": "info", "count": 3},
        {"level": "error", "count": 1},
    ]
