from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from coffee_pos.db.database import get_db
from coffee_pos.schemas.report import (
    DailySalesResponse, RangeSalesResponse, BestSellersResponse,
    InventoryValueResponse, CategoryMixResponse, UserActivityResponse,
)
from coffee_pos.auth.dependencies import require_manager_or_admin, require_admin
from coffee_pos.services.order_query import parse_date
from coffee_pos.services.report_service import ReportService

router = APIRouter(
    prefix="/reports",
    tags=["Reports"]
)


def get_report_service(db: AsyncSession = Depends(get_db)) -> ReportService:
    """Dependency to get report service"""
    return ReportService(db)


@router.get(
    "/daily/{day}",
    response_model=DailySalesResponse,
    summary="Daily sales",
    description="Sales for one calendar day (YYYY-MM-DD), broken down by payment method.",
    responses={400: {"description": "Invalid date format"}}
)
async def daily_sales(
    day: str,
    current_user: dict = Depends(require_manager_or_admin),
    reports: ReportService = Depends(get_report_service)
):
    return {"report": await reports.daily_sales(parse_date("date", day))}


@router.get(
    "/range/{start_date}/{end_date}",
    response_model=RangeSalesResponse,
    summary="Sales by date range",
    description="Per-day order count and sales between two dates, both inclusive.",
    responses={400: {"description": "Invalid date format or range"}}
)
async def sales_by_range(
    start_date: str,
    end_date: str,
    current_user: dict = Depends(require_manager_or_admin),
    reports: ReportService = Depends(get_report_service)
):
    return {"report": await reports.sales_by_range(parse_date("startDate", start_date), parse_date("endDate", end_date))}


@router.get(
    "/best-selling",
    response_model=BestSellersResponse,
    summary="Best-selling products",
    description="Products ranked by units sold in completed orders, optionally within a date range.",
    responses={400: {"description": "Invalid date format or range"}}
)
async def best_selling(
    limit: int = Query(5, ge=1, le=100, description="Number of products"),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    current_user: dict = Depends(require_manager_or_admin),
    reports: ReportService = Depends(get_report_service)
):
    products = await reports.best_sellers(
        limit=limit,
        start=parse_date("startDate", start_date),
        end=parse_date("endDate", end_date),
    )
    return {"products": products}


@router.get(
    "/inventory-value",
    response_model=InventoryValueResponse,
    summary="Inventory valuation",
    description="Stock value per ingredient (stock x cost per unit), highest first. Items without a cost are left out."
)
async def inventory_value(
    current_user: dict = Depends(require_manager_or_admin),
    reports: ReportService = Depends(get_report_service)
):
    return {"report": await reports.inventory_valuation()}


@router.get(
    "/product-categories",
    response_model=CategoryMixResponse,
    summary="Product category mix"
)
async def product_categories(
    current_user: dict = Depends(require_manager_or_admin),
    reports: ReportService = Depends(get_report_service)
):
    return {"report": await reports.category_mix()}


@router.get(
    "/user-activity",
    response_model=UserActivityResponse,
    summary="User activity",
    description="Orders and sales per staff account. Admin only."
)
async def user_activity(
    current_user: dict = Depends(require_admin),
    reports: ReportService = Depends(get_report_service)
):
    return {"report": await reports.user_activity()}
