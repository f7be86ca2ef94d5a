from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from math import ceil
from typing import Optional

from coffee_pos.db.database import get_db
from coffee_pos.schemas.log import LogListResponse, LogSummaryResponse
from coffee_pos.auth.dependencies import require_admin
from coffee_pos.services.audit import LogService
from coffee_pos.services.order_query import parse_date

router = APIRouter(
    prefix="/logs",
    tags=["Logs"]
)


def get_log_service(db: AsyncSession = Depends(get_db)) -> LogService:
    return LogService(db)


@router.get(
    "",
    response_model=LogListResponse,
    summary="List audit log entries",
    description="""
    Audit trail, newest first.

    **Filtering:**
    - `level`: info, warning or error
    - `category`: auth, order, inventory, product or system
    - `startDate`, `endDate`: YYYY-MM-DD, both days inclusive

    **Requirements:**
    - Account Type: ADMIN
    """,
    responses={
        400: {"description": "Invalid filter values"},
        403: {"description": "Requires ADMIN"}
    }
)
async def list_logs(
    level: Optional[str] = Query(None),
    category: Optional[str] = Query(None),
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    current_user: dict = Depends(require_admin),
    logs: LogService = Depends(get_log_service)
):
    entries, total = await logs.list_logs(
        level=level or None,
        category=category or None,
        start_date=parse_date("startDate", start_date),
        end_date=parse_date("endDate", end_date),
        page=page,
        limit=limit,
    )
    return {
        "logs": entries,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": ceil(total / limit) if total else 0,
        },
    }


@router.get(
    "/summary",
    response_model=LogSummaryResponse,
    summary="Audit log summary",
    description="Entry counts by category and by level. Admin only."
)
async def log_summary(
    current_user: dict = Depends(require_admin),
    logs: LogService = Depends(get_log_service)
):
    return await logs.summary()
