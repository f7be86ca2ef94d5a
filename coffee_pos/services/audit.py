from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set, Tuple
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import asyncio
import logging

from coffee_pos.models.system_log import SystemLog, LogLevel, LogCategory
from coffee_pos.errors import InvalidCriteria, InvalidDateRange
from coffee_pos.services.order_query import day_bounds

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    """Make audit details JSON-serializable (Decimal and dates become strings)"""
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class AuditSink:
    """Append-only audit trail backed by the system_logs table.

    ``log`` is fire-and-forget: the entry is written by a background task in
    its own session, so it never joins (or waits on) the caller's
    transaction. Failures are logged and swallowed. ``drain`` waits for
    entries still in flight.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory
        self._pending: Set[asyncio.Task] = set()

    def log(
        self,
        level: str,
        category: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        actor_id: Optional[int] = None,
    ) -> None:
        task = asyncio.get_running_loop().create_task(
            self.write(level, category, message, details, actor_id)
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def write(
        self,
        level: str,
        category: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        actor_id: Optional[int] = None,
    ) -> None:
        try:
            async with self.session_factory() as session:
                session.add(SystemLog(
                    level=level,
                    category=category,
                    message=message,
                    details=_jsonable(details) if details is not None else None,
                    user_id=actor_id,
                ))
                await session.commit()
        except Exception as e:
            logger.error(f"Failed to write audit entry '{message}': {e}", exc_info=True)


class LogService:
    """Read side of the audit trail (admin log screens)"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_logs(
        self,
        level: Optional[str] = None,
        category: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Tuple[List[SystemLog], int]:
        if level is not None and level not in LogLevel.ALL:
            raise InvalidCriteria("level", level)
        if category is not None and category not in LogCategory.ALL:
            raise InvalidCriteria("category", category)
        if start_date and end_date and end_date < start_date:
            raise InvalidDateRange(start_date, end_date)

        conditions = []
        if level:
            conditions.append(SystemLog.level == level)
        if category:
            conditions.append(SystemLog.category == category)
        lower, upper = day_bounds(start_date, end_date)
        if lower:
            conditions.append(SystemLog.created_at >= lower)
        if upper:
            conditions.append(SystemLog.created_at < upper)

        total = await self.db.scalar(select(func.count(SystemLog.id)).where(*conditions))
        result = await self.db.execute(
            select(SystemLog)
            .where(*conditions)
            .order_by(SystemLog.created_at.desc(), SystemLog.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return list(result.scalars().all()), total or 0

    async def summary(self) -> Dict[str, List[Dict[str, Any]]]:
        by_category = await self.db.execute(
            select(SystemLog.category, func.count(SystemLog.id))
            .group_by(SystemLog.category)
            .order_by(func.count(SystemLog.id).desc())
        )
        by_level = await self.db.execute(
            select(SystemLog.level, func.count(SystemLog.id))
            .group_by(SystemLog.level)
            .order_by(func.count(SystemLog.id).desc())
        )
        return {
            "categories": [{"category": c, "count": n} for c, n in by_category.all()],
            "levels": [{"level": lv, "count": n} for lv, n in by_level.all()],
        }
