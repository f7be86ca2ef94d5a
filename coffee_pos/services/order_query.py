"""Dynamic order search.

Criteria are turned into a list of typed ``Predicate`` tuples (column,
operator, value). Every predicate is rendered through SQLAlchemy operators,
so values always travel as bound parameters. The count query and the page
query are both derived from ``OrderQueryBuilder._filtered`` and therefore
always apply the same predicates, including the line-item join and the
de-duplication it needs.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from math import ceil
from typing import Any, List, NamedTuple, Optional, Tuple
import logging
import operator

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload
from sqlalchemy.sql import Select
from sqlalchemy.ext.asyncio import AsyncSession

from coffee_pos.models.order import Order, OrderItem, OrderStatus, PaymentMethod
from coffee_pos.errors import (
    InvalidPage, InvalidPageSize, InvalidDate, InvalidDateRange, InvalidAmount,
    InvalidAmountRange, InvalidCriteria, InvalidPaymentMethod, InvalidStatus, QueryFailed,
)

logger = logging.getLogger(__name__)

OPERATORS = {
    "eq": operator.eq,
    "ge": operator.ge,
    "le": operator.le,
    "lt": operator.lt,
}


class Predicate(NamedTuple):
    column: Any
    operator: str
    value: Any

    def render(self):
        return OPERATORS[self.operator](self.column, self.value)


def day_bounds(start: Optional[date], end: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Inclusive calendar days as [start 00:00, day after end 00:00) in UTC"""
    lower = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    upper = datetime.combine(end + timedelta(days=1), time.min, tzinfo=timezone.utc) if end else None
    return lower, upper


def _blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def _utc_date(moment: datetime) -> date:
    # Naive datetimes are taken as UTC already
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.date()


def parse_date(field_name: str, raw: Any) -> Optional[date]:
    if _blank(raw):
        return None
    if isinstance(raw, datetime):
        return _utc_date(raw)
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return _utc_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        raise InvalidDate(field_name, raw)


def _parse_amount(field_name: str, raw: Any) -> Optional[Decimal]:
    if _blank(raw):
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise InvalidAmount(field_name, raw)
    if not value.is_finite():
        raise InvalidAmount(field_name, raw)
    return value


def _parse_id(field_name: str, raw: Any) -> Optional[int]:
    if _blank(raw):
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidCriteria(field_name, raw)


@dataclass
class OrderSearchCriteria:
    """Sparse search filter; ``None`` means "no constraint", never "match nothing"."""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    payment_method: Optional[str] = None
    status: Optional[str] = None
    user_id: Optional[int] = None
    product_id: Optional[int] = None
    page: int = 1
    page_size: int = 10

    @classmethod
    def from_params(
        cls,
        start_date: Any = None,
        end_date: Any = None,
        min_amount: Any = None,
        max_amount: Any = None,
        payment_method: Any = None,
        status: Any = None,
        user_id: Any = None,
        product_id: Any = None,
        page: Any = None,
        limit: Any = None,
        default_page_size: int = 10,
        max_page_size: int = 100,
    ) -> "OrderSearchCriteria":
        """Parse raw query-string values into typed criteria"""
        if _blank(page):
            parsed_page = 1
        else:
            try:
                parsed_page = int(str(page).strip())
            except ValueError:
                raise InvalidPage(page)

        if _blank(limit):
            parsed_limit = default_page_size
        else:
            try:
                parsed_limit = int(str(limit).strip())
            except ValueError:
                raise InvalidPageSize(limit, max_page_size)

        return cls(
            start_date=parse_date("startDate", start_date),
            end_date=parse_date("endDate", end_date),
            min_amount=_parse_amount("minAmount", min_amount),
            max_amount=_parse_amount("maxAmount", max_amount),
            payment_method=None if _blank(payment_method) else str(payment_method).strip(),
            status=None if _blank(status) else str(status).strip(),
            user_id=_parse_id("userId", user_id),
            product_id=_parse_id("productId", product_id),
            page=parsed_page,
            page_size=parsed_limit,
        )

    def validate(self, max_page_size: int = 100):
        if not isinstance(self.page, int) or self.page < 1:
            raise InvalidPage(self.page)
        if not isinstance(self.page_size, int) or not 1 <= self.page_size <= max_page_size:
            raise InvalidPageSize(self.page_size, max_page_size)
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise InvalidDateRange(self.start_date, self.end_date)
        if self.min_amount is not None and self.max_amount is not None and self.min_amount > self.max_amount:
            raise InvalidAmountRange(self.min_amount, self.max_amount)
        if self.payment_method is not None and self.payment_method not in PaymentMethod.ALL:
            raise InvalidPaymentMethod(self.payment_method)
        if self.status is not None and self.status not in OrderStatus.ALL:
            raise InvalidStatus(self.status)


@dataclass
class OrderSearchResult:
    orders: List[Order] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 10
    total_pages: int = 0


class OrderQueryBuilder:
    def __init__(self, db: AsyncSession, max_page_size: int = 100):
        self.db = db
        self.max_page_size = max_page_size

    def predicates(self, criteria: OrderSearchCriteria) -> List[Predicate]:
        """One predicate per criterion that is actually present"""
        lower, upper = day_bounds(criteria.start_date, criteria.end_date)
        candidates = [
            Predicate(Order.created_at, "ge", lower),
            Predicate(Order.created_at, "lt", upper),
            Predicate(Order.total_amount, "ge", criteria.min_amount),
            Predicate(Order.total_amount, "le", criteria.max_amount),
            Predicate(Order.payment_method, "eq", criteria.payment_method),
            Predicate(Order.status, "eq", criteria.status),
            Predicate(Order.user_id, "eq", criteria.user_id),
            Predicate(OrderItem.product_id, "eq", criteria.product_id),
        ]
        return [p for p in candidates if p.value is not None]

    def _filtered(self, criteria: OrderSearchCriteria) -> Select:
        """Distinct ids of matching orders; the single source for count and page"""
        query = select(Order.id)
        if criteria.product_id is not None:
            query = query.join(OrderItem, OrderItem.order_id == Order.id)
        return query.where(*[p.render() for p in self.predicates(criteria)]).distinct()

    def count_query(self, criteria: OrderSearchCriteria) -> Select:
        return select(func.count()).select_from(self._filtered(criteria).subquery())

    def page_query(self, criteria: OrderSearchCriteria) -> Select:
        return (
            select(Order)
            .where(Order.id.in_(self._filtered(criteria)))
            .options(selectinload(Order.user))
            .order_by(Order.created_at.desc(), Order.id.desc())
            .offset((criteria.page - 1) * criteria.page_size)
            .limit(criteria.page_size)
        )

    async def search(self, criteria: OrderSearchCriteria) -> OrderSearchResult:
        criteria.validate(self.max_page_size)

        try:
            total = await self.db.scalar(self.count_query(criteria)) or 0
            result = await self.db.execute(self.page_query(criteria))
            orders = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(f"Order search failed for {criteria}: {e}", exc_info=True)
            raise QueryFailed()

        return OrderSearchResult(
            orders=orders,
            total=total,
            page=criteria.page,
            page_size=criteria.page_size,
            total_pages=ceil(total / criteria.page_size) if total else 0,
        )
