"""Typed request options for the report endpoints.

Every option class has a ``parse`` classmethod taking the raw query values.
Defaults documented on each field apply whenever a value is absent or
unreadable; only malformed identifiers are rejected.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from fastapi import HTTPException, status

from tradedesk.utils.lenient import (
    lenient_bool,
    lenient_choice,
    lenient_datetime,
    lenient_decimal,
    lenient_int,
    lenient_year,
)


TIME_BUCKETS = frozenset({"month", "quarter", "week", "year"})
TREND_BUCKETS = frozenset({"month", "week"})
PRODUCT_SALES_GROUPS = frozenset({"product", "month", "customer"})
SORT_ORDERS = frozenset({"asc", "desc"})
# keeps the lookback start a valid date
MAX_TREND_MONTHS = 1200


def parse_id(value: Any, label: str) -> int | None:
    """Identifiers are strict: present but malformed is a 400."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        parsed = int(str(value).strip())
    except ValueError:
        parsed = -1
    if parsed <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label} ID format",
        )
    return parsed


@dataclass(frozen=True)
class DateWindow:
    """Inclusive invoice-date window; either bound may be open."""

    start: datetime | None = None
    end: datetime | None = None

    @classmethod
    def parse(cls, start: Any = None, end: Any = None) -> "DateWindow":
        return cls(
            start=lenient_datetime(start),
            end=lenient_datetime(end, end_of_day=True),
        )


@dataclass(frozen=True)
class WidthFilter:
    """``"min-max"`` is an inclusive range, a bare number an exact width."""

    minimum: Decimal | None = None
    maximum: Decimal | None = None

    @property
    def is_exact(self) -> bool:
        return self.minimum is not None and self.minimum == self.maximum

    def matches(self, width: Decimal | None) -> bool:
        if width is None:
            return False
        if self.minimum is not None and width < self.minimum:
            return False
        if self.maximum is not None and width > self.maximum:
            return False
        return True

    @classmethod
    def parse(cls, raw: Any) -> "WidthFilter | None":
        if raw is None:
            return None
        text = str(raw).strip()
        if not text:
            return None
        if "-" in text:
            low, _, high = text.partition("-")
            minimum = lenient_decimal(low)
            maximum = lenient_decimal(high)
            # a blank side is open, an unreadable side drops the filter
            if (low.strip() and minimum is None) or (high.strip() and maximum is None):
                return None
            if minimum is None and maximum is None:
                return None
            return cls(minimum=minimum, maximum=maximum)
        exact = lenient_decimal(text)
        if exact is None:
            return None
        return cls(minimum=exact, maximum=exact)


@dataclass(frozen=True)
class RankOptions:
    """Sort metric (report default when unknown), direction (default desc), limit."""

    sort_by: str
    descending: bool = True
    limit: int | None = None

    @classmethod
    def parse(
        cls,
        *,
        sort_by: Any,
        sort_order: Any,
        limit: Any,
        allowed: frozenset[str],
        default_sort: str,
        default_limit: int | None = None,
    ) -> "RankOptions":
        parsed_limit = lenient_int(limit, default_limit)
        if parsed_limit is not None and parsed_limit <= 0:
            parsed_limit = None
        return cls(
            sort_by=lenient_choice(sort_by, allowed, default_sort),
            descending=lenient_choice(sort_order, SORT_ORDERS, "desc") == "desc",
            limit=parsed_limit,
        )


@dataclass(frozen=True)
class LineReportOptions:
    """Filters shared by the line-item reports."""

    window: DateWindow
    product_id: int | None = None
    customer_id: int | None = None
    width: WidthFilter | None = None
    min_quantity: Decimal | None = None
    max_quantity: Decimal | None = None

    @classmethod
    def parse(
        cls,
        *,
        start_date: Any = None,
        end_date: Any = None,
        product_id: Any = None,
        customer_id: Any = None,
        width_range: Any = None,
        min_quantity: Any = None,
        max_quantity: Any = None,
    ) -> "LineReportOptions":
        return cls(
            window=DateWindow.parse(start_date, end_date),
            product_id=parse_id(product_id, "product"),
            customer_id=parse_id(customer_id, "customer"),
            width=WidthFilter.parse(width_range),
            min_quantity=lenient_decimal(min_quantity),
            max_quantity=lenient_decimal(max_quantity),
        )


@dataclass(frozen=True)
class TrendOptions:
    """Lookback in months (default 12) and bucket (month or week, default month)."""

    months: int = 12
    group_by: str = "month"
    product_id: int | None = None

    @classmethod
    def parse(cls, *, months: Any, group_by: Any, product_id: Any, default_months: int = 12) -> "TrendOptions":
        parsed_months = lenient_int(months, default_months)
        if parsed_months is None or not 0 < parsed_months <= MAX_TREND_MONTHS:
            parsed_months = default_months
        return cls(
            months=parsed_months,
            group_by=lenient_choice(group_by, TREND_BUCKETS, "month"),
            product_id=parse_id(product_id, "product"),
        )


@dataclass(frozen=True)
class MonthlyDashboardOptions:
    """Calendar year (default this year) and optional prior-year comparison."""

    year: int
    compare_with_last_year: bool = False

    @classmethod
    def parse(cls, *, year: Any, compare_with_last_year: Any, today: datetime | None = None) -> "MonthlyDashboardOptions":
        current_year = (today or datetime.now()).year
        return cls(
            year=lenient_year(year, current_year),
            compare_with_last_year=lenient_bool(compare_with_last_year),
        )


@dataclass(frozen=True)
class PendingInvoiceOptions:
    """Pending-invoice listing: opening balances included by default, newest first."""

    include_opening: bool = True
    min_amount: Decimal | None = None
    max_amount: Decimal | None = None
    sort_by: str = "invoice_date"
    descending: bool = True

    @classmethod
    def parse(
        cls,
        *,
        include_opening: Any = None,
        min_amount: Any = None,
        max_amount: Any = None,
        sort_by: Any = None,
        sort_order: Any = None,
    ) -> "PendingInvoiceOptions":
        return cls(
            include_opening=lenient_bool(include_opening, default=True),
            min_amount=lenient_decimal(min_amount),
            max_amount=lenient_decimal(max_amount),
            sort_by=lenient_choice(
                sort_by,
                frozenset({"invoice_date", "invoice_number", "pending_amount", "grand_total"}),
                "invoice_date",
            ),
            descending=lenient_choice(sort_order, SORT_ORDERS, "desc") == "desc",
        )
