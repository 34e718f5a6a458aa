from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from tradedesk.core.config import get_settings
from tradedesk.services.aggregation import Metric, ReportSpec, SortSpec, run_report
from tradedesk.services.line_facts import LineFilter, load_line_facts
from tradedesk.services.options import DateWindow, TrendOptions
from tradedesk.utils.decimal_math import change_pct, money, optional_money


FORECAST_CONFIDENCE = "Medium"


def with_growth_rates(rows: list[dict[str, Any]], column: str = "total_revenue") -> list[dict[str, Any]]:
    """Annotate each row with the percentage change against the row before it.

    The first row, and any row following a zero-revenue period, gets ``None``.
    """
    annotated: list[dict[str, Any]] = []
    previous: Decimal | None = None
    for row in rows:
        current = row[column]
        growth = None if previous is None else change_pct(current, previous)
        annotated.append({**row, "growth_rate": growth})
        previous = current
    return annotated


def moving_average_forecast(
    rows: list[dict[str, Any]],
    column: str = "total_revenue",
    window: int | None = None,
) -> dict[str, Any]:
    window = window or get_settings().moving_average_window
    recent = [row[column] for row in rows[-window:]]
    # the divisor stays at the window size even when fewer periods exist
    estimate = sum(recent, Decimal("0")) / Decimal(window)
    return {
        "next_period_estimate": money(estimate),
        "based_on_periods": window,
        "confidence": FORECAST_CONFIDENCE,
    }


def sales_trends(db: Session, options: TrendOptions, *, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now()
    window = DateWindow(start=now - relativedelta(months=options.months))
    facts = load_line_facts(db, LineFilter(window=window, product_id=options.product_id))

    result = run_report(
        facts,
        ReportSpec(
            group_by=(options.group_by,),
            metrics=(
                Metric("total_revenue", "sum", "total_price"),
                Metric("total_quantity", "sum", "quantity"),
                Metric("invoice_count", "count_invoices"),
                Metric("average_invoice_value", "invoice_avg", "grand_total"),
            ),
            sort=SortSpec("period", descending=False),
        ),
    )
    rows = with_growth_rates(result.rows)
    data = [
        {
            "period": row["period"],
            "total_revenue": money(row["total_revenue"]),
            "total_quantity": row["total_quantity"],
            "invoice_count": row["invoice_count"],
            "average_invoice_value": optional_money(row["average_invoice_value"]),
            "growth_rate": row["growth_rate"],
        }
        for row in rows
    ]
    return {
        "data": data,
        "forecast": moving_average_forecast(result.rows),
        "filters": {
            "months": options.months,
            "group_by": options.group_by,
            "product_id": options.product_id,
        },
    }
