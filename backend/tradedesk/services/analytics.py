from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from dateutil.relativedelta import relativedelta
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from tradedesk.services.aggregation import (
    Metric,
    ReportResult,
    ReportSpec,
    SortSpec,
    column_total,
    run_report,
)
from tradedesk.services.line_facts import (
    InvoiceFact,
    LineFact,
    LineFilter,
    load_invoice_facts,
    load_line_facts,
)
from tradedesk.services.options import (
    TIME_BUCKETS,
    DateWindow,
    LineReportOptions,
    MonthlyDashboardOptions,
    RankOptions,
    parse_id,
)
from tradedesk.services.periods import calendar_year_range, month_name
from tradedesk.utils.decimal_math import ZERO, change_pct, money, optional_money, share_pct
from tradedesk.utils.lenient import lenient_decimal, lenient_year


WIDTH_SORTS = {"quantity": "total_quantity", "revenue": "total_revenue", "width": "width"}
PRODUCT_SALES_SORTS = {"quantity": "total_quantity_sold", "revenue": "total_revenue", "profit": "gross_profit"}
TOP_PRODUCT_METRICS = {"revenue": "total_revenue", "quantity": "total_quantity_sold"}
HIGH_CONFIDENCE_SAMPLES = 30
MEDIUM_CONFIDENCE_SAMPLES = 10


def _line_filter(options: LineReportOptions) -> LineFilter:
    return LineFilter(
        window=options.window,
        customer_id=options.customer_id,
        product_id=options.product_id,
        width=options.width,
        min_quantity=options.min_quantity,
        max_quantity=options.max_quantity,
    )


def _ratio(numerator: Decimal, denominator: Decimal | int) -> Decimal:
    if not denominator:
        return ZERO
    return numerator / Decimal(denominator)


def _window_filters(window: DateWindow) -> dict[str, Any]:
    return {"start_date": window.start, "end_date": window.end}


def _line_filters(options: LineReportOptions) -> dict[str, Any]:
    width = options.width
    return {
        **_window_filters(options.window),
        "product_id": options.product_id,
        "customer_id": options.customer_id,
        "width_min": width.minimum if width else None,
        "width_max": width.maximum if width else None,
        "min_quantity": options.min_quantity,
        "max_quantity": options.max_quantity,
    }


def quantity_by_width(
    db: Session,
    options: LineReportOptions,
    *,
    group_by: str | None,
    ranking: RankOptions,
) -> dict[str, Any]:
    """Quantity and revenue per width, optionally split by a time bucket."""
    facts = load_line_facts(db, _line_filter(options))
    time_bucket = group_by if group_by in TIME_BUCKETS else None
    result = run_report(
        facts,
        ReportSpec(
            group_by=("width", time_bucket) if time_bucket else ("width",),
            metrics=(
                Metric("total_quantity", "sum", "quantity"),
                Metric("total_revenue", "sum", "total_price"),
                Metric("average_unit_price", "avg", "unit_price"),
                Metric("invoice_count", "count_invoices"),
                Metric("product_names", "distinct", "display_name"),
            ),
            sort=SortSpec(WIDTH_SORTS[ranking.sort_by], ranking.descending),
            limit=ranking.limit,
        ),
    )

    data = []
    for row in result.page:
        item = {
            "width": row["width"],
            "total_quantity": row["total_quantity"],
            "total_revenue": money(row["total_revenue"]),
            "average_unit_price": optional_money(row["average_unit_price"]),
            "invoice_count": row["invoice_count"],
            "product_names": row["product_names"],
        }
        if time_bucket:
            item["period"] = row["period"]
        data.append(item)

    return {
        "data": data,
        "summary": {
            "total_quantity": column_total(result.rows, "total_quantity"),
            "total_revenue": money(column_total(result.rows, "total_revenue")),
            "unique_widths": len({row["width"] for row in result.rows}),
            "records_analyzed": result.total_groups,
            "records_returned": len(result.page),
        },
        "filters": {
            **_line_filters(options),
            "group_by": time_bucket,
            "sort_by": ranking.sort_by,
            "sort_order": "desc" if ranking.descending else "asc",
            "limit": ranking.limit,
        },
    }


def width_distribution_report(facts: list[LineFact]) -> ReportResult:
    return run_report(
        facts,
        ReportSpec(
            group_by=("width",),
            metrics=(
                Metric("total_quantity", "sum", "quantity"),
                Metric("total_revenue", "sum", "total_price"),
                Metric("average_price", "avg", "unit_price"),
                Metric("invoice_count", "count_invoices"),
                Metric("line_count", "count_lines"),
            ),
            derived=(
                ("revenue_per_unit", lambda row: _ratio(row["total_revenue"], row["total_quantity"])),
            ),
            sort=SortSpec("total_revenue"),
        ),
    )


def width_distribution(db: Session, options: LineReportOptions) -> dict[str, Any]:
    """Share of revenue and quantity held by each width, largest revenue first.

    Percentages are relative to the totals of the filtered result set.
    """
    result = width_distribution_report(load_line_facts(db, _line_filter(options)))
    total_revenue = column_total(result.rows, "total_revenue")
    total_quantity = column_total(result.rows, "total_quantity")

    data = [
        {
            "width": row["width"],
            "total_quantity": row["total_quantity"],
            "total_revenue": money(row["total_revenue"]),
            "average_price": optional_money(row["average_price"]),
            "invoice_count": row["invoice_count"],
            "line_count": row["line_count"],
            "revenue_per_unit": money(row["revenue_per_unit"]),
            "revenue_percentage": share_pct(row["total_revenue"], total_revenue),
            "quantity_percentage": share_pct(row["total_quantity"], total_quantity),
        }
        for row in result.rows
    ]
    most_popular = max(result.rows, key=lambda row: row["total_quantity"], default=None)
    return {
        "data": data,
        "summary": {
            "total_widths_analyzed": result.total_groups,
            "total_revenue": money(total_revenue),
            "total_quantity": total_quantity,
            "most_popular_width": most_popular["width"] if most_popular else None,
            "highest_revenue_width": result.rows[0]["width"] if result.rows else None,
        },
        "filters": _line_filters(options),
    }


def product_sales(
    db: Session,
    options: LineReportOptions,
    *,
    group_by: str,
    ranking: RankOptions,
) -> dict[str, Any]:
    facts = load_line_facts(db, _line_filter(options))
    key = {"product": "product", "month": "month", "customer": "customer"}[group_by]
    result = run_report(
        facts,
        ReportSpec(
            group_by=(key,),
            metrics=(
                Metric("product_name", "first", "display_name"),
                Metric("customer_name", "first", "customer_name"),
                Metric("total_quantity_sold", "sum", "quantity"),
                Metric("total_revenue", "sum", "total_price"),
                Metric("total_cost", "sum", "line_cost"),
                Metric("average_sale_price", "avg", "unit_price"),
                Metric("average_quantity_per_line", "avg", "quantity"),
                Metric("min_sale_price", "min", "unit_price"),
                Metric("max_sale_price", "max", "unit_price"),
                Metric("line_count", "count_lines"),
                Metric("invoice_count", "count_invoices"),
                Metric("customer_ids", "distinct", "customer_id"),
                Metric("widths_sold", "distinct", "width"),
            ),
            derived=(
                ("gross_profit", lambda row: row["total_revenue"] - row["total_cost"]),
                ("unique_customer_count", lambda row: len(row["customer_ids"])),
            ),
            sort=SortSpec(PRODUCT_SALES_SORTS[ranking.sort_by], ranking.descending),
            limit=ranking.limit,
        ),
    )

    data = []
    for row in result.page:
        item: dict[str, Any] = {
            "total_quantity_sold": row["total_quantity_sold"],
            "total_revenue": money(row["total_revenue"]),
            "total_cost": money(row["total_cost"]),
            "gross_profit": money(row["gross_profit"]),
            "profit_margin": share_pct(row["gross_profit"], row["total_revenue"]),
            "average_sale_price": optional_money(row["average_sale_price"]),
            "average_quantity_per_line": row["average_quantity_per_line"],
            "min_sale_price": optional_money(row["min_sale_price"]),
            "max_sale_price": optional_money(row["max_sale_price"]),
            "line_count": row["line_count"],
            "invoice_count": row["invoice_count"],
            "unique_customer_count": row["unique_customer_count"],
            "widths_sold": row["widths_sold"],
        }
        if key == "product":
            item.update(product_id=row["product_id"], product_name=row["product_name"])
        elif key == "customer":
            item.update(customer_id=row["customer_id"], customer_name=row["customer_name"])
        else:
            item["period"] = row["period"]
        data.append(item)

    total_revenue = column_total(result.rows, "total_revenue")
    unique_invoices = len({fact.invoice_id for fact in facts})
    return {
        "data": data,
        "summary": {
            "total_quantity_sold": column_total(result.rows, "total_quantity_sold"),
            "total_revenue": money(total_revenue),
            "total_profit": money(column_total(result.rows, "gross_profit")),
            "total_unique_invoices": unique_invoices,
            "total_line_items": len(facts),
            "groups_analyzed": result.total_groups,
            "average_revenue_per_invoice": money(_ratio(total_revenue, unique_invoices)),
        },
        "filters": {
            **_line_filters(options),
            "group_by": group_by,
            "sort_by": ranking.sort_by,
            "sort_order": "desc" if ranking.descending else "asc",
            "limit": ranking.limit,
        },
    }


def _confidence(samples: int) -> str:
    if samples >= HIGH_CONFIDENCE_SAMPLES:
        return "High"
    if samples >= MEDIUM_CONFIDENCE_SAMPLES:
        return "Medium"
    return "Low"


def average_sale_cost(
    db: Session,
    options: LineReportOptions,
    *,
    include_time_trend: bool,
    time_bucket: str,
) -> dict[str, Any]:
    """Per-product price statistics with an optional per-period price trend."""
    facts = load_line_facts(db, _line_filter(options))
    result = run_report(
        facts,
        ReportSpec(
            group_by=("product",),
            metrics=(
                Metric("product_name", "first", "display_name"),
                Metric("average_sale_price", "avg", "unit_price"),
                Metric("min_sale_price", "min", "unit_price"),
                Metric("max_sale_price", "max", "unit_price"),
                Metric("price_volatility", "stddev", "unit_price"),
                Metric("total_quantity_sold", "sum", "quantity"),
                Metric("total_revenue", "sum", "total_price"),
                Metric("sample_count", "count_lines"),
            ),
            sort=SortSpec("total_revenue"),
        ),
    )

    data = []
    weighted = ZERO
    for row in result.rows:
        price_range = None
        if row["min_sale_price"] is not None:
            price_range = row["max_sale_price"] - row["min_sale_price"]
        weighted += (row["average_sale_price"] or ZERO) * row["total_quantity_sold"]
        data.append(
            {
                "product_id": row["product_id"],
                "product_name": row["product_name"],
                "average_sale_price": optional_money(row["average_sale_price"]),
                "min_sale_price": optional_money(row["min_sale_price"]),
                "max_sale_price": optional_money(row["max_sale_price"]),
                "price_range": optional_money(price_range),
                "price_volatility": optional_money(row["price_volatility"]),
                "total_quantity_sold": row["total_quantity_sold"],
                "total_revenue": money(row["total_revenue"]),
                "sample_count": row["sample_count"],
                "confidence_level": _confidence(row["sample_count"]),
            }
        )

    time_trend = None
    if include_time_trend:
        trend = run_report(
            facts,
            ReportSpec(
                group_by=(time_bucket, "product"),
                metrics=(
                    Metric("product_name", "first", "display_name"),
                    Metric("average_price", "avg", "unit_price"),
                    Metric("quantity_sold", "sum", "quantity"),
                ),
            ),
        )
        time_trend = [
            {
                "period": row["period"],
                "product_id": row["product_id"],
                "product_name": row["product_name"],
                "average_price": optional_money(row["average_price"]),
                "quantity_sold": row["quantity_sold"],
            }
            for row in trend.rows
        ]

    total_quantity = column_total(result.rows, "total_quantity_sold")
    return {
        "data": data,
        "time_trend": time_trend,
        "market_summary": {
            "overall_average_price": money(_ratio(weighted, total_quantity)),
            "total_revenue": money(column_total(result.rows, "total_revenue")),
            "total_quantity_sold": total_quantity,
            "products_analyzed": result.total_groups,
        },
        "filters": {
            **_line_filters(options),
            "include_time_trend": include_time_trend,
            "group_by": time_bucket,
        },
    }


def top_products(db: Session, window: DateWindow, *, metric: str, limit: int | None) -> dict[str, Any]:
    result = run_report(
        load_line_facts(db, LineFilter(window=window)),
        ReportSpec(
            group_by=("product",),
            metrics=(
                Metric("product_name", "first", "display_name"),
                Metric("total_quantity_sold", "sum", "quantity"),
                Metric("total_revenue", "sum", "total_price"),
                Metric("average_price", "avg", "unit_price"),
                Metric("invoice_count", "count_invoices"),
                Metric("customer_ids", "distinct", "customer_id"),
            ),
            sort=SortSpec(TOP_PRODUCT_METRICS[metric]),
            limit=limit,
        ),
    )
    data = [
        {
            "rank": position,
            "product_id": row["product_id"],
            "product_name": row["product_name"],
            "total_quantity_sold": row["total_quantity_sold"],
            "total_revenue": money(row["total_revenue"]),
            "average_price": optional_money(row["average_price"]),
            "invoice_count": row["invoice_count"],
            "unique_customer_count": len(row["customer_ids"]),
        }
        for position, row in enumerate(result.page, start=1)
    ]
    return {
        "data": data,
        "filters": {**_window_filters(window), "metric": metric, "limit": limit},
    }


def customer_patterns(
    db: Session,
    window: DateWindow,
    *,
    customer_id: int | None,
    min_purchase_value: Decimal | None,
    limit: int | None,
    now: datetime | None = None,
) -> dict[str, Any]:
    now = now or datetime.now()
    facts = load_invoice_facts(db, window, customer_id=customer_id)
    result = run_report(
        facts,
        ReportSpec(
            group_by=("customer",),
            metrics=(
                Metric("customer_name", "first", "customer_name"),
                Metric("customer_email", "first", "customer_email"),
                Metric("total_purchase_value", "sum", "grand_total"),
                Metric("total_invoices", "count_invoices"),
                Metric("average_invoice_value", "avg", "grand_total"),
                Metric("total_quantity_purchased", "sum", "quantity"),
                Metric("first_purchase", "earliest", "invoice_date"),
                Metric("last_purchase", "latest", "invoice_date"),
            ),
            derived=(
                ("days_since_last_purchase", lambda row: (now - row["last_purchase"]).days),
                ("customer_lifetime_days", lambda row: (row["last_purchase"] - row["first_purchase"]).days),
            ),
            having=lambda row: row["customer_id"] is not None
            and (min_purchase_value is None or row["total_purchase_value"] >= min_purchase_value),
            sort=SortSpec("total_purchase_value"),
            limit=limit,
        ),
    )
    data = [
        {
            "customer_id": row["customer_id"],
            "customer_name": row["customer_name"],
            "customer_email": row["customer_email"],
            "total_purchase_value": money(row["total_purchase_value"]),
            "total_invoices": row["total_invoices"],
            "average_invoice_value": optional_money(row["average_invoice_value"]),
            "total_quantity_purchased": row["total_quantity_purchased"],
            "first_purchase": row["first_purchase"],
            "last_purchase": row["last_purchase"],
            "days_since_last_purchase": row["days_since_last_purchase"],
            "customer_lifetime_days": row["customer_lifetime_days"],
        }
        for row in result.page
    ]
    return {
        "data": data,
        "summary": {
            "customers_analyzed": result.total_groups,
            "total_value_analyzed": money(column_total(result.rows, "total_purchase_value")),
        },
        "filters": {
            **_window_filters(window),
            "customer_id": customer_id,
            "min_purchase_value": min_purchase_value,
            "limit": limit,
        },
    }


MONTHLY_METRICS = (
    Metric("total_revenue", "sum", "grand_total"),
    Metric("total_amount", "sum", "total_amount"),
    Metric("cgst", "sum", "cgst"),
    Metric("sgst", "sum", "sgst"),
    Metric("igst", "sum", "igst"),
    Metric("other_charges", "sum", "other_charges"),
    Metric("total_quantity", "sum", "quantity"),
    Metric("total_invoices", "count_invoices"),
)


def _monthly_rows(facts: list[InvoiceFact]) -> dict[int, dict[str, Any]]:
    result = run_report(facts, ReportSpec(group_by=("month_number",), metrics=MONTHLY_METRICS))
    return {row["month"]: row for row in result.rows}


def _round_half_up(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def monthly_dashboard(db: Session, options: MonthlyDashboardOptions) -> dict[str, Any]:
    """Calendar-year month rows with tax breakdown, a year summary and insights."""
    start, end = calendar_year_range(options.year)
    by_month = _monthly_rows(load_invoice_facts(db, DateWindow(start=start, end=end)))

    data = []
    for month in sorted(by_month):
        row = by_month[month]
        total_tax = row["cgst"] + row["sgst"] + row["igst"]
        data.append(
            {
                "month": month,
                "month_name": month_name(month),
                "total_revenue": money(row["total_revenue"]),
                "total_amount": money(row["total_amount"]),
                "cgst": money(row["cgst"]),
                "sgst": money(row["sgst"]),
                "igst": money(row["igst"]),
                "total_tax": money(total_tax),
                "other_charges": money(row["other_charges"]),
                "total_quantity": row["total_quantity"],
                "total_invoices": row["total_invoices"],
                "average_invoice_value": money(_ratio(row["total_revenue"], row["total_invoices"])),
            }
        )

    rows = list(by_month.values())
    year_revenue = column_total(rows, "total_revenue")
    year_invoices = sum(row["total_invoices"] for row in rows)
    year_summary = {
        "total_revenue": money(year_revenue),
        "total_quantity": column_total(rows, "total_quantity"),
        "total_invoices": year_invoices,
        "total_tax": money(column_total(rows, "cgst") + column_total(rows, "sgst") + column_total(rows, "igst")),
        "average_monthly_revenue": money(year_revenue / 12),
        "average_monthly_invoices": _round_half_up(Decimal(year_invoices) / 12),
        "average_invoice_value": money(_ratio(year_revenue, year_invoices)),
    }

    best = worst = None
    for item in data:
        if best is None or item["total_revenue"] > best["total_revenue"]:
            best = item
        if worst is None or item["total_revenue"] < worst["total_revenue"]:
            worst = item
    insights = {
        "best_month": {"month": best["month_name"], "revenue": best["total_revenue"]} if best else None,
        "worst_month": {"month": worst["month_name"], "revenue": worst["total_revenue"]} if worst else None,
        "revenue_volatility": change_pct(best["total_revenue"], worst["total_revenue"]) if best else None,
    }

    payload: dict[str, Any] = {
        "data": data,
        "year_summary": year_summary,
        "insights": insights,
        "filters": {"year": options.year, "compare_with_last_year": options.compare_with_last_year},
    }
    if options.compare_with_last_year:
        last_start, last_end = calendar_year_range(options.year - 1)
        last_year = _monthly_rows(load_invoice_facts(db, DateWindow(start=last_start, end=last_end)))
        payload["comparison"] = _year_over_year(by_month, last_year)
    return payload


def _year_over_year(current: dict[int, dict[str, Any]], previous: dict[int, dict[str, Any]]) -> list[dict[str, Any]]:
    comparison = []
    for month in sorted(current):
        now_row = current[month]
        then_row = previous.get(month)
        last_revenue = then_row["total_revenue"] if then_row else ZERO
        last_quantity = then_row["total_quantity"] if then_row else ZERO
        last_invoices = then_row["total_invoices"] if then_row else 0
        comparison.append(
            {
                "month": month,
                "month_name": month_name(month),
                "current_year": {
                    "revenue": money(now_row["total_revenue"]),
                    "quantity": now_row["total_quantity"],
                    "invoices": now_row["total_invoices"],
                },
                "last_year": {
                    "revenue": money(last_revenue),
                    "quantity": last_quantity,
                    "invoices": last_invoices,
                },
                "growth": {
                    "revenue_change": money(now_row["total_revenue"] - last_revenue),
                    "revenue_change_percent": change_pct(now_row["total_revenue"], last_revenue),
                    "quantity_change": now_row["total_quantity"] - last_quantity,
                    "quantity_change_percent": change_pct(now_row["total_quantity"], last_quantity),
                    "invoice_change": now_row["total_invoices"] - last_invoices,
                    "invoice_change_percent": change_pct(
                        Decimal(now_row["total_invoices"]), Decimal(last_invoices)
                    ),
                },
            }
        )
    return comparison


def analytics_dashboard(db: Session, window: DateWindow, *, now: datetime | None = None) -> dict[str, Any]:
    now = now or datetime.now()
    invoice_facts = load_invoice_facts(db, window)
    line_facts = load_line_facts(db, LineFilter(window=window))

    overall = None
    if invoice_facts:
        revenue = sum((fact.grand_total for fact in invoice_facts), ZERO)
        overall = {
            "total_revenue": money(revenue),
            "total_invoices": len(invoice_facts),
            "average_invoice_value": money(revenue / len(invoice_facts)),
            "total_tax": money(sum((fact.total_tax for fact in invoice_facts), ZERO)),
        }

    products = run_report(
        line_facts,
        ReportSpec(
            group_by=("product",),
            metrics=(
                Metric("product_name", "first", "display_name"),
                Metric("total_revenue", "sum", "total_price"),
                Metric("total_quantity", "sum", "quantity"),
            ),
            sort=SortSpec("total_revenue"),
            limit=5,
        ),
    )
    customers = run_report(
        invoice_facts,
        ReportSpec(
            group_by=("customer",),
            metrics=(
                Metric("customer_name", "first", "customer_name"),
                Metric("total_purchases", "sum", "grand_total"),
                Metric("invoice_count", "count_invoices"),
            ),
            having=lambda row: row["customer_id"] is not None,
            sort=SortSpec("total_purchases"),
            limit=5,
        ),
    )
    widths = run_report(
        line_facts,
        ReportSpec(
            group_by=("width",),
            metrics=(
                Metric("count", "count_lines"),
                Metric("total_quantity", "sum", "quantity"),
            ),
            sort=SortSpec("total_quantity"),
            limit=10,
        ),
    )
    trend = run_report(
        load_invoice_facts(db, DateWindow(start=now - relativedelta(months=6))),
        ReportSpec(
            group_by=("month",),
            metrics=(
                Metric("revenue", "sum", "grand_total"),
                Metric("invoice_count", "count_invoices"),
            ),
        ),
    )

    return {
        "data": {
            "overall_metrics": overall,
            "top_products": [
                {
                    "product_id": row["product_id"],
                    "product_name": row["product_name"],
                    "total_revenue": money(row["total_revenue"]),
                    "total_quantity": row["total_quantity"],
                }
                for row in products.page
            ],
            "top_customers": [
                {
                    "customer_id": row["customer_id"],
                    "customer_name": row["customer_name"],
                    "total_purchases": money(row["total_purchases"]),
                    "invoice_count": row["invoice_count"],
                }
                for row in customers.page
            ],
            "width_distribution": [
                {"width": row["width"], "count": row["count"], "total_quantity": row["total_quantity"]}
                for row in widths.page
            ],
            "monthly_trend": [
                {"period": row["period"], "revenue": money(row["revenue"]), "invoice_count": row["invoice_count"]}
                for row in trend.rows
            ],
        },
        "filters": _window_filters(window),
    }


def parse_multi_width_request(
    product_id: Any,
    widths: Any,
    *,
    year: Any = None,
    start_date: Any = None,
    end_date: Any = None,
    today: datetime | None = None,
) -> tuple[int, tuple[Decimal, ...], DateWindow]:
    """Validate a multi-width request body.

    A missing product or an empty width list is a 400. Without explicit dates
    the window is the requested calendar year, defaulting to this year.
    """
    parsed_product = parse_id(product_id, "product")
    if parsed_product is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="productId is required")
    if not isinstance(widths, (list, tuple)) or not widths:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="widths must be a non-empty array",
        )
    parsed_widths = tuple(
        width for width in (lenient_decimal(raw) for raw in widths) if width is not None
    )
    if not parsed_widths:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="widths must contain at least one numeric width",
        )

    window = DateWindow.parse(start_date, end_date)
    if window.start is None and window.end is None:
        current_year = (today or datetime.now()).year
        window = DateWindow(*calendar_year_range(lenient_year(year, current_year)))
    return parsed_product, parsed_widths, window


def multi_width_monthly(
    db: Session,
    *,
    product_id: int,
    widths: tuple[Decimal, ...],
    window: DateWindow,
) -> dict[str, Any]:
    facts = load_line_facts(db, LineFilter(window=window, product_id=product_id, widths=widths))
    quantity_revenue = (
        Metric("total_quantity", "sum", "quantity"),
        Metric("total_revenue", "sum", "total_price"),
    )
    months = run_report(
        facts,
        ReportSpec(
            group_by=("month",),
            metrics=(*quantity_revenue, Metric("invoice_count", "count_invoices")),
        ),
    )
    month_widths = run_report(facts, ReportSpec(group_by=("month", "width"), metrics=quantity_revenue))
    overall_widths = run_report(facts, ReportSpec(group_by=("width",), metrics=quantity_revenue))

    breakdown: dict[str, list[dict[str, Any]]] = {}
    for row in month_widths.rows:
        breakdown.setdefault(row["period"], []).append(
            {"width": row["width"], "quantity": row["total_quantity"], "revenue": money(row["total_revenue"])}
        )

    data = []
    for row in months.rows:
        year, month = (int(part) for part in row["period"].split("-"))
        data.append(
            {
                "year": year,
                "month": month,
                "month_name": month_name(month),
                "period": row["period"],
                "total_quantity": row["total_quantity"],
                "total_revenue": money(row["total_revenue"]),
                "average_revenue_per_unit": money(_ratio(row["total_revenue"], row["total_quantity"])),
                "invoice_count": row["invoice_count"],
                "width_breakdown": breakdown.get(row["period"], []),
            }
        )

    total_quantity = column_total(months.rows, "total_quantity")
    total_revenue = column_total(months.rows, "total_revenue")
    months_with_data = months.total_groups
    return {
        "data": data,
        "summary": {
            "total_quantity": total_quantity,
            "total_revenue": money(total_revenue),
            "total_invoices": sum(row["invoice_count"] for row in months.rows),
            "average_monthly_quantity": _ratio(total_quantity, months_with_data),
            "average_monthly_revenue": money(_ratio(total_revenue, months_with_data)),
            "months_with_data": months_with_data,
            "width_wise_summary": [
                {
                    "width": row["width"],
                    "total_quantity": row["total_quantity"],
                    "total_revenue": money(row["total_revenue"]),
                    "percentage_of_total": share_pct(row["total_quantity"], total_quantity),
                }
                for row in overall_widths.rows
            ],
        },
        "filters": {
            **_window_filters(window),
            "product_id": product_id,
            "widths": list(widths),
        },
    }
