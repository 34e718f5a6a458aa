"""Data-quality scans over live invoice lines.

Reports trust stored ``total_price`` and ``quantity`` values; these scans
surface the lines where those values are missing or non-positive and can
repair them from the remaining fields.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, joinedload

from tradedesk.core.config import get_settings
from tradedesk.models.invoice import Invoice, InvoiceLineItem
from tradedesk.services.aggregation import Metric, ReportSpec, SortSpec, run_report
from tradedesk.services.line_facts import LineFact, LineFilter, load_line_facts
from tradedesk.services.options import DateWindow
from tradedesk.services.periods import calendar_year_range
from tradedesk.utils.decimal_math import ZERO, money, optional_money


logger = logging.getLogger("tradedesk.data_quality")

WIDTH_BREAKDOWN_LIMIT = 20
SAMPLE_LIMIT = 10
FIX_PREVIEW_LIMIT = 20


def classify_line(total_price: Decimal | None, quantity: Decimal | None, width: Decimal | None) -> str | None:
    """First matching issue code for a line, or ``None`` when the line is clean."""
    if total_price is None:
        return "NULL_TOTAL_PRICE"
    if total_price == 0:
        return "ZERO_TOTAL_PRICE"
    if total_price < 0:
        return "NEGATIVE_TOTAL_PRICE"
    if quantity is None:
        return "NULL_QUANTITY"
    if quantity == 0:
        return "ZERO_QUANTITY"
    if quantity < 0:
        return "NEGATIVE_QUANTITY"
    if width is None:
        return "NULL_WIDTH"
    return None


def _price_or_quantity_invalid(fact: LineFact) -> bool:
    return (fact.total_price or ZERO) <= 0 or (fact.quantity or ZERO) <= 0


def _issue_row(fact: LineFact) -> dict[str, Any]:
    return {
        "invoice_id": fact.invoice_id,
        "invoice_number": fact.invoice_number,
        "customer_name": fact.customer_name,
        "invoice_date": fact.invoice_date,
        "product_name": fact.product_name,
        "width": fact.width,
        "quantity": fact.quantity,
        "unit_price": fact.unit_price,
        "total_price": fact.total_price,
    }


def _year_window(year: int) -> DateWindow:
    start, end = calendar_year_range(year)
    return DateWindow(start=start, end=end)


def diagnose_width_revenue(db: Session, *, year: int, month: int | None = None) -> dict[str, Any]:
    facts = load_line_facts(db, LineFilter(window=_year_window(year)))
    if month is not None:
        facts = [fact for fact in facts if fact.invoice_date.month == month]

    issues_by_type: dict[str, list[dict[str, Any]]] = {}
    for fact in facts:
        issue = classify_line(fact.total_price, fact.quantity, fact.width)
        if issue is not None:
            issues_by_type.setdefault(issue, []).append(_issue_row(fact))

    breakdown = run_report(
        facts,
        ReportSpec(
            group_by=("width",),
            metrics=(
                Metric("total_quantity", "sum", "quantity"),
                Metric("total_revenue", "sum", "total_price"),
                Metric("average_unit_price", "avg", "unit_price"),
                Metric("min_price", "min", "unit_price"),
                Metric("max_price", "max", "unit_price"),
                Metric("record_count", "count_lines"),
                Metric("null_price_count", "sum", lambda fact: 1 if fact.total_price is None else 0),
                Metric("zero_price_count", "sum", lambda fact: 1 if fact.total_price == 0 else 0),
                Metric(
                    "negative_price_count",
                    "sum",
                    lambda fact: 1 if fact.total_price is not None and fact.total_price < 0 else 0,
                ),
            ),
            derived=(
                (
                    "has_data_issues",
                    lambda row: row["null_price_count"] + row["zero_price_count"] + row["negative_price_count"] > 0,
                ),
            ),
            # lowest revenue first
            sort=SortSpec("total_revenue", descending=False),
        ),
    )

    zero_revenue_widths = sum(1 for row in breakdown.rows if row["total_revenue"] == 0)
    total_issues = sum(len(rows) for rows in issues_by_type.values())
    samples = [_issue_row(fact) for fact in facts if _price_or_quantity_invalid(fact)][:SAMPLE_LIMIT]

    recommendations = [
        "Data quality issues detected. Review and fix invoices with null or zero values."
        if total_issues
        else "No major data quality issues found.",
        "Some widths have zero revenue. Check if products are being given away for free or if there's a data entry issue."
        if zero_revenue_widths
        else "All widths have valid revenue data.",
        "Consider adding validation at invoice creation to prevent null or zero values in quantity and total_price fields.",
    ]

    return {
        "summary": {
            "total_issues_found": total_issues,
            "issue_breakdown": [
                {"issue_type": issue, "count": len(rows)} for issue, rows in issues_by_type.items()
            ],
            "widths_with_zero_revenue": zero_revenue_widths,
            "widths_with_data_issues": sum(1 for row in breakdown.rows if row["has_data_issues"]),
            "total_widths_analyzed": breakdown.total_groups,
        },
        "width_breakdown": [
            {
                "width": row["width"],
                "total_quantity": row["total_quantity"],
                "total_revenue": money(row["total_revenue"]),
                "average_unit_price": optional_money(row["average_unit_price"]),
                "min_price": optional_money(row["min_price"]),
                "max_price": optional_money(row["max_price"]),
                "record_count": row["record_count"],
                "null_price_count": int(row["null_price_count"]),
                "zero_price_count": int(row["zero_price_count"]),
                "negative_price_count": int(row["negative_price_count"]),
                "has_data_issues": row["has_data_issues"],
            }
            for row in breakdown.rows[:WIDTH_BREAKDOWN_LIMIT]
        ],
        "issues_by_type": issues_by_type,
        "sample_problematic_invoices": samples,
        "recommendations": recommendations,
        "filters": {"year": year, "month": month},
    }


def suggest_line_fix(line: InvoiceLineItem) -> tuple[list[str], dict[str, Decimal]]:
    """Issues on a line and the values that would repair them.

    A missing total is rebuilt from quantity and unit price; a missing
    quantity from total and unit price.
    """
    issues: list[str] = []
    fixes: dict[str, Decimal] = {}
    quantity = line.quantity or ZERO
    unit_price = line.unit_price or ZERO
    total_price = line.total_price or ZERO

    if total_price <= 0:
        issues.append("Invalid total_price")
        if quantity > 0 and unit_price > 0:
            fixes["total_price"] = money(quantity * unit_price)
    if quantity <= 0:
        issues.append("Invalid quantity")
        if total_price > 0 and unit_price > 0:
            fixes["quantity"] = (total_price / unit_price).quantize(Decimal("0.001"))
    return issues, fixes


def suggest_data_fixes(db: Session, *, year: int, dry_run: bool = True) -> dict[str, Any]:
    window = _year_window(year)
    stmt = (
        select(Invoice)
        .options(joinedload(Invoice.line_items))
        .where(
            Invoice.invoice_date >= window.start,
            Invoice.invoice_date <= window.end,
            Invoice.line_items.any(
                or_(
                    InvoiceLineItem.total_price.is_(None),
                    InvoiceLineItem.total_price == 0,
                    InvoiceLineItem.quantity.is_(None),
                    InvoiceLineItem.quantity == 0,
                )
            ),
        )
        .order_by(Invoice.invoice_date.asc(), Invoice.id.asc())
        .limit(get_settings().data_fix_scan_limit)
    )
    invoices = db.execute(stmt).unique().scalars().all()

    fixes: list[dict[str, Any]] = []
    targets: list[tuple[InvoiceLineItem, dict[str, Decimal]]] = []
    for invoice in invoices:
        for index, line in enumerate(invoice.line_items):
            issues, suggested = suggest_line_fix(line)
            if not issues:
                continue
            fixes.append(
                {
                    "invoice_id": invoice.id,
                    "invoice_number": invoice.invoice_number,
                    "line_index": index,
                    "product_name": line.name,
                    "current_values": {
                        "quantity": line.quantity,
                        "unit_price": line.unit_price,
                        "total_price": line.total_price,
                    },
                    "issues": issues,
                    "suggested_fixes": suggested,
                    "can_auto_fix": bool(suggested),
                }
            )
            if suggested:
                targets.append((line, suggested))

    if not dry_run:
        for line, suggested in targets:
            for column, value in suggested.items():
                setattr(line, column, value)
        db.flush()
        logger.info("Applied %s of %s suggested line fixes for %s", len(targets), len(fixes), year)
        return {
            "dry_run": False,
            "message": f"Fixed {len(targets)} out of {len(fixes)} issues",
            "fixed_count": len(targets),
            "total_issues": len(fixes),
            "filters": {"year": year},
        }

    return {
        "dry_run": True,
        "message": "This is a dry run. Set dryRun=false to apply fixes.",
        "total_issues_found": len(fixes),
        "auto_fixable_issues": len(targets),
        "fixes": fixes[:FIX_PREVIEW_LIMIT],
        "filters": {"year": year},
    }
