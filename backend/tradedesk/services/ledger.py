from __future__ import annotations

import math
from datetime import date
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from tradedesk.models.invoice import Invoice, InvoiceLineItem
from tradedesk.services.lookups import get_customer_or_404
from tradedesk.services.periods import resolve_financial_year
from tradedesk.utils.decimal_math import money


LEDGER_SORT_COLUMNS = {
    "invoice_date": Invoice.invoice_date,
    "invoice_number": Invoice.invoice_number,
    "total_amount": Invoice.total_amount,
    "grand_total": Invoice.grand_total,
    "pending_amount": Invoice.pending_amount,
}


def customer_invoices_by_financial_year(
    db: Session,
    customer_id: int,
    *,
    financial_year: str | None = None,
    page: int = 1,
    items_per_page: int = 10,
    sort_by: str = "invoice_date",
    sort_desc: bool = True,
    search: str | None = None,
    today: date | None = None,
) -> dict[str, Any]:
    """One page of a customer's invoices within a financial year.

    ``search`` matches the invoice number or any roll id on the invoice,
    case-insensitively. Year totals ignore the search and pagination.
    """
    customer = get_customer_or_404(db, customer_id)
    fy = resolve_financial_year(financial_year, today=today)
    page = max(page, 1)
    items_per_page = items_per_page if items_per_page > 0 else 10

    in_year = (
        Invoice.customer_id == customer_id,
        Invoice.invoice_date >= fy.start_date,
        Invoice.invoice_date <= fy.end_date,
    )
    conditions = list(in_year)
    if search and search.strip():
        pattern = f"%{search.strip().lower()}%"
        conditions.append(
            or_(
                func.lower(Invoice.invoice_number).like(pattern),
                Invoice.line_items.any(func.lower(InvoiceLineItem.roll_id).like(pattern)),
            )
        )

    total_items = db.scalar(select(func.count(Invoice.id)).where(*conditions)) or 0
    column = LEDGER_SORT_COLUMNS.get(sort_by, Invoice.invoice_date)
    invoices = db.scalars(
        select(Invoice)
        .options(selectinload(Invoice.line_items))
        .where(*conditions)
        .order_by(column.desc() if sort_desc else column.asc(), Invoice.id.asc())
        .offset((page - 1) * items_per_page)
        .limit(items_per_page)
    ).all()

    totals = db.execute(
        select(
            func.count(Invoice.id),
            func.coalesce(func.sum(Invoice.total_amount), 0),
            func.coalesce(func.sum(Invoice.grand_total), 0),
        ).where(*in_year)
    ).one()

    return {
        "data": list(invoices),
        "customer": {"id": customer.id, "name": customer.name, "gstin": customer.gstin},
        "financial_year": {"label": fy.label, "start_date": fy.start_date, "end_date": fy.end_date},
        "summary": {
            "total_invoices": totals[0],
            "total_amount": money(totals[1]),
            "grand_total": money(totals[2]),
        },
        "pagination": {
            "page": page,
            "items_per_page": items_per_page,
            "total_items": total_items,
            "total_pages": math.ceil(total_items / items_per_page),
        },
    }
