from __future__ import annotations

import logging
import math
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from fastapi import HTTPException, status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from tradedesk.core.config import get_settings
from tradedesk.models.enums import PaymentStatus, PendingSource
from tradedesk.models.invoice import Invoice
from tradedesk.models.opening_outstanding import OpeningOutstanding
from tradedesk.services.invoice_store import InvoiceStore
from tradedesk.services.lookups import get_customer_or_404
from tradedesk.services.options import PendingInvoiceOptions
from tradedesk.utils.decimal_math import ZERO, money, share_pct


logger = logging.getLogger("tradedesk.outstanding")

OPENING_SORT_COLUMNS = {
    "invoice_date": OpeningOutstanding.invoice_date,
    "invoice_number": OpeningOutstanding.invoice_number,
    "opening_pending_amount": OpeningOutstanding.opening_pending_amount,
    "balance_pending": OpeningOutstanding.balance_pending,
    "as_of_date": OpeningOutstanding.as_of_date,
    "created_at": OpeningOutstanding.created_at,
}
PENDING_SORT_COLUMNS = {
    "invoice_date": Invoice.invoice_date,
    "invoice_number": Invoice.invoice_number,
    "pending_amount": Invoice.pending_amount,
    "grand_total": Invoice.grand_total,
}


def get_opening_outstanding_or_404(db: Session, record_id: int) -> OpeningOutstanding:
    record = db.get(OpeningOutstanding, record_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Opening outstanding record not found",
        )
    return record


def create_opening_outstanding(
    db: Session,
    *,
    customer_id: int | None,
    invoice_id: int | None,
    invoice_number: str | None,
    invoice_date: datetime | None,
    opening_pending_amount: Decimal | None,
    adjusted_amount: Decimal | None = None,
    as_of_date: date | None = None,
) -> OpeningOutstanding:
    """Record a balance carried over from before the cutover.

    Validation order: required fields (400), customer (404), invoice in either
    store (404), one record per invoice (400).
    """
    if (
        not customer_id
        or not invoice_id
        or not invoice_number
        or invoice_date is None
        or not opening_pending_amount
    ):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=(
                "Missing required fields: customer, invoiceId, invoiceNumber, invoiceDate, "
                "and openingPendingAmount are required"
            ),
        )
    get_customer_or_404(db, customer_id)
    if not InvoiceStore(db).exists(invoice_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Invoice {invoice_id} not found in either live or archived records",
        )
    existing = db.scalar(select(OpeningOutstanding).where(OpeningOutstanding.invoice_id == invoice_id))
    if existing is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Opening outstanding already exists for invoice {invoice_number}",
        )

    record = OpeningOutstanding(
        customer_id=customer_id,
        invoice_id=invoice_id,
        invoice_number=invoice_number,
        invoice_date=invoice_date,
        opening_pending_amount=opening_pending_amount,
        as_of_date=as_of_date or get_settings().opening_outstanding_as_of,
    )
    record.apply_adjustment(adjusted_amount or ZERO)
    db.add(record)
    db.flush()
    logger.info("Opening outstanding %s recorded for invoice %s", record.balance_pending, invoice_number)
    return record


def update_opening_outstanding(db: Session, record_id: int, *, adjusted_amount: Decimal | None) -> OpeningOutstanding:
    record = get_opening_outstanding_or_404(db, record_id)
    if adjusted_amount is not None:
        record.apply_adjustment(adjusted_amount)
    db.flush()
    return record


def delete_opening_outstanding(db: Session, record_id: int) -> OpeningOutstanding:
    record = get_opening_outstanding_or_404(db, record_id)
    db.delete(record)
    db.flush()
    return record


def list_opening_outstanding(
    db: Session,
    *,
    page: int = 1,
    items_per_page: int = 10,
    customer_id: int | None = None,
    sort_by: str = "invoice_date",
    sort_desc: bool = False,
) -> tuple[list[OpeningOutstanding], dict[str, int]]:
    page = max(page, 1)
    items_per_page = items_per_page if items_per_page > 0 else 10
    column = OPENING_SORT_COLUMNS.get(sort_by, OpeningOutstanding.invoice_date)

    stmt = select(OpeningOutstanding)
    count_stmt = select(func.count(OpeningOutstanding.id))
    if customer_id is not None:
        stmt = stmt.where(OpeningOutstanding.customer_id == customer_id)
        count_stmt = count_stmt.where(OpeningOutstanding.customer_id == customer_id)

    total_items = db.scalar(count_stmt) or 0
    records = db.scalars(
        stmt.order_by(column.desc() if sort_desc else column.asc(), OpeningOutstanding.id.asc())
        .offset((page - 1) * items_per_page)
        .limit(items_per_page)
    ).all()
    return list(records), {
        "page": page,
        "items_per_page": items_per_page,
        "total_items": total_items,
        "total_pages": math.ceil(total_items / items_per_page),
    }


def _current_pending(db: Session, customer_id: int, options: PendingInvoiceOptions) -> list[Invoice]:
    stmt = select(Invoice).where(
        Invoice.customer_id == customer_id,
        or_(
            Invoice.payment_status.in_([PaymentStatus.unpaid, PaymentStatus.partial]),
            Invoice.pending_amount > 0,
        ),
    )
    if options.min_amount is not None:
        stmt = stmt.where(Invoice.pending_amount >= options.min_amount)
    if options.max_amount is not None:
        stmt = stmt.where(Invoice.pending_amount <= options.max_amount)
    column = PENDING_SORT_COLUMNS[options.sort_by]
    stmt = stmt.order_by(column.desc() if options.descending else column.asc(), Invoice.id.asc())
    return list(db.scalars(stmt).all())


def _opening_pending(db: Session, customer_id: int, options: PendingInvoiceOptions) -> list[OpeningOutstanding]:
    stmt = select(OpeningOutstanding).where(
        OpeningOutstanding.customer_id == customer_id,
        OpeningOutstanding.balance_pending > 0,
    )
    if options.min_amount is not None:
        stmt = stmt.where(OpeningOutstanding.balance_pending >= options.min_amount)
    if options.max_amount is not None:
        stmt = stmt.where(OpeningOutstanding.balance_pending <= options.max_amount)
    stmt = stmt.order_by(OpeningOutstanding.invoice_date.desc(), OpeningOutstanding.id.asc())
    return list(db.scalars(stmt).all())


def customer_pending_invoices(db: Session, customer_id: int, options: PendingInvoiceOptions) -> dict[str, Any]:
    """Live pending invoices merged with opening balances for one customer.

    Opening rows come first, then live rows in the requested order. The
    overall total is the sum of the two independently rounded subtotals.
    """
    customer = get_customer_or_404(db, customer_id)
    current = _current_pending(db, customer_id, options)
    opening = _opening_pending(db, customer_id, options) if options.include_opening else []

    opening_rows = [
        {
            "invoice_id": record.invoice_id,
            "invoice_number": record.invoice_number,
            "invoice_date": record.invoice_date,
            "total_amount": money(record.opening_pending_amount),
            "paid_amount": money(record.adjusted_amount),
            "pending_amount": money(record.balance_pending),
            "payment_status": PaymentStatus.unpaid if record.balance_pending > 0 else PaymentStatus.paid,
            "type": PendingSource.opening,
            "as_of_date": record.as_of_date,
        }
        for record in opening
    ]
    current_rows = [
        {
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "invoice_date": invoice.invoice_date,
            "total_amount": money(invoice.grand_total),
            "paid_amount": money(invoice.paid_amount),
            "pending_amount": money(invoice.pending_amount),
            "payment_status": invoice.payment_status,
            "type": PendingSource.current,
            "as_of_date": None,
        }
        for invoice in current
    ]

    total_current = money(sum((invoice.pending_amount or ZERO for invoice in current), ZERO))
    total_opening = money(sum((record.balance_pending for record in opening), ZERO))
    rows = opening_rows + current_rows
    return {
        "customer": customer,
        "pending_invoices": rows,
        "summary": {
            "total_invoices": len(rows),
            "current_invoices_count": len(current_rows),
            "opening_outstanding_count": len(opening_rows),
            "total_current_pending": total_current,
            "total_opening_outstanding": total_opening,
            "total_pending": total_current + total_opening,
        },
    }


def _as_moment(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def invoice_payment_history(db: Session, invoice_id: int, *, include_opening: bool = True) -> dict[str, Any]:
    invoice = InvoiceStore(db).get(invoice_id)
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Invoice with ID {invoice_id} not found",
        )
    opening = None
    if include_opening:
        opening = db.scalar(select(OpeningOutstanding).where(OpeningOutstanding.invoice_id == invoice_id))

    history: list[dict[str, Any]] = []
    if opening is not None:
        history.append(
            {
                "date": _as_moment(opening.as_of_date),
                "type": "opening_balance",
                "amount": money(opening.opening_pending_amount),
                "balance": money(opening.opening_pending_amount),
                "description": "Opening outstanding balance",
            }
        )
        if opening.adjusted_amount > 0:
            history.append(
                {
                    "date": opening.updated_at or opening.created_at,
                    "type": "adjustment",
                    "amount": money(-opening.adjusted_amount),
                    "balance": money(opening.balance_pending),
                    "description": "Payment adjustment",
                }
            )
        total_amount = opening.opening_pending_amount
        paid_amount = opening.adjusted_amount
        pending_amount = opening.balance_pending
    else:
        history.append(
            {
                "date": invoice.invoice_date,
                "type": "invoice_created",
                "amount": money(invoice.grand_total),
                "balance": money(invoice.grand_total),
                "description": f"Invoice {invoice.invoice_number} created",
            }
        )
        if (invoice.paid_amount or ZERO) > 0:
            history.append(
                {
                    "date": invoice.updated_at,
                    "type": "payment",
                    "amount": money(-invoice.paid_amount),
                    "balance": money(invoice.pending_amount),
                    "description": "Payment received",
                }
            )
        total_amount = invoice.grand_total
        paid_amount = invoice.paid_amount or ZERO
        pending_amount = invoice.pending_amount or ZERO

    history.sort(key=lambda entry: _as_moment(entry["date"]), reverse=True)
    return {
        "invoice": {
            "invoice_id": invoice.id,
            "invoice_number": invoice.invoice_number,
            "invoice_date": invoice.invoice_date,
            "customer_id": invoice.customer_id,
            "customer_name": invoice.customer.name if invoice.customer else None,
            "total_amount": money(invoice.grand_total),
            "is_opening_outstanding": opening is not None,
            "is_archived": InvoiceStore.is_archived(invoice),
        },
        "payment_summary": {
            "total_amount": money(total_amount),
            "paid_amount": money(paid_amount),
            "pending_amount": money(pending_amount),
            "payment_status": invoice.payment_status,
            "payment_percentage": share_pct(paid_amount, total_amount) if total_amount > 0 else money(0),
        },
        "payment_history": history,
    }
