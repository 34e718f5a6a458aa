from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

from tradedesk.models.customer import Customer
from tradedesk.models.invoice import Invoice, InvoiceLineItem
from tradedesk.models.product import Product
from tradedesk.services.options import DateWindow, WidthFilter


@dataclass(frozen=True)
class LineFact:
    """One invoice line flattened together with its invoice attributes."""

    line_id: int
    invoice_id: int
    invoice_number: str
    invoice_date: datetime
    customer_id: int | None
    customer_name: str | None
    product_id: int | None
    product_name: str | None
    catalog_name: str | None
    width: Decimal | None
    quantity: Decimal | None
    unit_price: Decimal | None
    total_price: Decimal | None
    unit_cost: Decimal | None
    grand_total: Decimal

    @property
    def line_cost(self) -> Decimal:
        return (self.quantity or Decimal("0")) * (self.unit_cost or Decimal("0"))

    @property
    def display_name(self) -> str | None:
        return self.catalog_name or self.product_name


@dataclass(frozen=True)
class InvoiceFact:
    invoice_id: int
    invoice_number: str
    invoice_date: datetime
    customer_id: int | None
    customer_name: str | None
    customer_email: str | None
    total_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    other_charges: Decimal
    grand_total: Decimal
    quantity: Decimal

    @property
    def total_tax(self) -> Decimal:
        return self.cgst + self.sgst + self.igst


@dataclass(frozen=True)
class LineFilter:
    """Filter applied while flattening; invoice-level and line-level parts."""

    window: DateWindow = field(default_factory=DateWindow)
    customer_id: int | None = None
    product_id: int | None = None
    width: WidthFilter | None = None
    widths: tuple[Decimal, ...] = ()
    min_quantity: Decimal | None = None
    max_quantity: Decimal | None = None


def _window_conditions(window: DateWindow) -> list:
    conditions = []
    if window.start is not None:
        conditions.append(Invoice.invoice_date >= window.start)
    if window.end is not None:
        conditions.append(Invoice.invoice_date <= window.end)
    return conditions


def line_fact_query(line_filter: LineFilter) -> Select:
    stmt = (
        select(
            InvoiceLineItem.id,
            Invoice.id,
            Invoice.invoice_number,
            Invoice.invoice_date,
            Invoice.customer_id,
            Customer.name,
            InvoiceLineItem.product_id,
            InvoiceLineItem.name,
            Product.name,
            InvoiceLineItem.width,
            InvoiceLineItem.quantity,
            InvoiceLineItem.unit_price,
            InvoiceLineItem.total_price,
            Product.cost,
            Invoice.grand_total,
        )
        .join(Invoice, InvoiceLineItem.invoice_id == Invoice.id)
        .outerjoin(Customer, Invoice.customer_id == Customer.id)
        .outerjoin(Product, InvoiceLineItem.product_id == Product.id)
    )
    conditions = _window_conditions(line_filter.window)
    if line_filter.customer_id is not None:
        conditions.append(Invoice.customer_id == line_filter.customer_id)
    if line_filter.product_id is not None:
        conditions.append(InvoiceLineItem.product_id == line_filter.product_id)
    width = line_filter.width
    if width is not None:
        if width.is_exact:
            conditions.append(InvoiceLineItem.width == width.minimum)
        else:
            if width.minimum is not None:
                conditions.append(InvoiceLineItem.width >= width.minimum)
            if width.maximum is not None:
                conditions.append(InvoiceLineItem.width <= width.maximum)
    if line_filter.widths:
        conditions.append(InvoiceLineItem.width.in_(line_filter.widths))
    if line_filter.min_quantity is not None:
        conditions.append(InvoiceLineItem.quantity >= line_filter.min_quantity)
    if line_filter.max_quantity is not None:
        conditions.append(InvoiceLineItem.quantity <= line_filter.max_quantity)
    if conditions:
        stmt = stmt.where(*conditions)
    return stmt.order_by(Invoice.invoice_date.asc(), Invoice.id.asc(), InvoiceLineItem.position.asc())


def load_line_facts(db: Session, line_filter: LineFilter) -> list[LineFact]:
    return [LineFact(*row) for row in db.execute(line_fact_query(line_filter)).all()]


def load_invoice_facts(
    db: Session,
    window: DateWindow,
    *,
    customer_id: int | None = None,
) -> list[InvoiceFact]:
    quantity_by_invoice = (
        select(
            InvoiceLineItem.invoice_id.label("invoice_id"),
            func.coalesce(func.sum(InvoiceLineItem.quantity), 0).label("quantity"),
        )
        .group_by(InvoiceLineItem.invoice_id)
        .subquery()
    )
    stmt = (
        select(
            Invoice.id,
            Invoice.invoice_number,
            Invoice.invoice_date,
            Invoice.customer_id,
            Customer.name,
            Customer.email_id,
            Invoice.total_amount,
            Invoice.cgst,
            Invoice.sgst,
            Invoice.igst,
            Invoice.other_charges,
            Invoice.grand_total,
            func.coalesce(quantity_by_invoice.c.quantity, 0),
        )
        .outerjoin(Customer, Invoice.customer_id == Customer.id)
        .outerjoin(quantity_by_invoice, quantity_by_invoice.c.invoice_id == Invoice.id)
    )
    conditions = _window_conditions(window)
    if customer_id is not None:
        conditions.append(Invoice.customer_id == customer_id)
    if conditions:
        stmt = stmt.where(*conditions)
    stmt = stmt.order_by(Invoice.invoice_date.asc(), Invoice.id.asc())
    return [_invoice_fact(row) for row in db.execute(stmt).all()]


def _invoice_fact(row: Iterable) -> InvoiceFact:
    values = list(row)
    values[-1] = Decimal(str(values[-1] or 0))
    return InvoiceFact(*values)
