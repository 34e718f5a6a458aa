from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from tradedesk.models.enums import DeliveryStatus, PaymentStatus
from tradedesk.models.invoice import Invoice
from tradedesk.services.invoice_store import AnyInvoice, InvoiceStore
from tradedesk.services.lookups import get_customer_or_404
from tradedesk.utils.decimal_math import ZERO, money


logger = logging.getLogger("tradedesk.payments")


def determine_payment_status(grand_total: Decimal, paid_amount: Decimal) -> PaymentStatus:
    if paid_amount == 0:
        return PaymentStatus.unpaid
    if paid_amount < grand_total:
        return PaymentStatus.partial
    if paid_amount == grand_total:
        return PaymentStatus.paid
    return PaymentStatus.overpaid


def _set_paid(invoice: Invoice, paid_amount: Decimal) -> None:
    invoice.paid_amount = money(paid_amount)
    invoice.pending_amount = money(invoice.grand_total - invoice.paid_amount)
    invoice.payment_status = determine_payment_status(invoice.grand_total, invoice.paid_amount)


def _require_positive(amount: Decimal) -> None:
    if amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Allocated amount must be greater than zero.",
        )


def apply_payment(db: Session, invoice_number: str, amount: Decimal) -> Invoice:
    """Add ``amount`` to the invoice's paid total and recompute its status."""
    _require_positive(amount)
    invoice = InvoiceStore(db).live_for_update(invoice_number)
    _set_paid(invoice, (invoice.paid_amount or ZERO) + amount)
    db.flush()
    logger.info("Allocated %s to invoice %s (%s)", amount, invoice_number, invoice.payment_status.value)
    return invoice


def reverse_payment(db: Session, invoice_number: str, amount: Decimal) -> Invoice:
    """Undo an allocation; the paid total never drops below zero."""
    _require_positive(amount)
    invoice = InvoiceStore(db).live_for_update(invoice_number)
    _set_paid(invoice, max(ZERO, (invoice.paid_amount or ZERO) - amount))
    db.flush()
    logger.info("Reversed %s on invoice %s (%s)", amount, invoice_number, invoice.payment_status.value)
    return invoice


def validate_invoice_for_customer(db: Session, invoice_number: str, customer_id: int) -> AnyInvoice:
    invoice = InvoiceStore(db).require_by_number(invoice_number)
    if invoice.customer_id != customer_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invoice {invoice_number} does not belong to customer {customer_id}",
        )
    return invoice


def create_opening_invoice(
    db: Session,
    *,
    customer_id: int,
    invoice_number: str,
    total_amount: Decimal,
    paid_amount: Decimal = ZERO,
    invoice_date: datetime | None = None,
    description: str = "Opening Outstanding",
) -> Invoice:
    """Live invoice carrying a balance brought forward; it has no line items."""
    if not invoice_number or total_amount <= 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields for opening invoice",
        )
    get_customer_or_404(db, customer_id)
    if InvoiceStore(db).get_by_number(invoice_number) is not None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invoice {invoice_number} already exists",
        )

    invoice = Invoice(
        invoice_number=invoice_number,
        customer_id=customer_id,
        invoice_date=invoice_date or datetime.now(),
        total_amount=money(total_amount),
        grand_total=money(total_amount),
        cgst=ZERO,
        sgst=ZERO,
        igst=ZERO,
        other_charges=ZERO,
        delivery_status=DeliveryStatus.delivered,
        delivery_notes=description,
    )
    _set_paid(invoice, paid_amount)
    db.add(invoice)
    db.flush()
    return invoice
