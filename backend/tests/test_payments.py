from datetime import datetime
from decimal import Decimal

import pytest
from fastapi import HTTPException

from factories import add_customer, add_invoice, make_session
from tradedesk.models.enums import DeliveryStatus, PaymentStatus
from tradedesk.services.payments import (
    apply_payment,
    create_opening_invoice,
    determine_payment_status,
    reverse_payment,
    validate_invoice_for_customer,
)


def test_status_is_a_function_of_total_and_paid() -> None:
    total = Decimal('1000')

    assert determine_payment_status(total, Decimal('0')) == PaymentStatus.unpaid
    assert determine_payment_status(total, Decimal('1')) == PaymentStatus.partial
    assert determine_payment_status(total, Decimal('1000')) == PaymentStatus.paid
    assert determine_payment_status(total, Decimal('1000.01')) == PaymentStatus.overpaid


def test_apply_and_reverse_payment_on_live_invoice() -> None:
    db = make_session()
    customer = add_customer(db)
    invoice = add_invoice(db, customer, invoice_date=datetime(2024, 1, 1), total_amount='1000', number='INV-100')

    apply_payment(db, 'INV-100', Decimal('400'))
    assert invoice.paid_amount == Decimal('400.00')
    assert invoice.pending_amount == Decimal('600.00')
    assert invoice.payment_status == PaymentStatus.partial

    apply_payment(db, 'INV-100', Decimal('600'))
    assert invoice.payment_status == PaymentStatus.paid

    reverse_payment(db, 'INV-100', Decimal('5000'))
    assert invoice.paid_amount == Decimal('0.00')
    assert invoice.pending_amount == Decimal('1000.00')
    assert invoice.payment_status == PaymentStatus.unpaid


def test_archived_invoice_is_read_only() -> None:
    db = make_session()
    customer = add_customer(db)
    add_invoice(db, customer, invoice_date=datetime(2022, 1, 1), total_amount='10', archived=True, number='OLD-1')

    with pytest.raises(HTTPException) as exc:
        apply_payment(db, 'OLD-1', Decimal('5'))
    assert exc.value.status_code == 409

    with pytest.raises(HTTPException) as missing:
        apply_payment(db, 'NOPE', Decimal('5'))
    assert missing.value.status_code == 404


def test_invoice_must_belong_to_customer() -> None:
    db = make_session()
    owner = add_customer(db)
    other = add_customer(db)
    add_invoice(db, owner, invoice_date=datetime(2024, 1, 1), total_amount='10', number='INV-7')

    assert validate_invoice_for_customer(db, 'INV-7', owner.id).invoice_number == 'INV-7'
    with pytest.raises(HTTPException) as exc:
        validate_invoice_for_customer(db, 'INV-7', other.id)
    assert exc.value.status_code == 400


def test_opening_invoice_has_no_lines_and_derived_status() -> None:
    db = make_session()
    customer = add_customer(db)

    invoice = create_opening_invoice(
        db,
        customer_id=customer.id,
        invoice_number='OPEN-1',
        total_amount=Decimal('800'),
        paid_amount=Decimal('300'),
        invoice_date=datetime(2024, 3, 31),
    )

    assert invoice.line_items == []
    assert invoice.grand_total == Decimal('800.00')
    assert invoice.pending_amount == Decimal('500.00')
    assert invoice.payment_status == PaymentStatus.partial
    assert invoice.delivery_status == DeliveryStatus.delivered

    with pytest.raises(HTTPException) as exc:
        create_opening_invoice(db, customer_id=customer.id, invoice_number='OPEN-1', total_amount=Decimal('1'))
    assert exc.value.status_code == 400
