from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from tradedesk.models.enums import DeliveryStatus, PaymentStatus
from tradedesk.schemas.common import CamelModel, Money, Pagination


class LineItemOut(CamelModel):
    id: int
    position: int
    product_id: int | None = None
    name: str | None = None
    roll_id: str
    width: Decimal | None = None
    net_weight: Decimal | None = None
    gross_weight: Decimal | None = None
    micron: Decimal | None = None
    mtr: Decimal | None = None
    quantity: Decimal | None = None
    unit_price: Money | None = None
    total_price: Money | None = None


class InvoiceOut(CamelModel):
    id: int
    invoice_number: str
    customer_id: int
    invoice_date: datetime
    total_amount: Money
    cgst: Money
    sgst: Money
    igst: Money
    other_charges: Money
    grand_total: Money
    paid_amount: Money
    pending_amount: Money
    payment_status: PaymentStatus
    delivery_status: DeliveryStatus
    delivery_notes: str | None = None
    line_items: list[LineItemOut] = []


class LedgerCustomer(CamelModel):
    id: int
    name: str
    gstin: str


class FinancialYearOut(CamelModel):
    label: str
    start_date: datetime
    end_date: datetime


class LedgerSummary(CamelModel):
    total_invoices: int
    total_amount: Money
    grand_total: Money


class CustomerLedgerResponse(CamelModel):
    success: bool = True
    data: list[InvoiceOut]
    customer: LedgerCustomer
    financial_year: FinancialYearOut
    summary: LedgerSummary
    pagination: Pagination
