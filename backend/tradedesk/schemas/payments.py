from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from tradedesk.models.enums import PaymentStatus
from tradedesk.schemas.common import CamelModel, Money


class AllocationRequest(CamelModel):
    amount: Decimal = Field(gt=0)
    customer_id: int | None = None


class OpeningInvoiceCreateRequest(CamelModel):
    customer_id: int
    invoice_number: str = Field(min_length=1, max_length=50)
    total_amount: Decimal
    paid_amount: Decimal = Decimal("0")
    invoice_date: datetime | None = None
    description: str = "Opening Outstanding"


class InvoiceBalanceOut(CamelModel):
    id: int
    invoice_number: str
    customer_id: int
    invoice_date: datetime
    grand_total: Money
    paid_amount: Money
    pending_amount: Money
    payment_status: PaymentStatus


class InvoiceBalanceResponse(CamelModel):
    success: bool = True
    data: InvoiceBalanceOut
    message: str


class PaymentHistoryEntry(CamelModel):
    date: datetime
    type: str
    amount: Money
    balance: Money
    description: str


class PaymentInvoiceInfo(CamelModel):
    invoice_id: int
    invoice_number: str
    invoice_date: datetime
    customer_id: int
    customer_name: str | None = None
    total_amount: Money
    is_opening_outstanding: bool
    is_archived: bool


class PaymentSummary(CamelModel):
    total_amount: Money
    paid_amount: Money
    pending_amount: Money
    payment_status: PaymentStatus
    payment_percentage: Money


class InvoicePaymentsData(CamelModel):
    invoice: PaymentInvoiceInfo
    payment_summary: PaymentSummary
    payment_history: list[PaymentHistoryEntry]


class InvoicePaymentsResponse(CamelModel):
    success: bool = True
    data: InvoicePaymentsData
    message: str
