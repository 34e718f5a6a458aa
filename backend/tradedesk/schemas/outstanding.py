from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from pydantic import AliasChoices, Field

from tradedesk.models.enums import PaymentStatus, PendingSource
from tradedesk.schemas.common import CamelModel, Money, Pagination


class OpeningOutstandingCreateRequest(CamelModel):
    # presence is checked by the service so missing fields answer 400
    customer_id: int | None = Field(
        default=None, validation_alias=AliasChoices("customerId", "customer", "customer_id")
    )
    invoice_id: int | None = None
    invoice_number: str | None = Field(default=None, max_length=50)
    invoice_date: datetime | None = None
    opening_pending_amount: Decimal | None = None
    adjusted_amount: Decimal | None = None
    as_of_date: date | None = None


class OpeningOutstandingUpdateRequest(CamelModel):
    adjusted_amount: Decimal | None = None


class OpeningOutstandingOut(CamelModel):
    id: int
    customer_id: int
    invoice_id: int
    invoice_number: str
    invoice_date: datetime
    opening_pending_amount: Money
    adjusted_amount: Money
    balance_pending: Money
    as_of_date: date
    created_at: datetime | None = None
    updated_at: datetime | None = None


class OpeningOutstandingResponse(CamelModel):
    success: bool = True
    data: OpeningOutstandingOut
    message: str


class OpeningOutstandingListResponse(CamelModel):
    success: bool = True
    data: list[OpeningOutstandingOut]
    pagination: Pagination


class CustomerBrief(CamelModel):
    id: int
    name: str
    gstin: str
    email_id: str | None = None
    phone_no: str | None = None


class PendingInvoiceRow(CamelModel):
    invoice_id: int
    invoice_number: str
    invoice_date: datetime
    total_amount: Money
    paid_amount: Money
    pending_amount: Money
    payment_status: PaymentStatus
    type: PendingSource
    as_of_date: date | None = None


class PendingSummary(CamelModel):
    total_invoices: int
    current_invoices_count: int
    opening_outstanding_count: int
    total_current_pending: Money
    total_opening_outstanding: Money
    total_pending: Money


class PendingInvoicesData(CamelModel):
    customer: CustomerBrief
    pending_invoices: list[PendingInvoiceRow]
    summary: PendingSummary


class PendingInvoicesResponse(CamelModel):
    success: bool = True
    data: PendingInvoicesData
    filters: dict
    message: str
