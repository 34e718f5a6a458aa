from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from tradedesk.api.deps import get_db
from tradedesk.schemas.payments import (
    AllocationRequest,
    InvoiceBalanceOut,
    InvoiceBalanceResponse,
    InvoicePaymentsResponse,
    OpeningInvoiceCreateRequest,
)
from tradedesk.services.outstanding import invoice_payment_history
from tradedesk.services.payments import (
    apply_payment,
    create_opening_invoice,
    reverse_payment,
    validate_invoice_for_customer,
)
from tradedesk.utils.lenient import lenient_bool


router = APIRouter(prefix="/invoices", tags=["payments"])


@router.get("/{invoice_id}/payments", response_model=InvoicePaymentsResponse)
def get_invoice_payments(
    invoice_id: int,
    include_opening: str | None = Query(default=None, alias="includeOpeningOutstanding"),
    db: Session = Depends(get_db),
):
    history = invoice_payment_history(db, invoice_id, include_opening=lenient_bool(include_opening, default=True))
    return {
        "success": True,
        "data": history,
        "message": "Invoice payment details retrieved successfully",
    }


@router.post("/{invoice_number}/allocations", response_model=InvoiceBalanceResponse)
def allocate_payment(invoice_number: str, payload: AllocationRequest, db: Session = Depends(get_db)):
    if payload.customer_id is not None:
        validate_invoice_for_customer(db, invoice_number, payload.customer_id)
    invoice = apply_payment(db, invoice_number, payload.amount)
    db.commit()
    db.refresh(invoice)
    return InvoiceBalanceResponse(
        data=InvoiceBalanceOut.model_validate(invoice),
        message=f"Allocated {payload.amount} to invoice {invoice_number}",
    )


@router.post("/{invoice_number}/allocations/reverse", response_model=InvoiceBalanceResponse)
def reverse_allocation(invoice_number: str, payload: AllocationRequest, db: Session = Depends(get_db)):
    invoice = reverse_payment(db, invoice_number, payload.amount)
    db.commit()
    db.refresh(invoice)
    return InvoiceBalanceResponse(
        data=InvoiceBalanceOut.model_validate(invoice),
        message=f"Reversed {payload.amount} on invoice {invoice_number}",
    )


@router.post("/opening", response_model=InvoiceBalanceResponse, status_code=status.HTTP_201_CREATED)
def create_opening_balance_invoice(payload: OpeningInvoiceCreateRequest, db: Session = Depends(get_db)):
    invoice = create_opening_invoice(
        db,
        customer_id=payload.customer_id,
        invoice_number=payload.invoice_number,
        total_amount=payload.total_amount,
        paid_amount=payload.paid_amount,
        invoice_date=payload.invoice_date,
        description=payload.description,
    )
    db.commit()
    db.refresh(invoice)
    return InvoiceBalanceResponse(
        data=InvoiceBalanceOut.model_validate(invoice),
        message=f"Opening invoice {invoice.invoice_number} created",
    )
