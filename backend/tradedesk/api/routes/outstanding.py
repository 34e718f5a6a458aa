from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from tradedesk.api.deps import get_db
from tradedesk.schemas.outstanding import (
    OpeningOutstandingCreateRequest,
    OpeningOutstandingListResponse,
    OpeningOutstandingOut,
    OpeningOutstandingResponse,
    OpeningOutstandingUpdateRequest,
    PendingInvoicesResponse,
)
from tradedesk.services.options import PendingInvoiceOptions
from tradedesk.services.outstanding import (
    OPENING_SORT_COLUMNS,
    create_opening_outstanding,
    customer_pending_invoices,
    delete_opening_outstanding,
    list_opening_outstanding,
    update_opening_outstanding,
)
from tradedesk.services.statements import render_outstanding_statement
from tradedesk.utils.lenient import lenient_bool, lenient_choice, lenient_int


router = APIRouter(tags=["outstanding"])


def pending_invoice_options(
    include_opening: str | None = Query(default=None, alias="includeOpeningOutstanding"),
    min_amount: str | None = Query(default=None, alias="minAmount"),
    max_amount: str | None = Query(default=None, alias="maxAmount"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: str | None = Query(default=None, alias="sortOrder"),
) -> PendingInvoiceOptions:
    return PendingInvoiceOptions.parse(
        include_opening=include_opening,
        min_amount=min_amount,
        max_amount=max_amount,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.post(
    "/opening-outstanding",
    response_model=OpeningOutstandingResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_opening_outstanding_record(
    payload: OpeningOutstandingCreateRequest,
    db: Session = Depends(get_db),
):
    record = create_opening_outstanding(
        db,
        customer_id=payload.customer_id,
        invoice_id=payload.invoice_id,
        invoice_number=payload.invoice_number,
        invoice_date=payload.invoice_date,
        opening_pending_amount=payload.opening_pending_amount,
        adjusted_amount=payload.adjusted_amount,
        as_of_date=payload.as_of_date,
    )
    db.commit()
    db.refresh(record)
    return OpeningOutstandingResponse(
        data=OpeningOutstandingOut.model_validate(record),
        message="Opening outstanding created successfully",
    )


@router.get("/opening-outstanding", response_model=OpeningOutstandingListResponse)
def list_opening_outstanding_records(
    page: str | None = None,
    items_per_page: str | None = Query(default=None, alias="itemsPerPage"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_desc: str | None = Query(default=None, alias="sortDesc"),
    customer_id: int | None = Query(default=None, alias="customerId"),
    db: Session = Depends(get_db),
):
    records, pagination = list_opening_outstanding(
        db,
        page=lenient_int(page, 1) or 1,
        items_per_page=lenient_int(items_per_page, 10) or 10,
        customer_id=customer_id,
        sort_by=lenient_choice(sort_by, frozenset(OPENING_SORT_COLUMNS), "invoice_date"),
        sort_desc=lenient_bool(sort_desc),
    )
    return OpeningOutstandingListResponse(
        data=[OpeningOutstandingOut.model_validate(record) for record in records],
        pagination=pagination,
    )


@router.patch("/opening-outstanding/{record_id}", response_model=OpeningOutstandingResponse)
def update_opening_outstanding_record(
    record_id: int,
    payload: OpeningOutstandingUpdateRequest,
    db: Session = Depends(get_db),
):
    record = update_opening_outstanding(db, record_id, adjusted_amount=payload.adjusted_amount)
    db.commit()
    db.refresh(record)
    return OpeningOutstandingResponse(
        data=OpeningOutstandingOut.model_validate(record),
        message="Opening outstanding updated successfully",
    )


@router.delete("/opening-outstanding/{record_id}", response_model=OpeningOutstandingResponse)
def delete_opening_outstanding_record(record_id: int, db: Session = Depends(get_db)):
    record = delete_opening_outstanding(db, record_id)
    data = OpeningOutstandingOut.model_validate(record)
    db.commit()
    return OpeningOutstandingResponse(data=data, message="Opening outstanding deleted successfully")


@router.get("/customers/{customer_id}/pending-invoices", response_model=PendingInvoicesResponse)
def get_customer_pending_invoices(
    customer_id: int,
    options: PendingInvoiceOptions = Depends(pending_invoice_options),
    db: Session = Depends(get_db),
):
    result = customer_pending_invoices(db, customer_id, options)
    return {
        "success": True,
        "data": result,
        "filters": {
            "includeOpeningOutstanding": options.include_opening,
            "minAmount": float(options.min_amount) if options.min_amount is not None else None,
            "maxAmount": float(options.max_amount) if options.max_amount is not None else None,
            "sortBy": options.sort_by,
            "sortOrder": "desc" if options.descending else "asc",
        },
        "message": f"Retrieved {len(result['pending_invoices'])} pending invoices for customer",
    }


@router.get("/customers/{customer_id}/outstanding-statement.pdf")
def download_outstanding_statement(
    customer_id: int,
    options: PendingInvoiceOptions = Depends(pending_invoice_options),
    db: Session = Depends(get_db),
):
    content = render_outstanding_statement(db, customer_id, options)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="outstanding-{customer_id}.pdf"'},
    )
