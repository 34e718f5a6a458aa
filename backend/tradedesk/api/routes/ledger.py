from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from tradedesk.api.deps import get_db
from tradedesk.schemas.ledger import CustomerLedgerResponse
from tradedesk.services.ledger import customer_invoices_by_financial_year
from tradedesk.utils.lenient import lenient_bool, lenient_choice, lenient_int


router = APIRouter(prefix="/customers/{customer_id}/invoices", tags=["ledger"])

LEDGER_SORTS = frozenset({"invoice_date", "invoice_number", "total_amount", "grand_total", "pending_amount"})


@router.get("", response_model=CustomerLedgerResponse)
def list_customer_invoices(
    customer_id: int,
    financial_year: str | None = Query(default=None, alias="financialYear"),
    page: str | None = None,
    items_per_page: str | None = Query(default=None, alias="itemsPerPage"),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_desc: str | None = Query(default=None, alias="sortDesc"),
    search: str | None = None,
    db: Session = Depends(get_db),
):
    # createdAt is the historical name for the invoice date
    sort_column = "invoice_date" if sort_by in {None, "createdAt"} else sort_by
    return customer_invoices_by_financial_year(
        db,
        customer_id,
        financial_year=financial_year,
        page=lenient_int(page, 1) or 1,
        items_per_page=lenient_int(items_per_page, 10) or 10,
        sort_by=lenient_choice(sort_column, LEDGER_SORTS, "invoice_date"),
        sort_desc=lenient_bool(sort_desc, default=True),
        search=search,
    )
