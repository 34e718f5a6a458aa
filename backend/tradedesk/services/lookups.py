from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from tradedesk.models.customer import Customer


def get_customer_or_404(db: Session, customer_id: int) -> Customer:
    customer = db.get(Customer, customer_id)
    if customer is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Customer with ID {customer_id} not found",
        )
    return customer
