"""Single lookup point over the live and archived invoice tables.

Reads resolve against the live table first and fall back to the archive.
Writes only ever target live rows; archived invoices are read-only.
"""
from __future__ import annotations

from fastapi import HTTPException, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from tradedesk.models.invoice import ArchivedInvoice, Invoice


AnyInvoice = Invoice | ArchivedInvoice


class InvoiceStore:
    def __init__(self, db: Session) -> None:
        self.db = db

    def get(self, invoice_id: int) -> AnyInvoice | None:
        return self.db.get(Invoice, invoice_id) or self.db.get(ArchivedInvoice, invoice_id)

    def get_by_number(self, invoice_number: str) -> AnyInvoice | None:
        live = self.live_by_number(invoice_number)
        if live is not None:
            return live
        return self.db.scalar(select(ArchivedInvoice).where(ArchivedInvoice.invoice_number == invoice_number))

    def live_by_number(self, invoice_number: str) -> Invoice | None:
        return self.db.scalar(select(Invoice).where(Invoice.invoice_number == invoice_number))

    def exists(self, invoice_id: int) -> bool:
        return self.get(invoice_id) is not None

    @staticmethod
    def is_archived(invoice: AnyInvoice) -> bool:
        return isinstance(invoice, ArchivedInvoice)

    def require_by_number(self, invoice_number: str) -> AnyInvoice:
        invoice = self.get_by_number(invoice_number)
        if invoice is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Invoice {invoice_number} not found",
            )
        return invoice

    def live_for_update(self, invoice_number: str) -> Invoice:
        """Live row for ``invoice_number``; 409 when only an archived copy exists."""
        invoice = self.require_by_number(invoice_number)
        if self.is_archived(invoice):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Invoice {invoice_number} is archived and read-only",
            )
        return invoice
