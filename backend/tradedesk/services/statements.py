from __future__ import annotations

from datetime import datetime
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlalchemy.orm import Session

from tradedesk.services.options import PendingInvoiceOptions
from tradedesk.services.outstanding import customer_pending_invoices
from tradedesk.utils.decimal_math import money


def _draw_header(pdf: canvas.Canvas, title: str, subtitle: str) -> None:
    pdf.setFont("Helvetica-Bold", 14)
    pdf.drawString(50, 800, title)
    pdf.setFont("Helvetica", 10)
    pdf.drawString(50, 785, subtitle)
    pdf.line(50, 780, 550, 780)


def _draw_columns(pdf: canvas.Canvas, y: float) -> None:
    pdf.setFont("Helvetica-Bold", 10)
    pdf.drawString(50, y, "Invoice")
    pdf.drawString(160, y, "Date")
    pdf.drawString(240, y, "Type")
    pdf.drawRightString(390, y, "Amount")
    pdf.drawRightString(470, y, "Paid")
    pdf.drawRightString(550, y, "Pending")
    pdf.setFont("Helvetica", 9)


def render_outstanding_statement(
    db: Session,
    customer_id: int,
    options: PendingInvoiceOptions,
    *,
    generated_at: datetime | None = None,
) -> bytes:
    """Customer outstanding statement as PDF bytes, built in memory."""
    generated_at = generated_at or datetime.now()
    statement = customer_pending_invoices(db, customer_id, options)
    customer = statement["customer"]
    summary = statement["summary"]

    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    _draw_header(
        pdf,
        f"Outstanding Statement - {customer.name}",
        f"GSTIN {customer.gstin} | Generated {generated_at:%d %b %Y %H:%M}",
    )

    y = 750
    for label, value in (
        ("Current invoices pending", summary["total_current_pending"]),
        ("Opening outstanding", summary["total_opening_outstanding"]),
        ("Total pending", summary["total_pending"]),
    ):
        pdf.setFont("Helvetica-Bold", 10)
        pdf.drawString(50, y, label)
        pdf.setFont("Helvetica", 10)
        pdf.drawString(250, y, f"INR {money(value):,.2f}")
        y -= 18

    y -= 8
    _draw_columns(pdf, y)
    y -= 14
    for row in statement["pending_invoices"]:
        if y < 80:
            pdf.showPage()
            y = 800
            _draw_columns(pdf, y)
            y -= 14
        pdf.drawString(50, y, row["invoice_number"])
        pdf.drawString(160, y, f"{row['invoice_date']:%d-%m-%Y}")
        pdf.drawString(240, y, row["type"].value)
        pdf.drawRightString(390, y, f"{row['total_amount']:,.2f}")
        pdf.drawRightString(470, y, f"{row['paid_amount']:,.2f}")
        pdf.drawRightString(550, y, f"{row['pending_amount']:,.2f}")
        y -= 14

    pdf.save()
    return buffer.getvalue()
