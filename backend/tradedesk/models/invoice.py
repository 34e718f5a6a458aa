from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from tradedesk.db.base import Base
from tradedesk.models.enums import DeliveryStatus, PaymentStatus


class InvoiceColumns:
    """Columns shared by the live and the archived invoice tables.

    Archived rows keep the id they had while live, so both tables share one
    id space.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    invoice_number: Mapped[str] = mapped_column(String(50), unique=True, nullable=False, index=True)
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    invoice_date: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, index=True, server_default=func.now()
    )

    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    cgst: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    sgst: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    igst: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    other_charges: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    grand_total: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)

    paid_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    pending_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status"),
        default=PaymentStatus.unpaid,
        nullable=False,
        index=True,
    )

    delivery_status: Mapped[DeliveryStatus] = mapped_column(
        Enum(DeliveryStatus, name="delivery_status"),
        default=DeliveryStatus.pending,
        nullable=False,
    )
    delivery_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    @declared_attr
    def customer(cls) -> Mapped["Customer"]:
        return relationship("Customer")


class LineItemColumns:
    """One roll sold within an invoice.

    ``total_price`` is stored as entered and is not checked against
    ``quantity * unit_price``.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    product_id: Mapped[int | None] = mapped_column(
        ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    roll_id: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    width: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    net_weight: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    gross_weight: Mapped[Decimal | None] = mapped_column(Numeric(12, 3), nullable=True)
    micron: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    mtr: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(18, 3), nullable=True)
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    total_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)

    @declared_attr
    def product(cls) -> Mapped["Product | None"]:
        return relationship("Product")


class Invoice(InvoiceColumns, Base):
    __tablename__ = "invoices"

    line_items: Mapped[list["InvoiceLineItem"]] = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.position",
    )


class InvoiceLineItem(LineItemColumns, Base):
    __tablename__ = "invoice_line_items"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="line_items")


class ArchivedInvoice(InvoiceColumns, Base):
    __tablename__ = "archived_invoices"

    line_items: Mapped[list["ArchivedInvoiceLineItem"]] = relationship(
        "ArchivedInvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="ArchivedInvoiceLineItem.position",
    )


class ArchivedInvoiceLineItem(LineItemColumns, Base):
    __tablename__ = "archived_invoice_line_items"

    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("archived_invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    invoice: Mapped["ArchivedInvoice"] = relationship("ArchivedInvoice", back_populates="line_items")


def compute_grand_total(
    total_amount: Decimal,
    cgst: Decimal = Decimal("0"),
    sgst: Decimal = Decimal("0"),
    igst: Decimal = Decimal("0"),
    other_charges: Decimal = Decimal("0"),
) -> Decimal:
    return total_amount + cgst + sgst + igst + other_charges
