from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradedesk.db.base import Base


class OpeningOutstanding(Base):
    """Debt carried over from before the system cutover, one row per invoice.

    ``invoice_id`` may point at a live or an archived invoice.
    """

    __tablename__ = "invoice_opening_outstandings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    customer_id: Mapped[int] = mapped_column(
        ForeignKey("customers.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    invoice_id: Mapped[int] = mapped_column(Integer, unique=True, nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False)
    invoice_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    opening_pending_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    adjusted_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), default=0, nullable=False)
    balance_pending: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    as_of_date: Mapped[date] = mapped_column(Date, nullable=False, default=date(2024, 4, 1))

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.now(), onupdate=func.now(), nullable=False
    )

    customer: Mapped["Customer"] = relationship("Customer", back_populates="opening_outstandings")

    def apply_adjustment(self, adjusted_amount: Decimal) -> None:
        self.adjusted_amount = adjusted_amount
        self.balance_pending = self.opening_pending_amount - adjusted_amount
