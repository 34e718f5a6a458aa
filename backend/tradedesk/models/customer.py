from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tradedesk.db.base import Base


class Customer(Base):
    __tablename__ = "customers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    gstin: Mapped[str] = mapped_column(String(16), unique=True, nullable=False)
    address_line1: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    address_line2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    pincode: Mapped[str | None] = mapped_column(String(6), nullable=True)
    email_id: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    phone_no: Mapped[str] = mapped_column(String(10), nullable=False, default="")

    opening_outstandings: Mapped[list["OpeningOutstanding"]] = relationship(
        "OpeningOutstanding", back_populates="customer"
    )
