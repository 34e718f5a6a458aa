from tradedesk.models.customer import Customer
from tradedesk.models.enums import DeliveryStatus, PaymentStatus, PendingSource
from tradedesk.models.invoice import ArchivedInvoice, ArchivedInvoiceLineItem, Invoice, InvoiceLineItem
from tradedesk.models.opening_outstanding import OpeningOutstanding
from tradedesk.models.product import Product

__all__ = [
    "Customer",
    "DeliveryStatus",
    "PaymentStatus",
    "PendingSource",
    "Invoice",
    "InvoiceLineItem",
    "ArchivedInvoice",
    "ArchivedInvoiceLineItem",
    "OpeningOutstanding",
    "Product",
]
