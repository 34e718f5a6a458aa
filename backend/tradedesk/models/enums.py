import enum


class PaymentStatus(str, enum.Enum):
    unpaid = "UNPAID"
    partial = "PARTIAL"
    paid = "PAID"
    overpaid = "OVERPAID"


class DeliveryStatus(str, enum.Enum):
    pending = "pending"
    dispatched = "dispatched"
    delivered = "delivered"


class PendingSource(str, enum.Enum):
    current = "current"
    opening = "opening"
