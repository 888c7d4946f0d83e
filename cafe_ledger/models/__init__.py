from cafe_ledger.models.inventory import (
    AppSettings,
    MovementType,
    OperatingExpense,
    OtherIncome,
    PaymentMethod,
    Product,
    Purchase,
    PurchaseStatus,
    Sale,
    StockMovement,
)
from cafe_ledger.models.security import AuditLog
from cafe_ledger.models.user import User, UserRole

__all__ = [
    "AppSettings",
    "AuditLog",
    "MovementType",
    "OperatingExpense",
    "OtherIncome",
    "PaymentMethod",
    "Product",
    "Purchase",
    "PurchaseStatus",
    "Sale",
    "StockMovement",
    "User",
    "UserRole",
]
