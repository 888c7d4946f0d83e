from fastapi import status


class LedgerError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class AuthorizationError(LedgerError):
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(LedgerError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(LedgerError):
    status_code = status.HTTP_409_CONFLICT


class InvariantViolation(LedgerError):
    status_code = status.HTTP_400_BAD_REQUEST


class DuplicateSkuError(ConflictError):
    def __init__(self, sku: str) -> None:
        super().__init__(f'SKU "{sku}" is already in use')
        self.sku = sku


class AlreadyCancelledError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Purchase is already cancelled")


class AlreadyVoidedError(ConflictError):
    def __init__(self) -> None:
        super().__init__("Sale is already voided")


class OwnRoleChangeError(ConflictError):
    def __init__(self) -> None:
        super().__init__("You can't change your own role")


class AdminExistsError(ConflictError):
    def __init__(self) -> None:
        super().__init__("An admin already exists")


class NegativeQuantityError(InvariantViolation):
    def __init__(self) -> None:
        super().__init__("Quantity cannot be negative")


class InsufficientStockError(InvariantViolation):
    def __init__(self, available: int, unit: str) -> None:
        super().__init__(f"Insufficient stock. Available: {available} {unit}")
        self.available = available
        self.unit = unit
