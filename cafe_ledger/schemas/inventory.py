from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from cafe_ledger.models.inventory import MovementType, PaymentMethod, PurchaseStatus

UNCATEGORIZED = "Uncategorized"


def _strip_required(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


class ProductCreate(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=160)
    category: str = Field(default=UNCATEGORIZED, max_length=120)
    unit: str = Field(default="pcs", min_length=1, max_length=24)
    unit_cost: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    selling_price: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    qty: int = Field(default=0, ge=0)
    reorder_level: int = Field(default=0, ge=0)

    _clean_required = field_validator("sku", "name", "unit")(_strip_required)


class ProductUpdate(ProductCreate):
    pass


class ProductOut(BaseModel):
    id: int
    sku: str
    name: str
    category: str
    unit: str
    unit_cost: Decimal
    selling_price: Decimal | None
    qty: int
    opening_qty: int
    reorder_level: int
    updated_at: datetime

    model_config = {"from_attributes": True}


class StockAdjustRequest(BaseModel):
    qty: int = Field(description="New absolute quantity on hand")
    reason: str = Field(default="", max_length=255)
    type: MovementType = MovementType.ADJUSTMENT
    date: datetime | None = None


class BulkProductRow(BaseModel):
    sku: str = Field(min_length=1, max_length=64)
    name: str = Field(min_length=1, max_length=160)
    unit: str = Field(min_length=1, max_length=24)
    qty: int = Field(ge=0)
    category: str | None = Field(default=None, max_length=120)
    reorder_level: int | None = Field(default=None, ge=0)

    _clean_required = field_validator("sku", "name", "unit")(_strip_required)


class BulkUpsertRequest(BaseModel):
    products: list[BulkProductRow]


class BulkUpsertResult(BaseModel):
    created: int
    updated: int


class PurchaseCreate(BaseModel):
    product_id: int
    qty: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0, decimal_places=2)
    total_cost: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    supplier: str = Field(min_length=1, max_length=160)
    invoice_no: str | None = Field(default=None, max_length=64)
    payment_method: PaymentMethod | None = None
    date: datetime

    @model_validator(mode="after")
    def _check_total_cost(self) -> "PurchaseCreate":
        expected = self.unit_cost * self.qty
        if self.total_cost is None:
            self.total_cost = expected
        elif self.total_cost != expected:
            raise ValueError(f"total_cost must equal qty x unit_cost ({expected})")
        return self


class PurchaseOut(BaseModel):
    id: int
    product_id: int
    product_name: str = ""
    product_sku: str = ""
    qty: int
    unit_cost: Decimal
    total_cost: Decimal
    supplier: str
    invoice_no: str | None
    payment_method: PaymentMethod | None
    date: datetime
    status: PurchaseStatus
    cancelled_at: datetime | None
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SaleCreate(BaseModel):
    product_id: int
    qty: int = Field(gt=0)
    selling_price: Decimal = Field(ge=0, decimal_places=2)
    discount: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=2)
    date: datetime


class SaleOut(BaseModel):
    id: int
    product_id: int
    product_name: str = ""
    product_sku: str = ""
    qty: int
    selling_price: Decimal
    discount: Decimal
    cogs: Decimal
    revenue: Decimal
    date: datetime
    voided: bool
    voided_at: datetime | None
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class StockMovementCreate(BaseModel):
    product_id: int
    type: MovementType
    qty: int = Field(description="Signed delta: positive is stock in, negative is stock out")
    reason: str | None = Field(default=None, max_length=255)
    date: datetime

    @field_validator("qty")
    @classmethod
    def _non_zero(cls, value: int) -> int:
        if value == 0:
            raise ValueError("movement quantity must not be zero")
        return value


class StockMovementOut(BaseModel):
    id: int
    product_id: int
    type: MovementType
    qty: int
    reason: str | None
    date: datetime
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ExpenseCreate(BaseModel):
    category: str = Field(min_length=1, max_length=120)
    amount: Decimal = Field(gt=0, decimal_places=2)
    description: str = Field(default="", max_length=2000)
    supplier: str | None = Field(default=None, max_length=160)
    payment_method: PaymentMethod | None = None
    date: datetime


class ExpenseUpdate(ExpenseCreate):
    pass


class ExpenseOut(BaseModel):
    id: int
    category: str
    amount: Decimal
    description: str
    supplier: str | None
    payment_method: PaymentMethod | None
    date: datetime
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class OtherIncomeCreate(BaseModel):
    source: str = Field(min_length=1, max_length=160)
    amount: Decimal = Field(gt=0, decimal_places=2)
    notes: str | None = Field(default=None, max_length=2000)
    date: datetime


class OtherIncomeUpdate(OtherIncomeCreate):
    pass


class OtherIncomeOut(BaseModel):
    id: int
    source: str
    amount: Decimal
    notes: str | None
    date: datetime
    created_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class SettingsUpdate(BaseModel):
    tax_rate: Decimal | None = Field(default=None, ge=0, le=100, decimal_places=2)
    expense_categories: list[str] | None = None

    @field_validator("expense_categories")
    @classmethod
    def _clean_categories(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [item.strip() for item in value if item.strip()]


class SettingsOut(BaseModel):
    tax_rate: Decimal
    expense_categories: list[str]
    persisted: bool
