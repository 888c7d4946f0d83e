from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel

from cafe_ledger.schemas.inventory import ExpenseOut, OtherIncomeOut, ProductOut, SaleOut

ReportPeriod = Literal["today", "month", "year", "custom"]


class StockSummaryItemOut(BaseModel):
    id: int
    sku: str
    name: str
    category: str
    unit: str
    unit_cost: Decimal
    selling_price: Decimal | None
    reorder_level: int
    total_purchased: int
    total_sold: int
    total_adjustment: int
    total_transfer: int
    total_production: int
    total_waste: int
    current_qty: int


class PLDataOut(BaseModel):
    period_from: datetime
    period_to: datetime
    sales: list[SaleOut]
    expenses: list[ExpenseOut]
    other_income: list[OtherIncomeOut]


class TopProductOut(BaseModel):
    product_id: int
    name: str
    sku: str
    qty: int
    revenue: Decimal


class ExpenseCategoryOut(BaseModel):
    category: str
    amount: Decimal


class MonthlyTrendPointOut(BaseModel):
    month: str
    label: str
    revenue: Decimal
    cogs: Decimal
    expenses: Decimal


class PLMetricsOut(BaseModel):
    revenue: Decimal
    cogs: Decimal
    gross_profit: Decimal
    op_ex_total: Decimal
    operating_income: Decimal
    other_income_total: Decimal
    profit_before_tax: Decimal
    tax_rate: Decimal
    tax: Decimal
    net_profit: Decimal
    total_income: Decimal
    gross_margin_pct: Decimal
    cost_ratio_pct: Decimal
    top_products: list[TopProductOut]
    expense_by_category: list[ExpenseCategoryOut]
    monthly_trend: list[MonthlyTrendPointOut]


class PLReportOut(BaseModel):
    period_from: datetime
    period_to: datetime
    metrics: PLMetricsOut


class KpiOut(BaseModel):
    revenue: Decimal
    gross_profit: Decimal
    transactions: int


class RecentSaleOut(BaseModel):
    id: int
    date: datetime
    product_name: str
    qty: int
    revenue: Decimal
    created_by: str


class RecentPurchaseOut(BaseModel):
    id: int
    date: datetime
    product_name: str
    qty: int
    total_cost: Decimal
    supplier: str
    status: str


class DashboardOut(BaseModel):
    today: KpiOut
    month: KpiOut
    recent_sales: list[RecentSaleOut]
    recent_purchases: list[RecentPurchaseOut]
    low_stock: list[ProductOut]
    low_stock_count: int
    total_products: int


class ReconciliationOut(BaseModel):
    product_id: int
    sku: str
    opening_qty: int
    purchased_qty: int
    sold_qty: int
    movement_qty: int
    ledger_qty: int
    cached_qty: int
    drift: int
    consistent: bool
