"""Read-side aggregation: stock summary, P&L data and the metrics derived from it."""

import calendar
import csv
import io
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cafe_ledger.core.config import settings
from cafe_ledger.models.inventory import (
    MovementType,
    OperatingExpense,
    OtherIncome,
    Product,
    Purchase,
    PurchaseStatus,
    Sale,
    StockMovement,
)
from cafe_ledger.schemas.inventory import ExpenseOut, OtherIncomeOut, ProductOut, SaleOut
from cafe_ledger.schemas.reports import (
    DashboardOut,
    ExpenseCategoryOut,
    KpiOut,
    MonthlyTrendPointOut,
    PLDataOut,
    PLMetricsOut,
    PLReportOut,
    ReconciliationOut,
    RecentPurchaseOut,
    RecentSaleOut,
    ReportPeriod,
    StockSummaryItemOut,
    TopProductOut,
)
from cafe_ledger.services.access import Principal, ensure_permission
from cafe_ledger.services.errors import NotFoundError
from cafe_ledger.services.ledger import product_ref, resolve_product_refs
from cafe_ledger.services.sales import to_sale_out
from cafe_ledger.services.settings_store import get_tax_rate

ZERO = Decimal("0")
HUNDRED = Decimal("100")


def _start_of_day(value: datetime) -> datetime:
    return datetime(value.year, value.month, value.day)


def _end_of_day(value: datetime) -> datetime:
    return _start_of_day(value) + timedelta(days=1) - timedelta(microseconds=1)


def resolve_period(
    period: ReportPeriod,
    now: datetime,
    custom_from: datetime | None = None,
    custom_to: datetime | None = None,
) -> tuple[datetime, datetime]:
    """Inclusive ``(start, end)`` window for a named reporting period."""
    month_start = datetime(now.year, now.month, 1)
    month_end = _end_of_day(datetime(now.year, now.month, calendar.monthrange(now.year, now.month)[1]))
    if period == "today":
        return _start_of_day(now), _end_of_day(now)
    if period == "month":
        return month_start, month_end
    if period == "year":
        return datetime(now.year, 1, 1), _end_of_day(datetime(now.year, 12, 31))
    start = _start_of_day(custom_from) if custom_from else month_start
    end = _end_of_day(custom_to) if custom_to else month_end
    return start, end


def _in_window(column, date_from: datetime | None, date_to: datetime | None) -> list:
    clauses = []
    if date_from is not None:
        clauses.append(column >= date_from)
    if date_to is not None:
        clauses.append(column <= date_to)
    return clauses


def get_stock_summary(
    db: Session,
    principal: Principal,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[StockSummaryItemOut]:
    ensure_permission(principal, "inventory:view")

    purchased = dict(
        db.execute(
            select(Purchase.product_id, func.coalesce(func.sum(Purchase.qty), 0))
            .where(Purchase.status == PurchaseStatus.ACTIVE, *_in_window(Purchase.date, date_from, date_to))
            .group_by(Purchase.product_id)
        ).all()
    )
    sold = dict(
        db.execute(
            select(Sale.product_id, func.coalesce(func.sum(Sale.qty), 0))
            .where(Sale.voided.is_(False), *_in_window(Sale.date, date_from, date_to))
            .group_by(Sale.product_id)
        ).all()
    )
    movement_rows = db.execute(
        select(StockMovement.product_id, StockMovement.type, func.coalesce(func.sum(StockMovement.qty), 0))
        .where(*_in_window(StockMovement.date, date_from, date_to))
        .group_by(StockMovement.product_id, StockMovement.type)
    ).all()
    movements: dict[tuple[int, MovementType], int] = {
        (int(product_id), movement_type): int(total) for product_id, movement_type, total in movement_rows
    }

    products = db.scalars(select(Product).order_by(Product.name.asc(), Product.id.asc())).all()
    return [
        StockSummaryItemOut(
            id=product.id,
            sku=product.sku,
            name=product.name,
            category=product.category,
            unit=product.unit,
            unit_cost=product.unit_cost,
            selling_price=product.selling_price,
            reorder_level=product.reorder_level,
            total_purchased=int(purchased.get(product.id, 0)),
            total_sold=int(sold.get(product.id, 0)),
            total_adjustment=movements.get((product.id, MovementType.ADJUSTMENT), 0),
            total_transfer=movements.get((product.id, MovementType.TRANSFER), 0),
            total_production=movements.get((product.id, MovementType.PRODUCTION), 0),
            total_waste=movements.get((product.id, MovementType.WASTE), 0),
            current_qty=product.qty,
        )
        for product in products
    ]


def get_pl_data(db: Session, principal: Principal, date_from: datetime, date_to: datetime) -> PLDataOut:
    """Raw rows for a P&L window: non-voided sales, expenses and other income."""
    ensure_permission(principal, "inventory:view")
    sales = db.scalars(
        select(Sale)
        .where(Sale.voided.is_(False), Sale.date >= date_from, Sale.date <= date_to)
        .order_by(Sale.date.asc(), Sale.id.asc())
    ).all()
    expenses = db.scalars(
        select(OperatingExpense)
        .where(OperatingExpense.date >= date_from, OperatingExpense.date <= date_to)
        .order_by(OperatingExpense.date.asc(), OperatingExpense.id.asc())
    ).all()
    income = db.scalars(
        select(OtherIncome)
        .where(OtherIncome.date >= date_from, OtherIncome.date <= date_to)
        .order_by(OtherIncome.date.asc(), OtherIncome.id.asc())
    ).all()

    refs = resolve_product_refs(db, (s.product_id for s in sales))
    return PLDataOut(
        period_from=date_from,
        period_to=date_to,
        sales=[to_sale_out(s, refs) for s in sales],
        expenses=[ExpenseOut.model_validate(e) for e in expenses],
        other_income=[OtherIncomeOut.model_validate(i) for i in income],
    )


def _total(values: Iterable[Decimal]) -> Decimal:
    return sum((Decimal(v) for v in values), ZERO)


def compute_pl_metrics(
    sales: list[SaleOut],
    expenses: list[ExpenseOut],
    other_income: list[OtherIncomeOut],
    tax_rate: Decimal,
    *,
    top_n: int = 5,
) -> PLMetricsOut:
    """Derive the P&L statement. Pure: callers pass non-voided sales only."""
    tax_rate = Decimal(tax_rate)
    revenue = _total(s.revenue for s in sales)
    cogs = _total(s.cogs for s in sales)
    gross_profit = revenue - cogs
    op_ex_total = _total(e.amount for e in expenses)
    operating_income = gross_profit - op_ex_total
    other_income_total = _total(i.amount for i in other_income)
    profit_before_tax = operating_income + other_income_total
    # Losses carry no tax benefit.
    tax = profit_before_tax * tax_rate / HUNDRED if profit_before_tax > 0 else ZERO
    net_profit = profit_before_tax - tax

    by_product: dict[int, TopProductOut] = {}
    for sale in sales:
        entry = by_product.get(sale.product_id)
        if entry is None:
            entry = TopProductOut(
                product_id=sale.product_id,
                name=sale.product_name,
                sku=sale.product_sku,
                qty=0,
                revenue=ZERO,
            )
            by_product[sale.product_id] = entry
        entry.qty += sale.qty
        entry.revenue += Decimal(sale.revenue)
    # sorted() is stable, so equal revenue keeps first-seen order.
    top_products = sorted(by_product.values(), key=lambda item: item.revenue, reverse=True)[:top_n]

    by_category: dict[str, Decimal] = {}
    for expense in expenses:
        by_category[expense.category] = by_category.get(expense.category, ZERO) + Decimal(expense.amount)
    expense_by_category = [
        ExpenseCategoryOut(category=category, amount=amount)
        for category, amount in sorted(by_category.items(), key=lambda item: item[1], reverse=True)
    ]

    months: dict[str, MonthlyTrendPointOut] = {}

    def _bucket(value: datetime) -> MonthlyTrendPointOut:
        key = value.strftime("%Y-%m")
        point = months.get(key)
        if point is None:
            point = MonthlyTrendPointOut(
                month=key,
                label=value.strftime("%b %y"),
                revenue=ZERO,
                cogs=ZERO,
                expenses=ZERO,
            )
            months[key] = point
        return point

    for sale in sales:
        point = _bucket(sale.date)
        point.revenue += Decimal(sale.revenue)
        point.cogs += Decimal(sale.cogs)
    for expense in expenses:
        _bucket(expense.date).expenses += Decimal(expense.amount)
    monthly_trend = [months[key] for key in sorted(months)]

    return PLMetricsOut(
        revenue=revenue,
        cogs=cogs,
        gross_profit=gross_profit,
        op_ex_total=op_ex_total,
        operating_income=operating_income,
        other_income_total=other_income_total,
        profit_before_tax=profit_before_tax,
        tax_rate=tax_rate,
        tax=tax,
        net_profit=net_profit,
        total_income=revenue + other_income_total,
        gross_margin_pct=gross_profit / revenue * HUNDRED if revenue > 0 else ZERO,
        cost_ratio_pct=cogs / revenue * HUNDRED if revenue > 0 else ZERO,
        top_products=top_products,
        expense_by_category=expense_by_category,
        monthly_trend=monthly_trend,
    )


def get_pl_report(db: Session, principal: Principal, date_from: datetime, date_to: datetime) -> PLReportOut:
    data = get_pl_data(db, principal, date_from, date_to)
    metrics = compute_pl_metrics(
        data.sales,
        data.expenses,
        data.other_income,
        get_tax_rate(db),
        top_n=settings.report_top_products,
    )
    return PLReportOut(period_from=date_from, period_to=date_to, metrics=metrics)


def export_pl_csv(report: PLReportOut, *, generated_at: datetime) -> str:
    metrics = report.metrics
    sio = io.StringIO()
    writer = csv.writer(sio, lineterminator="\n")
    writer.writerow([f"{settings.app_name} - P&L Report"])
    writer.writerow([f"Period: {report.period_from:%d %b %Y} - {report.period_to:%d %b %Y}"])
    writer.writerow([f"Generated: {generated_at:%d %b %Y %H:%M}"])
    writer.writerow([])
    writer.writerow(["Item", "Amount"])
    writer.writerow(["Revenue", metrics.revenue])
    writer.writerow(["COGS", metrics.cogs])
    writer.writerow(["Gross Profit", metrics.gross_profit])
    writer.writerow(["Operating Expenses", metrics.op_ex_total])
    writer.writerow(["Operating Income", metrics.operating_income])
    writer.writerow(["Other Income", metrics.other_income_total])
    writer.writerow(["Profit Before Tax", metrics.profit_before_tax])
    if metrics.tax_rate > 0:
        writer.writerow([f"Tax ({metrics.tax_rate.normalize():f}%)", metrics.tax])
    writer.writerow(["Net Profit", metrics.net_profit])
    writer.writerow([])
    writer.writerow(["Top Products by Revenue"])
    writer.writerow(["Product", "Qty Sold", "Revenue"])
    for product in metrics.top_products:
        writer.writerow([product.name, product.qty, product.revenue])
    writer.writerow([])
    writer.writerow(["Expenses by Category"])
    writer.writerow(["Category", "Amount"])
    for item in metrics.expense_by_category:
        writer.writerow([item.category, item.amount])
    return sio.getvalue()


def _kpi(db: Session, date_from: datetime, date_to: datetime) -> KpiOut:
    revenue, cogs, count = db.execute(
        select(
            func.coalesce(func.sum(Sale.revenue), 0),
            func.coalesce(func.sum(Sale.cogs), 0),
            func.count(Sale.id),
        ).where(Sale.voided.is_(False), Sale.date >= date_from, Sale.date <= date_to)
    ).one()
    return KpiOut(
        revenue=Decimal(revenue),
        gross_profit=Decimal(revenue) - Decimal(cogs),
        transactions=int(count),
    )


def get_dashboard_data(db: Session, principal: Principal, now: datetime) -> DashboardOut:
    ensure_permission(principal, "inventory:view")
    limit = settings.dashboard_recent_limit

    recent_sales = db.scalars(
        select(Sale).where(Sale.voided.is_(False)).order_by(Sale.date.desc(), Sale.id.desc()).limit(limit)
    ).all()
    recent_purchases = db.scalars(select(Purchase).order_by(Purchase.date.desc(), Purchase.id.desc()).limit(limit)).all()
    refs = resolve_product_refs(
        db,
        [s.product_id for s in recent_sales] + [p.product_id for p in recent_purchases],
    )

    products = db.scalars(select(Product).order_by(Product.id.asc())).all()
    low_stock = sorted(
        (p for p in products if p.qty <= p.reorder_level),
        key=lambda p: Decimal(p.qty) / Decimal(p.reorder_level or 1),
    )

    return DashboardOut(
        today=_kpi(db, *resolve_period("today", now)),
        month=_kpi(db, *resolve_period("month", now)),
        recent_sales=[
            RecentSaleOut(
                id=s.id,
                date=s.date,
                product_name=product_ref(refs, s.product_id).name,
                qty=s.qty,
                revenue=s.revenue,
                created_by=s.created_by,
            )
            for s in recent_sales
        ],
        recent_purchases=[
            RecentPurchaseOut(
                id=p.id,
                date=p.date,
                product_name=product_ref(refs, p.product_id).name,
                qty=p.qty,
                total_cost=p.total_cost,
                supplier=p.supplier,
                status=p.status.value,
            )
            for p in recent_purchases
        ],
        low_stock=[ProductOut.model_validate(p) for p in low_stock[: settings.dashboard_low_stock_limit]],
        low_stock_count=len(low_stock),
        total_products=len(products),
    )


def _reconcile(db: Session, product: Product) -> ReconciliationOut:
    purchased = int(
        db.scalar(
            select(func.coalesce(func.sum(Purchase.qty), 0)).where(
                Purchase.product_id == product.id,
                Purchase.status == PurchaseStatus.ACTIVE,
            )
        )
        or 0
    )
    sold = int(
        db.scalar(
            select(func.coalesce(func.sum(Sale.qty), 0)).where(
                Sale.product_id == product.id,
                Sale.voided.is_(False),
            )
        )
        or 0
    )
    moved = int(
        db.scalar(select(func.coalesce(func.sum(StockMovement.qty), 0)).where(StockMovement.product_id == product.id))
        or 0
    )
    ledger_qty = product.opening_qty + purchased - sold + moved
    return ReconciliationOut(
        product_id=product.id,
        sku=product.sku,
        opening_qty=product.opening_qty,
        purchased_qty=purchased,
        sold_qty=sold,
        movement_qty=moved,
        ledger_qty=ledger_qty,
        cached_qty=product.qty,
        drift=product.qty - ledger_qty,
        consistent=product.qty == ledger_qty,
    )


def reconcile_product(db: Session, principal: Principal, product_id: int) -> ReconciliationOut:
    """Compare a product's cached qty with the fold of its ledger history."""
    ensure_permission(principal, "inventory:view")
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return _reconcile(db, product)


def reconcile_all(db: Session, principal: Principal) -> list[ReconciliationOut]:
    ensure_permission(principal, "inventory:view")
    products = db.scalars(select(Product).order_by(Product.id.asc())).all()
    return [_reconcile(db, product) for product in products]
