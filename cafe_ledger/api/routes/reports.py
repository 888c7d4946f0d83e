from datetime import datetime

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from cafe_ledger.api.deps import get_principal
from cafe_ledger.db.database import get_db
from cafe_ledger.schemas.reports import (
    DashboardOut,
    PLDataOut,
    PLReportOut,
    ReconciliationOut,
    ReportPeriod,
    StockSummaryItemOut,
)
from cafe_ledger.services import reports
from cafe_ledger.services.access import Principal

router = APIRouter(prefix="/reports", tags=["Reports"])


def _resolve_window(
    period: ReportPeriod | None,
    date_from: datetime | None,
    date_to: datetime | None,
) -> tuple[datetime, datetime]:
    if period is None and date_from is not None and date_to is not None:
        return date_from, date_to
    return reports.resolve_period(period or "custom", datetime.utcnow(), date_from, date_to)


@router.get("/stock-summary", response_model=list[StockSummaryItemOut])
def stock_summary(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return reports.get_stock_summary(db, principal, date_from, date_to)


@router.get("/pl-data", response_model=PLDataOut)
def pl_data(
    period: ReportPeriod | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    start, end = _resolve_window(period, date_from, date_to)
    return reports.get_pl_data(db, principal, start, end)


@router.get("/pl", response_model=PLReportOut)
def pl_report(
    period: ReportPeriod | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    start, end = _resolve_window(period, date_from, date_to)
    return reports.get_pl_report(db, principal, start, end)


@router.get("/pl/export/csv")
def export_pl_csv(
    period: ReportPeriod | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    start, end = _resolve_window(period, date_from, date_to)
    now = datetime.utcnow()
    content = reports.export_pl_csv(reports.get_pl_report(db, principal, start, end), generated_at=now)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="pl-report-{now:%Y-%m-%d}.csv"'},
    )


@router.get("/dashboard", response_model=DashboardOut)
def dashboard(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return reports.get_dashboard_data(db, principal, datetime.utcnow())


@router.get("/reconciliation", response_model=list[ReconciliationOut])
def reconciliation(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return reports.reconcile_all(db, principal)


@router.get("/reconciliation/{product_id}", response_model=ReconciliationOut)
def reconcile_product(
    product_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return reports.reconcile_product(db, principal, product_id)
