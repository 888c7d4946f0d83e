from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cafe_ledger.api.deps import get_principal
from cafe_ledger.db.database import get_db
from cafe_ledger.schemas.inventory import (
    ExpenseCreate,
    ExpenseOut,
    ExpenseUpdate,
    OtherIncomeCreate,
    OtherIncomeOut,
    OtherIncomeUpdate,
    SettingsOut,
    SettingsUpdate,
)
from cafe_ledger.services import finance, settings_store
from cafe_ledger.services.access import Principal, ensure_permission

router = APIRouter(tags=["Finance"])


@router.get("/expenses", response_model=list[ExpenseOut])
def list_expenses(
    category: str | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return finance.list_expenses(db, principal, category=category, date_from=date_from, date_to=date_to)


@router.post("/expenses", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
def create_expense(
    payload: ExpenseCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return finance.create_expense(db, principal, payload)


@router.put("/expenses/{expense_id}", response_model=ExpenseOut)
def update_expense(
    expense_id: int,
    payload: ExpenseUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return finance.update_expense(db, principal, expense_id, payload)


@router.delete("/expenses/{expense_id}", response_model=ExpenseOut)
def delete_expense(
    expense_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return finance.delete_expense(db, principal, expense_id)


@router.get("/income", response_model=list[OtherIncomeOut])
def list_other_income(
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return finance.list_other_income(db, principal, date_from=date_from, date_to=date_to)


@router.post("/income", response_model=OtherIncomeOut, status_code=status.HTTP_201_CREATED)
def create_other_income(
    payload: OtherIncomeCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return finance.create_other_income(db, principal, payload)


@router.put("/income/{income_id}", response_model=OtherIncomeOut)
def update_other_income(
    income_id: int,
    payload: OtherIncomeUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return finance.update_other_income(db, principal, income_id, payload)


@router.delete("/income/{income_id}", response_model=OtherIncomeOut)
def delete_other_income(
    income_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return finance.delete_other_income(db, principal, income_id)


@router.get("/settings", response_model=SettingsOut)
def get_settings(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    ensure_permission(principal, "inventory:view")
    return settings_store.get_settings(db)


@router.put("/settings", response_model=SettingsOut)
def upsert_settings(
    payload: SettingsUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return settings_store.upsert_settings(db, principal, payload)
