import logging
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from cafe_ledger.models.inventory import OperatingExpense, OtherIncome
from cafe_ledger.schemas.inventory import (
    ExpenseCreate,
    ExpenseOut,
    ExpenseUpdate,
    OtherIncomeCreate,
    OtherIncomeOut,
    OtherIncomeUpdate,
)
from cafe_ledger.services.access import Principal, ensure_permission, log_audit
from cafe_ledger.services.errors import NotFoundError

logger = logging.getLogger(__name__)


def list_expenses(
    db: Session,
    principal: Principal,
    *,
    category: str | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[OperatingExpense]:
    ensure_permission(principal, "inventory:view")
    query = select(OperatingExpense).order_by(OperatingExpense.date.desc(), OperatingExpense.id.desc())
    if category is not None and category.strip():
        query = query.where(func.lower(OperatingExpense.category) == category.strip().lower())
    if date_from is not None:
        query = query.where(OperatingExpense.date >= date_from)
    if date_to is not None:
        query = query.where(OperatingExpense.date <= date_to)
    return list(db.scalars(query).all())


def create_expense(db: Session, principal: Principal, payload: ExpenseCreate) -> OperatingExpense:
    ensure_permission(principal, "inventory:manage")
    expense = OperatingExpense(
        category=payload.category.strip(),
        amount=payload.amount,
        description=payload.description.strip(),
        supplier=payload.supplier.strip() if payload.supplier else None,
        payment_method=payload.payment_method,
        date=payload.date,
        created_by=principal.name,
    )
    db.add(expense)
    db.commit()
    db.refresh(expense)
    logger.info("expense created id=%s category=%s amount=%s", expense.id, expense.category, expense.amount)
    return expense


def update_expense(db: Session, principal: Principal, expense_id: int, payload: ExpenseUpdate) -> OperatingExpense:
    ensure_permission(principal, "inventory:manage")
    expense = db.get(OperatingExpense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")

    expense.category = payload.category.strip()
    expense.amount = payload.amount
    expense.description = payload.description.strip()
    expense.supplier = payload.supplier.strip() if payload.supplier else None
    expense.payment_method = payload.payment_method
    expense.date = payload.date
    db.commit()
    db.refresh(expense)
    logger.info("expense updated id=%s", expense.id)
    return expense


def delete_expense(db: Session, principal: Principal, expense_id: int) -> ExpenseOut:
    ensure_permission(principal, "inventory:manage")
    expense = db.get(OperatingExpense, expense_id)
    if not expense:
        raise NotFoundError("Expense not found")

    result = ExpenseOut.model_validate(expense)
    log_audit(
        db,
        "expenses.deleted",
        principal,
        entity_id=expense.id,
        details={"category": expense.category, "amount": expense.amount},
    )
    db.delete(expense)
    db.commit()
    logger.info("expense deleted id=%s", expense_id)
    return result


def list_other_income(
    db: Session,
    principal: Principal,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[OtherIncome]:
    ensure_permission(principal, "inventory:view")
    query = select(OtherIncome).order_by(OtherIncome.date.desc(), OtherIncome.id.desc())
    if date_from is not None:
        query = query.where(OtherIncome.date >= date_from)
    if date_to is not None:
        query = query.where(OtherIncome.date <= date_to)
    return list(db.scalars(query).all())


def create_other_income(db: Session, principal: Principal, payload: OtherIncomeCreate) -> OtherIncome:
    ensure_permission(principal, "inventory:manage")
    income = OtherIncome(
        source=payload.source.strip(),
        amount=payload.amount,
        notes=payload.notes.strip() if payload.notes else None,
        date=payload.date,
        created_by=principal.name,
    )
    db.add(income)
    db.commit()
    db.refresh(income)
    logger.info("other income created id=%s source=%s amount=%s", income.id, income.source, income.amount)
    return income


def update_other_income(
    db: Session,
    principal: Principal,
    income_id: int,
    payload: OtherIncomeUpdate,
) -> OtherIncome:
    ensure_permission(principal, "inventory:manage")
    income = db.get(OtherIncome, income_id)
    if not income:
        raise NotFoundError("Income record not found")

    income.source = payload.source.strip()
    income.amount = payload.amount
    income.notes = payload.notes.strip() if payload.notes else None
    income.date = payload.date
    db.commit()
    db.refresh(income)
    logger.info("other income updated id=%s", income.id)
    return income


def delete_other_income(db: Session, principal: Principal, income_id: int) -> OtherIncomeOut:
    ensure_permission(principal, "inventory:manage")
    income = db.get(OtherIncome, income_id)
    if not income:
        raise NotFoundError("Income record not found")

    result = OtherIncomeOut.model_validate(income)
    log_audit(
        db,
        "other_income.deleted",
        principal,
        entity_id=income.id,
        details={"source": income.source, "amount": income.amount},
    )
    db.delete(income)
    db.commit()
    logger.info("other income deleted id=%s", income_id)
    return result
