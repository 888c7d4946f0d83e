import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cafe_ledger.models.inventory import AppSettings
from cafe_ledger.schemas.inventory import SettingsOut, SettingsUpdate
from cafe_ledger.services.access import Principal, ensure_permission, log_audit

logger = logging.getLogger(__name__)

DEFAULT_TAX_RATE = Decimal("0")


def _load(db: Session) -> AppSettings | None:
    return db.scalar(select(AppSettings).order_by(AppSettings.id.asc()).limit(1))


def _to_out(record: AppSettings | None) -> SettingsOut:
    if record is None:
        return SettingsOut(tax_rate=DEFAULT_TAX_RATE, expense_categories=[], persisted=False)
    return SettingsOut(
        tax_rate=Decimal(record.tax_rate),
        expense_categories=list(record.expense_categories or []),
        persisted=True,
    )


def get_settings(db: Session) -> SettingsOut:
    """Read the singleton; falls back to defaults when nothing was saved yet."""
    return _to_out(_load(db))


def get_tax_rate(db: Session) -> Decimal:
    return get_settings(db).tax_rate


def upsert_settings(db: Session, principal: Principal, payload: SettingsUpdate) -> SettingsOut:
    ensure_permission(principal, "settings:manage")
    record = _load(db)
    if record is None:
        record = AppSettings(
            tax_rate=payload.tax_rate if payload.tax_rate is not None else DEFAULT_TAX_RATE,
            expense_categories=payload.expense_categories if payload.expense_categories is not None else [],
        )
        db.add(record)
    else:
        if payload.tax_rate is not None:
            record.tax_rate = payload.tax_rate
        if payload.expense_categories is not None:
            record.expense_categories = list(payload.expense_categories)

    log_audit(db, "settings.updated", principal, details=payload.model_dump(exclude_none=True))
    db.commit()
    db.refresh(record)
    logger.info("settings saved tax_rate=%s categories=%s", record.tax_rate, len(record.expense_categories))
    return _to_out(record)
