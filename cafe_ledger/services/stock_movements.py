import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from cafe_ledger.models.inventory import StockMovement
from cafe_ledger.schemas.inventory import StockMovementCreate
from cafe_ledger.services.access import Principal, ensure_permission
from cafe_ledger.services.errors import InsufficientStockError
from cafe_ledger.services.ledger import append_movement, lock_product, set_product_qty

logger = logging.getLogger(__name__)


def list_stock_movements(
    db: Session,
    principal: Principal,
    *,
    product_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[StockMovement]:
    ensure_permission(principal, "inventory:view")
    query = select(StockMovement).order_by(StockMovement.date.desc(), StockMovement.id.desc())
    if product_id is not None:
        query = query.where(StockMovement.product_id == product_id)
    if date_from is not None:
        query = query.where(StockMovement.date >= date_from)
    if date_to is not None:
        query = query.where(StockMovement.date <= date_to)
    return list(db.scalars(query).all())


def create_stock_movement(db: Session, principal: Principal, payload: StockMovementCreate) -> StockMovement:
    ensure_permission(principal, "inventory:manage")
    product = lock_product(db, payload.product_id)
    new_qty = product.qty + payload.qty
    if new_qty < 0:
        raise InsufficientStockError(product.qty, product.unit)

    set_product_qty(product, new_qty)
    movement = append_movement(
        db,
        principal,
        product,
        movement_type=payload.type,
        delta=payload.qty,
        reason=payload.reason.strip() if payload.reason else None,
        date=payload.date,
    )
    db.commit()
    db.refresh(movement)
    logger.info(
        "stock movement id=%s product=%s type=%s delta=%s qty=%s",
        movement.id,
        product.id,
        movement.type.value,
        movement.qty,
        product.qty,
    )
    return movement
