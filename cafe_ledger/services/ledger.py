"""Primitives shared by every stock-changing operation.

All quantity writes go through :func:`lock_product` and, for non-trade changes,
:func:`append_movement`, so a product's cached ``qty`` stays a fold of its
ledger rows.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from cafe_ledger.models.inventory import MovementType, Product, StockMovement
from cafe_ledger.services.access import Principal
from cafe_ledger.services.errors import NotFoundError

logger = logging.getLogger(__name__)

DELETED_PRODUCT_NAME = "Deleted Product"
DELETED_PRODUCT_SKU = "—"


@dataclass(frozen=True)
class ProductRef:
    name: str
    sku: str
    exists: bool = True


DELETED_PRODUCT = ProductRef(name=DELETED_PRODUCT_NAME, sku=DELETED_PRODUCT_SKU, exists=False)


def lock_product(db: Session, product_id: int) -> Product:
    product = db.scalar(select(Product).where(Product.id == product_id).with_for_update())
    if not product:
        raise NotFoundError("Product not found")
    return product


def find_locked_product(db: Session, product_id: int) -> Product | None:
    return db.scalar(select(Product).where(Product.id == product_id).with_for_update())


def set_product_qty(product: Product, qty: int) -> None:
    product.qty = qty
    product.updated_at = datetime.utcnow()


def append_movement(
    db: Session,
    principal: Principal,
    product: Product,
    *,
    movement_type: MovementType,
    delta: int,
    reason: str | None,
    date: datetime | None = None,
) -> StockMovement:
    movement = StockMovement(
        product_id=product.id,
        type=movement_type,
        qty=delta,
        reason=reason,
        date=date or datetime.utcnow(),
        created_by=principal.email,
    )
    db.add(movement)
    return movement


def resolve_product_refs(db: Session, product_ids: Iterable[int]) -> dict[int, ProductRef]:
    ids = set(product_ids)
    if not ids:
        return {}
    rows = db.execute(select(Product.id, Product.name, Product.sku).where(Product.id.in_(ids))).all()
    return {int(row[0]): ProductRef(name=row[1], sku=row[2]) for row in rows}


def product_ref(refs: dict[int, ProductRef], product_id: int) -> ProductRef:
    return refs.get(product_id, DELETED_PRODUCT)
