import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cafe_ledger.models.inventory import MovementType, Product
from cafe_ledger.schemas.inventory import (
    UNCATEGORIZED,
    BulkProductRow,
    BulkUpsertResult,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    StockAdjustRequest,
)
from cafe_ledger.services.access import Principal, ensure_permission, log_audit
from cafe_ledger.services.errors import DuplicateSkuError, NegativeQuantityError, NotFoundError
from cafe_ledger.services.ledger import append_movement, lock_product, set_product_qty

logger = logging.getLogger(__name__)


def _find_by_sku(db: Session, sku: str) -> Product | None:
    return db.scalar(select(Product).where(Product.sku == sku))


def _commit_product(db: Session, sku: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateSkuError(sku) from exc


def _flush_product(db: Session, sku: str) -> None:
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateSkuError(sku) from exc


def list_products(db: Session, principal: Principal) -> list[Product]:
    ensure_permission(principal, "inventory:view")
    return list(db.scalars(select(Product).order_by(Product.name.asc(), Product.id.asc())).all())


def get_product(db: Session, principal: Principal, product_id: int) -> Product:
    ensure_permission(principal, "inventory:view")
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def create_product(db: Session, principal: Principal, payload: ProductCreate) -> Product:
    ensure_permission(principal, "inventory:manage")
    if _find_by_sku(db, payload.sku):
        raise DuplicateSkuError(payload.sku)

    product = Product(
        sku=payload.sku,
        name=payload.name,
        category=payload.category.strip() or UNCATEGORIZED,
        unit=payload.unit,
        unit_cost=payload.unit_cost,
        selling_price=payload.selling_price,
        qty=payload.qty,
        opening_qty=payload.qty,
        reorder_level=payload.reorder_level,
        updated_at=datetime.utcnow(),
    )
    db.add(product)
    _commit_product(db, payload.sku)
    db.refresh(product)
    logger.info("product created id=%s sku=%s qty=%s", product.id, product.sku, product.qty)
    return product


def update_product(db: Session, principal: Principal, product_id: int, payload: ProductUpdate) -> Product:
    ensure_permission(principal, "inventory:manage")
    product = lock_product(db, product_id)
    clash = _find_by_sku(db, payload.sku)
    if clash and clash.id != product.id:
        raise DuplicateSkuError(payload.sku)

    delta = payload.qty - product.qty
    if delta != 0:
        append_movement(
            db,
            principal,
            product,
            movement_type=MovementType.ADJUSTMENT,
            delta=delta,
            reason="Product edit",
        )

    product.sku = payload.sku
    product.name = payload.name
    product.category = payload.category.strip() or UNCATEGORIZED
    product.unit = payload.unit
    product.unit_cost = payload.unit_cost
    product.selling_price = payload.selling_price
    product.reorder_level = payload.reorder_level
    set_product_qty(product, payload.qty)
    _commit_product(db, payload.sku)
    db.refresh(product)
    logger.info("product updated id=%s sku=%s qty=%s", product.id, product.sku, product.qty)
    return product


def delete_product(db: Session, principal: Principal, product_id: int) -> ProductOut:
    ensure_permission(principal, "products:delete")
    product = db.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    result = ProductOut.model_validate(product)
    log_audit(
        db,
        "products.deleted",
        principal,
        entity_id=product.id,
        details={"sku": product.sku, "name": product.name, "qty": product.qty},
    )
    db.delete(product)
    db.commit()
    logger.info("product deleted id=%s sku=%s", product_id, result.sku)
    return result


def adjust_stock(db: Session, principal: Principal, product_id: int, payload: StockAdjustRequest) -> Product:
    """Set an absolute quantity, logging the difference as a movement."""
    ensure_permission(principal, "inventory:manage")
    if payload.qty < 0:
        raise NegativeQuantityError()
    product = lock_product(db, product_id)

    delta = payload.qty - product.qty
    if delta != 0:
        append_movement(
            db,
            principal,
            product,
            movement_type=payload.type,
            delta=delta,
            reason=payload.reason,
            date=payload.date,
        )
    set_product_qty(product, payload.qty)
    db.commit()
    db.refresh(product)
    logger.info("stock adjusted product=%s delta=%s qty=%s", product.id, delta, product.qty)
    return product


def bulk_upsert_products(db: Session, principal: Principal, rows: list[BulkProductRow]) -> BulkUpsertResult:
    """Upsert by SKU in row order. Existing rows keep their unit cost."""
    ensure_permission(principal, "inventory:manage")
    created = 0
    updated = 0
    for row in rows:
        sku = row.sku.strip()
        existing = db.scalar(select(Product).where(Product.sku == sku).with_for_update())
        if existing:
            delta = row.qty - existing.qty
            if delta != 0:
                append_movement(
                    db,
                    principal,
                    existing,
                    movement_type=MovementType.ADJUSTMENT,
                    delta=delta,
                    reason="Bulk import",
                )
            existing.name = row.name.strip()
            existing.unit = row.unit.strip()
            if row.category:
                existing.category = row.category.strip()
            if row.reorder_level is not None:
                existing.reorder_level = row.reorder_level
            set_product_qty(existing, row.qty)
            updated += 1
        else:
            db.add(
                Product(
                    sku=sku,
                    name=row.name.strip(),
                    unit=row.unit.strip(),
                    qty=row.qty,
                    opening_qty=row.qty,
                    category=(row.category or "").strip() or UNCATEGORIZED,
                    reorder_level=row.reorder_level if row.reorder_level is not None else 0,
                    unit_cost=0,
                    updated_at=datetime.utcnow(),
                )
            )
            created += 1
        _flush_product(db, sku)
    db.commit()
    logger.info("bulk upsert created=%s updated=%s", created, updated)
    return BulkUpsertResult(created=created, updated=updated)
