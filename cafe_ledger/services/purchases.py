import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from cafe_ledger.models.inventory import Purchase, PurchaseStatus
from cafe_ledger.schemas.inventory import PurchaseCreate, PurchaseOut
from cafe_ledger.services.access import Principal, ensure_permission, log_audit
from cafe_ledger.services.errors import AlreadyCancelledError, NotFoundError
from cafe_ledger.services.ledger import (
    ProductRef,
    find_locked_product,
    lock_product,
    product_ref,
    resolve_product_refs,
    set_product_qty,
)

logger = logging.getLogger(__name__)


def _to_out(purchase: Purchase, refs: dict[int, ProductRef]) -> PurchaseOut:
    out = PurchaseOut.model_validate(purchase)
    ref = product_ref(refs, purchase.product_id)
    out.product_name = ref.name
    out.product_sku = ref.sku
    return out


def latest_active_purchase(db: Session, product_id: int, *, exclude_id: int | None = None) -> Purchase | None:
    """Most recent active purchase by date; equal dates fall back to the later insert."""
    query = select(Purchase).where(
        Purchase.product_id == product_id,
        Purchase.status == PurchaseStatus.ACTIVE,
    )
    if exclude_id is not None:
        query = query.where(Purchase.id != exclude_id)
    return db.scalar(query.order_by(Purchase.date.desc(), Purchase.id.desc()).limit(1))


def list_purchases(
    db: Session,
    principal: Principal,
    *,
    product_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
) -> list[PurchaseOut]:
    ensure_permission(principal, "inventory:view")
    query = select(Purchase).order_by(Purchase.date.desc(), Purchase.id.desc())
    if product_id is not None:
        query = query.where(Purchase.product_id == product_id)
    if date_from is not None:
        query = query.where(Purchase.date >= date_from)
    if date_to is not None:
        query = query.where(Purchase.date <= date_to)
    purchases = list(db.scalars(query).all())
    refs = resolve_product_refs(db, (p.product_id for p in purchases))
    return [_to_out(p, refs) for p in purchases]


def create_purchase(db: Session, principal: Principal, payload: PurchaseCreate) -> PurchaseOut:
    ensure_permission(principal, "inventory:manage")
    product = lock_product(db, payload.product_id)

    purchase = Purchase(
        product_id=product.id,
        qty=payload.qty,
        unit_cost=payload.unit_cost,
        total_cost=payload.total_cost,
        supplier=payload.supplier.strip(),
        invoice_no=payload.invoice_no.strip() if payload.invoice_no else None,
        payment_method=payload.payment_method,
        date=payload.date,
        status=PurchaseStatus.ACTIVE,
        created_by=principal.name,
    )
    db.add(purchase)

    # Last-in cost: the newest purchase sets the cost basis for future sales.
    product.unit_cost = payload.unit_cost
    set_product_qty(product, product.qty + payload.qty)
    db.commit()
    db.refresh(purchase)
    logger.info(
        "purchase created id=%s product=%s qty=%s unit_cost=%s product_qty=%s",
        purchase.id,
        product.id,
        purchase.qty,
        purchase.unit_cost,
        product.qty,
    )
    return _to_out(purchase, {product.id: ProductRef(name=product.name, sku=product.sku)})


def cancel_purchase(db: Session, principal: Principal, purchase_id: int) -> PurchaseOut:
    ensure_permission(principal, "inventory:manage")
    purchase = db.scalar(select(Purchase).where(Purchase.id == purchase_id).with_for_update())
    if not purchase:
        raise NotFoundError("Purchase not found")
    if purchase.status == PurchaseStatus.CANCELLED:
        raise AlreadyCancelledError()

    product = find_locked_product(db, purchase.product_id)
    if product:
        remaining = product.qty - purchase.qty
        if remaining < 0:
            logger.warning(
                "purchase cancel floored product=%s qty=%s purchase_qty=%s",
                product.id,
                product.qty,
                purchase.qty,
            )
            remaining = 0
        set_product_qty(product, remaining)

        previous = latest_active_purchase(db, product.id, exclude_id=purchase.id)
        if previous is not None:
            product.unit_cost = previous.unit_cost
    else:
        logger.warning("purchase cancel skipped stock update, product %s deleted", purchase.product_id)

    purchase.status = PurchaseStatus.CANCELLED
    purchase.cancelled_at = datetime.utcnow()
    log_audit(
        db,
        "purchases.cancelled",
        principal,
        entity_id=purchase.id,
        details={"product_id": purchase.product_id, "qty": purchase.qty, "unit_cost": purchase.unit_cost},
    )
    db.commit()
    db.refresh(purchase)
    refs = resolve_product_refs(db, [purchase.product_id])
    logger.info("purchase cancelled id=%s product=%s", purchase.id, purchase.product_id)
    return _to_out(purchase, refs)
