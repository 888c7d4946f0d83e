import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from cafe_ledger.models.inventory import Sale
from cafe_ledger.schemas.inventory import SaleCreate, SaleOut
from cafe_ledger.services.access import Principal, ensure_permission, log_audit
from cafe_ledger.services.errors import AlreadyVoidedError, InsufficientStockError, NotFoundError
from cafe_ledger.services.ledger import (
    ProductRef,
    find_locked_product,
    lock_product,
    product_ref,
    resolve_product_refs,
    set_product_qty,
)

logger = logging.getLogger(__name__)


def to_sale_out(sale: Sale, refs: dict[int, ProductRef]) -> SaleOut:
    out = SaleOut.model_validate(sale)
    ref = product_ref(refs, sale.product_id)
    out.product_name = ref.name
    out.product_sku = ref.sku
    return out


def list_sales(
    db: Session,
    principal: Principal,
    *,
    product_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    include_voided: bool = True,
) -> list[SaleOut]:
    ensure_permission(principal, "inventory:view")
    query = select(Sale).order_by(Sale.date.desc(), Sale.id.desc())
    if product_id is not None:
        query = query.where(Sale.product_id == product_id)
    if date_from is not None:
        query = query.where(Sale.date >= date_from)
    if date_to is not None:
        query = query.where(Sale.date <= date_to)
    if not include_voided:
        query = query.where(Sale.voided.is_(False))
    sales = list(db.scalars(query).all())
    refs = resolve_product_refs(db, (s.product_id for s in sales))
    return [to_sale_out(s, refs) for s in sales]


def create_sale(db: Session, principal: Principal, payload: SaleCreate) -> SaleOut:
    ensure_permission(principal, "inventory:manage")
    product = lock_product(db, payload.product_id)
    if payload.qty > product.qty:
        raise InsufficientStockError(product.qty, product.unit)

    quantity = Decimal(payload.qty)
    # COGS is frozen at the cost basis in effect right now.
    cogs = Decimal(product.unit_cost) * quantity
    revenue = Decimal(payload.selling_price) * quantity - Decimal(payload.discount)

    sale = Sale(
        product_id=product.id,
        qty=payload.qty,
        selling_price=payload.selling_price,
        discount=payload.discount,
        cogs=cogs,
        revenue=revenue,
        date=payload.date,
        voided=False,
        created_by=principal.name,
    )
    db.add(sale)
    set_product_qty(product, product.qty - payload.qty)
    db.commit()
    db.refresh(sale)
    logger.info(
        "sale created id=%s product=%s qty=%s revenue=%s cogs=%s product_qty=%s",
        sale.id,
        product.id,
        sale.qty,
        sale.revenue,
        sale.cogs,
        product.qty,
    )
    return to_sale_out(sale, {product.id: ProductRef(name=product.name, sku=product.sku)})


def void_sale(db: Session, principal: Principal, sale_id: int) -> SaleOut:
    """Void a sale and put its quantity back on the shelf.

    The sale keeps its original COGS and revenue for audit; reports skip it.
    """
    ensure_permission(principal, "inventory:manage")
    sale = db.scalar(select(Sale).where(Sale.id == sale_id).with_for_update())
    if not sale:
        raise NotFoundError("Sale not found")
    if sale.voided:
        raise AlreadyVoidedError()

    sale.voided = True
    sale.voided_at = datetime.utcnow()

    product = find_locked_product(db, sale.product_id)
    if product:
        set_product_qty(product, product.qty + sale.qty)
    else:
        logger.warning("sale void skipped stock restore, product %s deleted", sale.product_id)

    log_audit(
        db,
        "sales.voided",
        principal,
        entity_id=sale.id,
        details={"product_id": sale.product_id, "qty": sale.qty, "revenue": sale.revenue, "cogs": sale.cogs},
    )
    db.commit()
    db.refresh(sale)
    refs = resolve_product_refs(db, [sale.product_id])
    logger.info("sale voided id=%s product=%s", sale.id, sale.product_id)
    return to_sale_out(sale, refs)
