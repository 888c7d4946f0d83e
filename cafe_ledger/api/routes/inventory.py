from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from cafe_ledger.api.deps import get_principal
from cafe_ledger.db.database import get_db
from cafe_ledger.schemas.inventory import (
    BulkUpsertRequest,
    BulkUpsertResult,
    ProductCreate,
    ProductOut,
    ProductUpdate,
    PurchaseCreate,
    PurchaseOut,
    SaleCreate,
    SaleOut,
    StockAdjustRequest,
    StockMovementCreate,
    StockMovementOut,
)
from cafe_ledger.services import products, purchases, sales, stock_movements
from cafe_ledger.services.access import Principal

router = APIRouter(prefix="/inventory", tags=["Inventory"])


@router.get("/products", response_model=list[ProductOut])
def list_products(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return products.list_products(db, principal)


@router.get("/products/{product_id}", response_model=ProductOut)
def get_product(
    product_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return products.get_product(db, principal, product_id)


@router.post("/products", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
def create_product(
    payload: ProductCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return products.create_product(db, principal, payload)


@router.put("/products/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    payload: ProductUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return products.update_product(db, principal, product_id, payload)


@router.delete("/products/{product_id}", response_model=ProductOut)
def delete_product(
    product_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return products.delete_product(db, principal, product_id)


@router.post("/products/{product_id}/adjust", response_model=ProductOut)
def adjust_stock(
    product_id: int,
    payload: StockAdjustRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return products.adjust_stock(db, principal, product_id, payload)


@router.post("/products/bulk", response_model=BulkUpsertResult)
def bulk_upsert_products(
    payload: BulkUpsertRequest,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return products.bulk_upsert_products(db, principal, payload.products)


@router.get("/stock-movements", response_model=list[StockMovementOut])
def list_stock_movements(
    product_id: int | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return stock_movements.list_stock_movements(
        db,
        principal,
        product_id=product_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.post("/stock-movements", response_model=StockMovementOut, status_code=status.HTTP_201_CREATED)
def create_stock_movement(
    payload: StockMovementCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return stock_movements.create_stock_movement(db, principal, payload)


@router.get("/purchases", response_model=list[PurchaseOut])
def list_purchases(
    product_id: int | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return purchases.list_purchases(db, principal, product_id=product_id, date_from=date_from, date_to=date_to)


@router.post("/purchases", response_model=PurchaseOut, status_code=status.HTTP_201_CREATED)
def create_purchase(
    payload: PurchaseCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return purchases.create_purchase(db, principal, payload)


@router.post("/purchases/{purchase_id}/cancel", response_model=PurchaseOut)
def cancel_purchase(
    purchase_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return purchases.cancel_purchase(db, principal, purchase_id)


@router.get("/sales", response_model=list[SaleOut])
def list_sales(
    product_id: int | None = None,
    date_from: datetime | None = Query(default=None),
    date_to: datetime | None = Query(default=None),
    include_voided: bool = True,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return sales.list_sales(
        db,
        principal,
        product_id=product_id,
        date_from=date_from,
        date_to=date_to,
        include_voided=include_voided,
    )


@router.post("/sales", response_model=SaleOut, status_code=status.HTTP_201_CREATED)
def create_sale(
    payload: SaleCreate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return sales.create_sale(db, principal, payload)


@router.post("/sales/{sale_id}/void", response_model=SaleOut)
def void_sale(
    sale_id: int,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return sales.void_sale(db, principal, sale_id)
