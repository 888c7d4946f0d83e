from datetime import timedelta

import pytest
from pydantic import ValidationError

from cafe_ledger.models import MovementType, Product
from cafe_ledger.schemas.inventory import StockMovementCreate
from cafe_ledger.services import reports, stock_movements
from cafe_ledger.services.errors import AuthorizationError, InsufficientStockError, NotFoundError


def _move(db_session, principal, product_id, movement_type, qty, when, reason=None):
    return stock_movements.create_stock_movement(
        db_session,
        principal,
        StockMovementCreate(product_id=product_id, type=movement_type, qty=qty, reason=reason, date=when),
    )


def test_movement_applies_signed_delta(db_session, manager, make_product, when):
    product = make_product(qty=10)

    waste = _move(db_session, manager, product.id, MovementType.WASTE, -3, when, reason="  Spilled ")
    production = _move(db_session, manager, product.id, MovementType.PRODUCTION, 5, when)

    assert waste.qty == -3
    assert waste.reason == "Spilled"
    assert waste.created_by == manager.email
    assert production.type == MovementType.PRODUCTION
    db_session.expire_all()
    assert db_session.get(Product, product.id).qty == 12
    assert reports.reconcile_product(db_session, manager, product.id).consistent


def test_movement_cannot_push_stock_below_zero(db_session, manager, make_product, when):
    product = make_product(qty=2)

    with pytest.raises(InsufficientStockError) as exc:
        _move(db_session, manager, product.id, MovementType.TRANSFER, -3, when)

    assert exc.value.detail == "Insufficient stock. Available: 2 kg"
    assert stock_movements.list_stock_movements(db_session, manager) == []


def test_movement_qty_must_be_non_zero(when):
    with pytest.raises(ValidationError):
        StockMovementCreate(product_id=1, type=MovementType.ADJUSTMENT, qty=0, date=when)


def test_movement_for_missing_product(db_session, manager, when):
    with pytest.raises(NotFoundError):
        _move(db_session, manager, 404, MovementType.ADJUSTMENT, 1, when)


def test_viewer_cannot_move_stock(db_session, viewer, make_product, when):
    product = make_product(qty=2)

    with pytest.raises(AuthorizationError):
        _move(db_session, viewer, product.id, MovementType.ADJUSTMENT, 1, when)


def test_list_movements_filters(db_session, manager, make_product, when):
    beans = make_product(qty=5)
    milk = make_product(sku="MLK-001", name="Fresh Milk", unit="L", qty=5)
    _move(db_session, manager, beans.id, MovementType.WASTE, -1, when)
    _move(db_session, manager, milk.id, MovementType.TRANSFER, 2, when + timedelta(days=1))

    assert [m.product_id for m in stock_movements.list_stock_movements(db_session, manager)] == [milk.id, beans.id]
    assert [m.product_id for m in stock_movements.list_stock_movements(db_session, manager, product_id=beans.id)] == [
        beans.id
    ]
    later = stock_movements.list_stock_movements(db_session, manager, date_from=when + timedelta(hours=1))
    assert [m.product_id for m in later] == [milk.id]
