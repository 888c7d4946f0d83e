from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from cafe_ledger.models import AuditLog, Product
from cafe_ledger.schemas.inventory import PurchaseCreate, SaleCreate
from cafe_ledger.services import products, purchases, reports, sales
from cafe_ledger.services.errors import AlreadyVoidedError, InsufficientStockError, NotFoundError


def _stock(db_session, manager, product, qty, unit_cost, when):
    purchases.create_purchase(
        db_session,
        manager,
        PurchaseCreate(product_id=product.id, qty=qty, unit_cost=Decimal(unit_cost), supplier="Supplier", date=when),
    )


def _sell(db_session, principal, product, qty, price, when, discount="0"):
    return sales.create_sale(
        db_session,
        principal,
        SaleCreate(
            product_id=product.id,
            qty=qty,
            selling_price=Decimal(price),
            discount=Decimal(discount),
            date=when,
        ),
    )


def _qty(db_session, product_id) -> int:
    db_session.expire_all()
    return db_session.get(Product, product_id).qty


def test_sale_freezes_cogs_and_computes_revenue(db_session, manager, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 10, "80", when)

    sale = _sell(db_session, manager, product, 3, "150", when, discount="20")

    assert sale.cogs == Decimal("240")
    assert sale.revenue == Decimal("430")
    assert sale.voided is False
    assert sale.product_sku == "ESP-001"
    assert _qty(db_session, product.id) == 7


def test_cogs_is_not_rewritten_by_later_cost_changes(db_session, manager, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 10, "80", when)
    sale = _sell(db_session, manager, product, 2, "150", when)

    _stock(db_session, manager, product, 10, "120", when + timedelta(days=1))

    listed = sales.list_sales(db_session, manager, product_id=product.id)
    assert [s.cogs for s in listed if s.id == sale.id] == [Decimal("160")]


def test_discount_beyond_gross_gives_negative_revenue(db_session, manager, make_product, when):
    product = make_product(qty=1, unit_cost=Decimal("10"))

    sale = _sell(db_session, manager, product, 1, "5", when, discount="8")

    assert sale.revenue == Decimal("-3")
    assert sale.cogs == Decimal("10")


def test_sale_may_drain_stock_to_exactly_zero(db_session, manager, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 4, "10", when)

    _sell(db_session, manager, product, 4, "20", when)

    assert _qty(db_session, product.id) == 0


def test_oversell_is_rejected_without_side_effects(db_session, manager, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 4, "10", when)

    with pytest.raises(InsufficientStockError) as exc:
        _sell(db_session, manager, product, 5, "20", when)

    assert exc.value.detail == "Insufficient stock. Available: 4 kg"
    assert _qty(db_session, product.id) == 4
    assert sales.list_sales(db_session, manager) == []


def test_sale_qty_must_be_positive(when):
    with pytest.raises(ValidationError):
        SaleCreate(product_id=1, qty=0, selling_price=Decimal("1"), date=when)
    with pytest.raises(ValidationError):
        SaleCreate(product_id=1, qty=1, selling_price=Decimal("1"), discount=Decimal("-1"), date=when)


def test_sale_money_is_limited_to_cents(when):
    assert SaleCreate(product_id=1, qty=1, selling_price=Decimal("2.5"), date=when).selling_price == Decimal("2.5")

    with pytest.raises(ValidationError):
        SaleCreate(product_id=1, qty=1, selling_price=Decimal("1.005"), date=when)
    with pytest.raises(ValidationError):
        SaleCreate(product_id=1, qty=1, selling_price=Decimal("1"), discount=Decimal("0.001"), date=when)


def test_stored_sale_figures_match_their_inputs(db_session, manager, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 10, "0.12", when)

    sale = _sell(db_session, manager, product, 3, "1.15", when, discount="0.05")

    db_session.expire_all()
    stored = sales.list_sales(db_session, manager, product_id=product.id)[0]
    assert stored.id == sale.id
    assert stored.revenue == Decimal("3.40")
    assert stored.revenue == stored.selling_price * stored.qty - stored.discount
    assert stored.cogs == Decimal("0.36")


def test_void_restores_stock_and_keeps_figures(db_session, manager, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 10, "80", when)
    sale = _sell(db_session, manager, product, 3, "150", when)

    voided = sales.void_sale(db_session, manager, sale.id)

    assert voided.voided is True
    assert voided.voided_at is not None
    assert voided.revenue == Decimal("450")
    assert voided.cogs == Decimal("240")
    assert _qty(db_session, product.id) == 10
    assert db_session.query(AuditLog).filter_by(event_type="sales.voided", entity_id=sale.id).count() == 1
    assert reports.reconcile_product(db_session, manager, product.id).consistent


def test_void_twice_is_rejected(db_session, manager, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 10, "80", when)
    sale = _sell(db_session, manager, product, 3, "150", when)
    sales.void_sale(db_session, manager, sale.id)

    with pytest.raises(AlreadyVoidedError):
        sales.void_sale(db_session, manager, sale.id)

    assert _qty(db_session, product.id) == 10


def test_void_unknown_sale_is_not_found(db_session, manager):
    with pytest.raises(NotFoundError):
        sales.void_sale(db_session, manager, 77)


def test_void_after_product_deleted(db_session, manager, admin, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 10, "80", when)
    sale = _sell(db_session, manager, product, 3, "150", when)
    products.delete_product(db_session, admin, product.id)

    voided = sales.void_sale(db_session, manager, sale.id)

    assert voided.voided is True
    assert voided.product_name == "Deleted Product"


def test_list_sales_can_hide_voided(db_session, manager, make_product, when):
    product = make_product()
    _stock(db_session, manager, product, 10, "80", when)
    kept = _sell(db_session, manager, product, 1, "150", when)
    dropped = _sell(db_session, manager, product, 1, "150", when + timedelta(hours=1))
    sales.void_sale(db_session, manager, dropped.id)

    assert {s.id for s in sales.list_sales(db_session, manager)} == {kept.id, dropped.id}
    assert [s.id for s in sales.list_sales(db_session, manager, include_voided=False)] == [kept.id]
