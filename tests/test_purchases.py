from datetime import timedelta
from decimal import Decimal

import pytest
from pydantic import ValidationError

from cafe_ledger.models import AuditLog, Product, PurchaseStatus
from cafe_ledger.schemas.inventory import PurchaseCreate, SaleCreate
from cafe_ledger.services import products, purchases, reports, sales
from cafe_ledger.services.errors import AlreadyCancelledError, AuthorizationError, NotFoundError


def _buy(db_session, principal, product, qty, unit_cost, date, supplier="Kopi Nusantara"):
    return purchases.create_purchase(
        db_session,
        principal,
        PurchaseCreate(product_id=product.id, qty=qty, unit_cost=Decimal(unit_cost), supplier=supplier, date=date),
    )


def _product(db_session, product_id) -> Product:
    db_session.expire_all()
    return db_session.get(Product, product_id)


def test_purchase_adds_stock_and_sets_last_in_cost(db_session, manager, make_product, when):
    product = make_product()

    first = _buy(db_session, manager, product, 10, "80", when)
    second = _buy(db_session, manager, product, 5, "95", when + timedelta(days=1))

    assert first.total_cost == Decimal("800")
    assert second.status == PurchaseStatus.ACTIVE
    assert second.product_name == "Espresso Beans"
    assert second.created_by == manager.name
    refreshed = _product(db_session, product.id)
    assert refreshed.qty == 15
    assert refreshed.unit_cost == Decimal("95")


def test_purchase_total_cost_must_match(when):
    ok = PurchaseCreate(product_id=1, qty=4, unit_cost=Decimal("2.50"), total_cost=Decimal("10"), supplier="S", date=when)
    assert ok.total_cost == Decimal("10")

    with pytest.raises(ValidationError):
        PurchaseCreate(product_id=1, qty=4, unit_cost=Decimal("2.50"), total_cost=Decimal("11"), supplier="S", date=when)
    with pytest.raises(ValidationError):
        PurchaseCreate(product_id=1, qty=0, unit_cost=Decimal("2.50"), supplier="S", date=when)


def test_purchase_money_is_limited_to_cents(when):
    with pytest.raises(ValidationError):
        PurchaseCreate(product_id=1, qty=3, unit_cost=Decimal("0.125"), supplier="S", date=when)
    with pytest.raises(ValidationError):
        PurchaseCreate(product_id=1, qty=3, unit_cost=Decimal("0.12"), total_cost=Decimal("0.360"), supplier="S", date=when)


def test_stored_purchase_total_matches_qty_times_unit_cost(db_session, manager, make_product, when):
    product = make_product()

    purchase = _buy(db_session, manager, product, 3, "0.12", when)

    db_session.expire_all()
    stored = purchases.list_purchases(db_session, manager, product_id=product.id)[0]
    assert stored.id == purchase.id
    assert stored.unit_cost == Decimal("0.12")
    assert stored.total_cost == Decimal("0.36")
    assert stored.total_cost == stored.unit_cost * stored.qty


def test_purchase_for_missing_product_is_not_found(db_session, manager, when):
    with pytest.raises(NotFoundError):
        purchases.create_purchase(
            db_session,
            manager,
            PurchaseCreate(product_id=42, qty=1, unit_cost=Decimal("1"), supplier="S", date=when),
        )


def test_viewer_cannot_purchase(db_session, viewer, make_product, when):
    product = make_product()

    with pytest.raises(AuthorizationError):
        _buy(db_session, viewer, product, 1, "1", when)


def test_cancel_restores_previous_active_cost(db_session, manager, make_product, when):
    product = make_product()
    _buy(db_session, manager, product, 10, "80", when)
    latest = _buy(db_session, manager, product, 5, "95", when + timedelta(days=1))

    cancelled = purchases.cancel_purchase(db_session, manager, latest.id)

    assert cancelled.status == PurchaseStatus.CANCELLED
    assert cancelled.cancelled_at is not None
    refreshed = _product(db_session, product.id)
    assert refreshed.qty == 10
    assert refreshed.unit_cost == Decimal("80")
    assert db_session.query(AuditLog).filter_by(event_type="purchases.cancelled").count() == 1
    assert reports.reconcile_product(db_session, manager, product.id).consistent


def test_cancel_prefers_latest_date_then_highest_id(db_session, manager, make_product, when):
    product = make_product()
    _buy(db_session, manager, product, 1, "70", when)
    _buy(db_session, manager, product, 1, "75", when)
    newest = _buy(db_session, manager, product, 1, "99", when + timedelta(days=2))

    purchases.cancel_purchase(db_session, manager, newest.id)

    assert _product(db_session, product.id).unit_cost == Decimal("75")


def test_cancel_without_previous_purchase_keeps_cost(db_session, manager, make_product, when):
    product = make_product(unit_cost=Decimal("60"))
    only = _buy(db_session, manager, product, 3, "88", when)

    purchases.cancel_purchase(db_session, manager, only.id)

    refreshed = _product(db_session, product.id)
    assert refreshed.qty == 0
    assert refreshed.unit_cost == Decimal("88")


def test_cancel_twice_is_rejected(db_session, manager, make_product, when):
    product = make_product()
    purchase = _buy(db_session, manager, product, 3, "10", when)
    purchases.cancel_purchase(db_session, manager, purchase.id)

    with pytest.raises(AlreadyCancelledError) as exc:
        purchases.cancel_purchase(db_session, manager, purchase.id)

    assert exc.value.status_code == 409
    assert _product(db_session, product.id).qty == 0


def test_cancel_unknown_purchase_is_not_found(db_session, manager):
    with pytest.raises(NotFoundError):
        purchases.cancel_purchase(db_session, manager, 12345)


def test_cancel_floors_stock_at_zero(db_session, manager, make_product, when):
    product = make_product()
    purchase = _buy(db_session, manager, product, 10, "10", when)
    sales.create_sale(
        db_session,
        manager,
        SaleCreate(product_id=product.id, qty=8, selling_price=Decimal("20"), date=when),
    )

    purchases.cancel_purchase(db_session, manager, purchase.id)

    assert _product(db_session, product.id).qty == 0
    recon = reports.reconcile_product(db_session, manager, product.id)
    assert recon.ledger_qty == -8
    assert recon.drift == 8
    assert not recon.consistent


def test_cancel_after_product_deleted_marks_cancelled(db_session, manager, admin, make_product, when):
    product = make_product()
    purchase = _buy(db_session, manager, product, 3, "10", when)
    products.delete_product(db_session, admin, product.id)

    cancelled = purchases.cancel_purchase(db_session, manager, purchase.id)

    assert cancelled.status == PurchaseStatus.CANCELLED
    assert cancelled.product_name == "Deleted Product"
    assert cancelled.product_sku == "—"


def test_list_purchases_newest_first_with_filters(db_session, manager, make_product, when):
    beans = make_product()
    milk = make_product(sku="MLK-001", name="Fresh Milk", unit="L")
    _buy(db_session, manager, beans, 1, "80", when)
    _buy(db_session, manager, milk, 2, "15", when + timedelta(days=1))

    listed = purchases.list_purchases(db_session, manager)
    assert [p.product_sku for p in listed] == ["MLK-001", "ESP-001"]

    only_beans = purchases.list_purchases(db_session, manager, product_id=beans.id)
    assert [p.product_name for p in only_beans] == ["Espresso Beans"]

    windowed = purchases.list_purchases(db_session, manager, date_from=when + timedelta(hours=1))
    assert [p.product_sku for p in windowed] == ["MLK-001"]
