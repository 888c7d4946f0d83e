from decimal import Decimal

import pytest
from pydantic import ValidationError

from cafe_ledger.models import AuditLog
from cafe_ledger.schemas.inventory import SettingsUpdate
from cafe_ledger.services import settings_store
from cafe_ledger.services.errors import AuthorizationError


def test_defaults_before_anything_is_saved(db_session):
    current = settings_store.get_settings(db_session)

    assert current.tax_rate == Decimal("0")
    assert current.expense_categories == []
    assert current.persisted is False


def test_upsert_creates_then_patches_singleton(db_session, admin):
    first = settings_store.upsert_settings(
        db_session,
        admin,
        SettingsUpdate(tax_rate=Decimal("11"), expense_categories=["Rent", "  ", " Utilities "]),
    )
    assert first.persisted is True
    assert first.tax_rate == Decimal("11")
    assert first.expense_categories == ["Rent", "Utilities"]

    second = settings_store.upsert_settings(db_session, admin, SettingsUpdate(tax_rate=Decimal("10")))
    assert second.tax_rate == Decimal("10")
    assert second.expense_categories == ["Rent", "Utilities"]
    assert settings_store.get_tax_rate(db_session) == Decimal("10")
    assert db_session.query(AuditLog).filter_by(event_type="settings.updated").count() == 2


def test_only_admin_may_change_settings(db_session, manager):
    with pytest.raises(AuthorizationError) as exc:
        settings_store.upsert_settings(db_session, manager, SettingsUpdate(tax_rate=Decimal("5")))

    assert exc.value.status_code == 403
    assert settings_store.get_settings(db_session).persisted is False


def test_tax_rate_bounds():
    with pytest.raises(ValidationError):
        SettingsUpdate(tax_rate=Decimal("-1"))
    with pytest.raises(ValidationError):
        SettingsUpdate(tax_rate=Decimal("100.5"))


def test_tax_rate_is_limited_to_two_decimals():
    assert SettingsUpdate(tax_rate=Decimal("10.25")).tax_rate == Decimal("10.25")

    with pytest.raises(ValidationError):
        SettingsUpdate(tax_rate=Decimal("10.125"))
