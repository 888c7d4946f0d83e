import pytest

from cafe_ledger.models import AuditLog, UserRole
from cafe_ledger.services import users
from cafe_ledger.services.access import Principal
from cafe_ledger.services.errors import AdminExistsError, AuthorizationError, NotFoundError, OwnRoleChangeError


def test_provision_is_idempotent_and_starts_as_viewer(db_session):
    first = users.provision_user(db_session, external_id="idp|42", name="Putu", email=" Putu@Cafe.Test ")
    again = users.provision_user(db_session, external_id="idp|42", name="Putu", email="putu@cafe.test")

    assert first.id == again.id
    assert first.role == UserRole.VIEWER
    assert first.email == "putu@cafe.test"


def test_bootstrap_admin_only_once(db_session):
    user = users.provision_user(db_session, external_id="idp|1", name="Owner", email="owner@cafe.test")

    promoted = users.bootstrap_admin(db_session, "OWNER@cafe.test")
    assert promoted.id == user.id
    assert promoted.role == UserRole.ADMIN

    with pytest.raises(AdminExistsError):
        users.bootstrap_admin(db_session, "owner@cafe.test")


def test_bootstrap_admin_unknown_email(db_session):
    with pytest.raises(NotFoundError):
        users.bootstrap_admin(db_session, "nobody@cafe.test")


def test_admin_changes_roles_with_audit(db_session, admin, viewer_user):
    changed = users.update_user_role(db_session, admin, viewer_user.id, UserRole.MANAGER)

    assert changed.role == UserRole.MANAGER
    audit = db_session.query(AuditLog).filter_by(event_type="users.role_changed").one()
    assert audit.actor_user_id == admin.id
    assert audit.target_user_id == viewer_user.id


def test_admin_cannot_change_own_role(db_session, admin):
    with pytest.raises(OwnRoleChangeError):
        users.update_user_role(db_session, admin, admin.id, UserRole.VIEWER)


def test_non_admin_cannot_manage_users(db_session, manager, viewer_user):
    with pytest.raises(AuthorizationError):
        users.list_users(db_session, manager)
    with pytest.raises(AuthorizationError):
        users.update_user_role(db_session, manager, viewer_user.id, UserRole.ADMIN)


def test_role_permissions():
    admin = Principal(id=1, role=UserRole.ADMIN, name="A", email="a@x")
    manager = Principal(id=2, role=UserRole.MANAGER, name="M", email="m@x")
    viewer = Principal(id=3, role=UserRole.VIEWER, name="V", email="v@x")

    assert admin.can("products:delete")
    assert admin.can("settings:manage")
    assert manager.can("inventory:manage")
    assert not manager.can("products:delete")
    assert not manager.can("settings:manage")
    assert viewer.can("inventory:view")
    assert not viewer.can("inventory:manage")
