import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from cafe_ledger.models.user import User, UserRole
from cafe_ledger.services.access import Principal, ensure_permission, log_audit
from cafe_ledger.services.errors import AdminExistsError, NotFoundError, OwnRoleChangeError

logger = logging.getLogger(__name__)


def get_user_by_external_id(db: Session, external_id: str) -> User | None:
    return db.scalar(select(User).where(User.external_id == external_id))


def provision_user(db: Session, *, external_id: str, name: str, email: str) -> User:
    """Idempotent: new identities start as viewers."""
    existing = get_user_by_external_id(db, external_id)
    if existing:
        return existing
    user = User(external_id=external_id, name=name, email=email.strip().lower(), role=UserRole.VIEWER)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("user provisioned id=%s email=%s", user.id, user.email)
    return user


def get_my_profile(db: Session, principal: Principal) -> User:
    user = db.get(User, principal.id)
    if not user:
        raise NotFoundError("User not found")
    return user


def list_users(db: Session, principal: Principal) -> list[User]:
    ensure_permission(principal, "users:manage")
    return list(db.scalars(select(User).order_by(User.id.asc())).all())


def update_user_role(db: Session, principal: Principal, user_id: int, role: UserRole) -> User:
    ensure_permission(principal, "users:manage")
    if principal.id == user_id:
        raise OwnRoleChangeError()
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    previous = user.role
    user.role = role
    log_audit(
        db,
        "users.role_changed",
        principal,
        target_user_id=user.id,
        details={"from": previous.value, "to": role.value},
    )
    db.commit()
    db.refresh(user)
    logger.info("user role changed id=%s %s -> %s", user.id, previous.value, role.value)
    return user


def bootstrap_admin(db: Session, email: str) -> User:
    """Promote the first admin. Only allowed while no admin exists."""
    if db.scalar(select(User.id).where(User.role == UserRole.ADMIN).limit(1)) is not None:
        raise AdminExistsError()
    user = db.scalar(select(User).where(User.email == email.strip().lower()))
    if not user:
        raise NotFoundError(f"No user found with email: {email}")

    user.role = UserRole.ADMIN
    log_audit(db, "users.bootstrap_admin", None, target_user_id=user.id, details={"email": user.email})
    db.commit()
    db.refresh(user)
    logger.info("bootstrap admin promoted id=%s", user.id)
    return user
