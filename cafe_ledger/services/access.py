import json
from dataclasses import dataclass

from sqlalchemy.orm import Session

from cafe_ledger.models.security import AuditLog
from cafe_ledger.models.user import User, UserRole
from cafe_ledger.services.errors import AuthorizationError

ROLE_PERMISSIONS: dict[UserRole, set[str]] = {
    UserRole.ADMIN: {
        "inventory:view",
        "inventory:manage",
        "products:delete",
        "settings:manage",
        "users:manage",
    },
    UserRole.MANAGER: {"inventory:view", "inventory:manage"},
    UserRole.VIEWER: {"inventory:view"},
}


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, resolved by the transport layer."""

    id: int
    role: UserRole
    name: str
    email: str

    @classmethod
    def from_user(cls, user: User) -> "Principal":
        return cls(id=user.id, role=user.role, name=user.name, email=user.email)

    def can(self, permission: str) -> bool:
        return permission in ROLE_PERMISSIONS.get(self.role, set())


def ensure_permission(principal: Principal, permission: str) -> None:
    if not principal.can(permission):
        allowed = sorted(role.value for role, perms in ROLE_PERMISSIONS.items() if permission in perms)
        raise AuthorizationError(f"Forbidden: requires one of [{', '.join(allowed)}]")


def log_audit(
    db: Session,
    event_type: str,
    principal: Principal | None,
    *,
    entity_id: int | None = None,
    target_user_id: int | None = None,
    details: dict | None = None,
) -> None:
    db.add(
        AuditLog(
            event_type=event_type,
            actor_user_id=principal.id if principal else None,
            target_user_id=target_user_id,
            entity_id=entity_id,
            details=json.dumps(details or {}, default=str),
        )
    )
