from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cafe_ledger.api.deps import get_principal, get_token_claims, require_bootstrap_token
from cafe_ledger.db.database import get_db
from cafe_ledger.schemas.user import BootstrapAdminRequest, UserOut, UserRoleUpdate
from cafe_ledger.services import users
from cafe_ledger.services.access import Principal

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("/me/provision", response_model=UserOut)
def provision_me(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    return users.provision_user(
        db,
        external_id=str(claims["sub"]),
        name=str(claims.get("name") or claims.get("email") or claims["sub"]),
        email=str(claims.get("email") or ""),
    )


@router.get("/me", response_model=UserOut)
def get_my_profile(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return users.get_my_profile(db, principal)


@router.get("", response_model=list[UserOut])
def list_users(
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return users.list_users(db, principal)


@router.patch("/{user_id}/role", response_model=UserOut)
def update_user_role(
    user_id: int,
    payload: UserRoleUpdate,
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
):
    return users.update_user_role(db, principal, user_id, payload.role)


@router.post("/bootstrap-admin", response_model=UserOut, dependencies=[Depends(require_bootstrap_token)])
def bootstrap_admin(
    payload: BootstrapAdminRequest,
    _: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
):
    return users.bootstrap_admin(db, payload.email)
