import secrets

from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.orm import Session

from cafe_ledger.core.config import settings
from cafe_ledger.core.security import decode_token
from cafe_ledger.db.database import get_db
from cafe_ledger.models.user import User
from cafe_ledger.services.access import Principal
from cafe_ledger.services.users import get_user_by_external_id

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=settings.token_url, auto_error=False)


def _clean_candidate(value: str | None) -> str | None:
    if not value:
        return None
    cleaned = value.strip().strip("\"'").strip()
    while cleaned.lower().startswith("bearer "):
        cleaned = cleaned[7:].strip().strip("\"'").strip()
    return cleaned or None


def get_token_claims(request: Request, token: str | None = Depends(oauth2_scheme)) -> dict:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    raw_token = _clean_candidate(token) or _clean_candidate(request.cookies.get("access_token"))
    if not raw_token:
        raise credentials_exception
    try:
        payload = decode_token(raw_token)
    except JWTError as exc:
        raise credentials_exception from exc
    if payload.get("type") != "access" or not payload.get("sub"):
        raise credentials_exception
    return payload


def get_current_user(
    claims: dict = Depends(get_token_claims),
    db: Session = Depends(get_db),
) -> User:
    user = get_user_by_external_id(db, str(claims["sub"]))
    if not user:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not provisioned")
    return user


def get_principal(current_user: User = Depends(get_current_user)) -> Principal:
    return Principal.from_user(current_user)


def require_bootstrap_token(x_bootstrap_token: str | None = Header(default=None)) -> None:
    """Gate first-admin bootstrap behind the operator's BOOTSTRAP_TOKEN."""
    if not settings.bootstrap_token:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin bootstrap is disabled")
    if not secrets.compare_digest(x_bootstrap_token or "", settings.bootstrap_token):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid bootstrap token")
