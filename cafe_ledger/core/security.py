from datetime import datetime, timedelta, timezone

from jose import jwt

from cafe_ledger.core.config import settings


def create_access_token(subject: str, *, email: str, name: str) -> str:
    """Mint a token in the identity provider's format. Used by tooling and tests."""
    expires_at = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": subject,
        "email": email,
        "name": name,
        "type": "access",
        "iss": settings.issuer,
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_token(token: str) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm], issuer=settings.issuer)
