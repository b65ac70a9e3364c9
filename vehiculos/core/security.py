from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import bcrypt
import jwt

from vehiculos.core.config import get_settings

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ACCESS = "access"
REFRESH = "refresh"


@dataclass(frozen=True)
class TokenPayload:
    user_id: str
    email: str
    role: str
    token_type: str
    expires_at: datetime


def _password_bytes(password: str) -> bytes:
    # bcrypt only considers the first 72 bytes of a password.
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _secret_for(token_type: str) -> str:
    settings = get_settings()
    return settings.jwt_refresh_secret if token_type == REFRESH else settings.jwt_secret


def create_token(user_id: str, email: str, role: str, token_type: str) -> tuple[str, int]:
    settings = get_settings()
    if token_type == REFRESH:
        lifetime = timedelta(days=settings.refresh_token_days)
    else:
        lifetime = timedelta(minutes=settings.access_token_minutes)
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "email": email,
        "role": role,
        "type": token_type,
        "jti": uuid4().hex,
        "iat": now,
        "exp": now + lifetime,
    }
    token = jwt.encode(claims, _secret_for(token_type), algorithm=ALGORITHM)
    return token, int(lifetime.total_seconds())


def decode_token(token: str, token_type: str) -> TokenPayload | None:
    try:
        claims = jwt.decode(token, _secret_for(token_type), algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("Rejected expired %s token", token_type)
        return None
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected invalid %s token: %s", token_type, type(exc).__name__)
        return None
    if claims.get("type") != token_type:
        return None
    return TokenPayload(
        user_id=str(claims["sub"]),
        email=str(claims.get("email", "")),
        role=str(claims.get("role", "")),
        token_type=token_type,
        expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
    )
