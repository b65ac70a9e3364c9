from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from vehiculos.core import metrics
from vehiculos.core.cache import cache_client
from vehiculos.core.errors import ApiError, AppHTTPException, conflict
from vehiculos.core.security import ACCESS, REFRESH, TokenPayload, create_token, decode_token, hash_password, verify_password
from vehiculos.models import User
from vehiculos.schemas.auth import AuthOut, LoginRequest, ProfileUpdate, RegisterRequest, TokensOut, UserOut

logger = logging.getLogger(__name__)


def _refresh_key(user_id: str) -> str:
    return f"refresh_token:{user_id}"


def _revoked_key(token: str) -> str:
    digest = hashlib.sha256(token.encode("utf-8")).hexdigest()
    return f"blacklist:access:{digest}"


def _unauthorized(message: str) -> AppHTTPException:
    return AppHTTPException(
        status_code=401,
        error=ApiError(code="unauthorized", message=message),
        headers={"WWW-Authenticate": "Bearer"},
    )


def find_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email.strip().lower())).scalar_one_or_none()


def issue_tokens(user: User) -> TokensOut:
    access_token, expires_in = create_token(user.id, user.email, user.role, ACCESS)
    refresh_token, refresh_ttl = create_token(user.id, user.email, user.role, REFRESH)
    cache_client.set(_refresh_key(user.id), refresh_token, refresh_ttl)
    return TokensOut(access_token=access_token, refresh_token=refresh_token, expires_in=expires_in)


def register_user(db: Session, payload: RegisterRequest) -> AuthOut:
    email = payload.email.strip().lower()
    if find_user_by_email(db, email):
        raise conflict("email_taken", "User with this email already exists")

    user = User(
        email=email,
        password_hash=hash_password(payload.password),
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        role=payload.role.value,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    metrics.USERS_CREATED.inc()
    logger.info("User %s registered with role %s", user.id, user.role)
    return AuthOut(user=UserOut.model_validate(user), tokens=issue_tokens(user))


def authenticate(db: Session, payload: LoginRequest) -> AuthOut:
    user = find_user_by_email(db, payload.email)
    if user is None or not user.is_active or not verify_password(payload.password, user.password_hash):
        logger.info("Failed login attempt")
        raise _unauthorized("Invalid credentials")
    logger.info("User %s logged in", user.id)
    return AuthOut(user=UserOut.model_validate(user), tokens=issue_tokens(user))


def refresh_tokens(db: Session, refresh_token: str) -> TokensOut:
    payload = decode_token(refresh_token, REFRESH)
    if payload is None or cache_client.get(_refresh_key(payload.user_id)) != refresh_token:
        raise _unauthorized("Invalid or expired refresh token")
    user = db.get(User, payload.user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    revoke_refresh_token(user.id)
    return issue_tokens(user)


def revoke_access_token(token: str, payload: TokenPayload) -> None:
    remaining = int((payload.expires_at - datetime.now(timezone.utc)).total_seconds())
    if remaining > 0:
        cache_client.set(_revoked_key(token), "revoked", remaining)


def revoke_refresh_token(user_id: str) -> None:
    cache_client.delete(_refresh_key(user_id))


def is_access_token_revoked(token: str) -> bool:
    return cache_client.exists(_revoked_key(token))


def resolve_access_token(db: Session, token: str) -> tuple[User, TokenPayload]:
    payload = decode_token(token, ACCESS)
    if payload is None or is_access_token_revoked(token):
        raise _unauthorized("Invalid or expired token")
    user = db.get(User, payload.user_id)
    if user is None or not user.is_active:
        raise _unauthorized("User not found or inactive")
    return user, payload


def logout(token: str, payload: TokenPayload) -> None:
    revoke_access_token(token, payload)
    revoke_refresh_token(payload.user_id)
    logger.info("User %s logged out", payload.user_id)


def update_profile(db: Session, user: User, payload: ProfileUpdate) -> User:
    if payload.email is not None:
        email = payload.email.strip().lower()
        existing = find_user_by_email(db, email)
        if existing is not None and existing.id != user.id:
            raise conflict("email_taken", "User with this email already exists")
        user.email = email
    if payload.first_name is not None:
        user.first_name = payload.first_name.strip()
    if payload.last_name is not None:
        user.last_name = payload.last_name.strip()
    db.commit()
    db.refresh(user)
    return user

