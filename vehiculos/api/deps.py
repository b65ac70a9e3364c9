from collections.abc import Callable

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from vehiculos.core.errors import ApiError, AppHTTPException
from vehiculos.core.security import TokenPayload
from vehiculos.db.session import get_db
from vehiculos.ingestion import coordinator
from vehiculos.ingestion.errors import FeedConfigurationError
from vehiculos.models import User, UserRole
from vehiculos.services.auth import resolve_access_token

bearer_scheme = HTTPBearer(auto_error=False)


def get_access_token(credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)) -> str:
    if credentials is None or not credentials.credentials:
        raise AppHTTPException(
            status_code=401,
            error=ApiError(code="unauthorized", message="Access token required"),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return credentials.credentials


def get_token_context(token: str = Depends(get_access_token), db: Session = Depends(get_db)) -> tuple[User, TokenPayload]:
    return resolve_access_token(db, token)


def get_current_user(context: tuple[User, TokenPayload] = Depends(get_token_context)) -> User:
    return context[0]


def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User | None:
    if credentials is None:
        return None
    try:
        user, _ = resolve_access_token(db, credentials.credentials)
    except AppHTTPException:
        return None
    return user


def require_roles(*roles: UserRole) -> Callable[..., User]:
    allowed = {role.value for role in roles}

    def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            raise AppHTTPException(
                status_code=403,
                error=ApiError(code="forbidden", message="Insufficient permissions", details={"required": sorted(allowed)}),
            )
        return user

    return checker


require_admin = require_roles(UserRole.ADMIN)
require_staff = require_roles(UserRole.ADMIN, UserRole.SALES)


def get_price_processor() -> coordinator.PriceIngestionCoordinator:
    try:
        return coordinator.get_price_processor()
    except FeedConfigurationError as exc:
        raise AppHTTPException(
            status_code=503,
            error=ApiError(code="price_processor_unavailable", message=str(exc)),
        ) from exc
