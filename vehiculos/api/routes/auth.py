from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from vehiculos.api.deps import get_access_token, get_current_user, get_token_context
from vehiculos.core.security import TokenPayload
from vehiculos.db.session import get_db
from vehiculos.models import User
from vehiculos.schemas.auth import (
    AuthOut,
    LoginRequest,
    MessageOut,
    ProfileUpdate,
    RefreshRequest,
    RegisterRequest,
    TokensOut,
    UserOut,
)
from vehiculos.services import auth as auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthOut, status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> AuthOut:
    return auth_service.register_user(db, payload)


@router.post("/login", response_model=AuthOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> AuthOut:
    return auth_service.authenticate(db, payload)


@router.post("/refresh", response_model=TokensOut)
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)) -> TokensOut:
    return auth_service.refresh_tokens(db, payload.refresh_token)


@router.post("/logout", response_model=MessageOut)
def logout(
    token: str = Depends(get_access_token),
    context: tuple[User, TokenPayload] = Depends(get_token_context),
) -> MessageOut:
    auth_service.logout(token, context[1])
    return MessageOut(message="Logged out successfully")


@router.get("/profile", response_model=UserOut)
def profile(user: User = Depends(get_current_user)) -> UserOut:
    return UserOut.model_validate(user)


@router.put("/profile", response_model=UserOut)
def update_profile(payload: ProfileUpdate, user: User = Depends(get_current_user), db: Session = Depends(get_db)) -> UserOut:
    return UserOut.model_validate(auth_service.update_profile(db, user, payload))
