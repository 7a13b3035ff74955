"""
Authentication routes (login, logout)
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.deps import ApiModel, get_db
from app.auth import authenticate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


class LoginRequest(ApiModel):
    email: str
    password: str


class LoginResponse(ApiModel):
    user_id: int
    email: str


@router.post("/login", response_model=LoginResponse)
def login(request: Request, req: LoginRequest, db: Session = Depends(get_db)):
    """
    Вход по email и паролю: user_id сохраняется в session
    """
    user = authenticate(db, req.email.strip().lower(), req.password)
    if user is None:
        logger.info("Failed login for %s", req.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный email или пароль"
        )

    request.session["user_id"] = user.id
    return LoginResponse(user_id=user.id, email=user.email)


@router.post("/logout")
def logout(request: Request):
    """
    Выход из системы
    """
    request.session.clear()
    return {"status": "ok"}
