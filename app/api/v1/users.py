"""
User profile API endpoints
"""
from datetime import date as date_type, datetime

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import ApiModel, authorize_user, get_current_user_id, get_db
from app.application.users import CreateProfileUseCase, ProfileDraft, UpdateProfileUseCase, require_user
from app.infrastructure.db.models import User


router = APIRouter(prefix="/api/v1", tags=["users"])


class ProfileCreateRequest(ApiModel):
    email: str
    password: str | None = None
    name: str
    surname: str
    birthday: date_type | None = None
    photo_url: str | None = None


class ProfileUpdateRequest(ApiModel):
    name: str | None = None
    surname: str | None = None
    birthday: date_type | None = None
    photo_url: str | None = None


class ProfileResponse(ApiModel):
    id: int
    email: str
    name: str
    surname: str
    birthday: date_type | None
    photo_url: str | None
    is_premium: bool
    created_at: datetime | None


def _to_response(user: User) -> ProfileResponse:
    return ProfileResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        surname=user.surname,
        birthday=user.birthday,
        photo_url=user.photo_url,
        is_premium=user.is_premium,
        created_at=user.created_at,
    )


@router.post("/users/profile", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
def create_profile(req: ProfileCreateRequest, db: Session = Depends(get_db)):
    """Регистрация (email уже занят -> 400)"""
    user = CreateProfileUseCase(db).execute(ProfileDraft(
        email=req.email,
        password=req.password,
        name=req.name,
        surname=req.surname,
        birthday=req.birthday,
        photo_url=req.photo_url,
    ))
    return _to_response(user)


@router.get("/users/profile/{user_id}", response_model=ProfileResponse)
def get_profile(user_id: int = Depends(authorize_user), db: Session = Depends(get_db)):
    return _to_response(require_user(db, user_id))


@router.put("/users/profile/{user_id}", response_model=ProfileResponse)
def update_profile(
    req: ProfileUpdateRequest,
    user_id: int = Depends(authorize_user),
    db: Session = Depends(get_db),
):
    user = UpdateProfileUseCase(db).execute(user_id, req.model_dump(exclude_unset=True))
    return _to_response(user)


@router.get("/user/me", response_model=ProfileResponse)
def current_user(user_id: int = Depends(get_current_user_id), db: Session = Depends(get_db)):
    """Профиль залогиненного пользователя"""
    return _to_response(require_user(db, user_id))
