"""
User use cases - профиль пользователя и привязка внешней (OAuth2) учётной записи
"""
import logging
from dataclasses import dataclass
from datetime import date

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.application.errors import BadRequestError, ConflictError, not_found
from app.auth import get_user_by_email, hash_password
from app.infrastructure.db.models import User

logger = logging.getLogger(__name__)


class UserValidationError(BadRequestError):
    """Ошибка валидации профиля"""
    pass


def require_user(db: Session, user_id: int) -> User:
    """
    Загрузить пользователя или бросить NotFoundError
    """
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise not_found("User", user_id)
    return user


@dataclass
class ProfileDraft:
    email: str
    name: str
    surname: str
    password: str | None = None
    birthday: date | None = None
    photo_url: str | None = None


class CreateProfileUseCase:
    """Use case: явная регистрация профиля"""

    def __init__(self, db: Session):
        self.db = db

    def execute(self, draft: ProfileDraft) -> User:
        email = (draft.email or "").strip().lower()
        if not email or "@" not in email:
            raise UserValidationError("Некорректный email")
        if not draft.name or not draft.surname:
            raise UserValidationError("Имя и фамилия обязательны")

        if get_user_by_email(self.db, email) is not None:
            raise ConflictError(f"User with email {email} already exists")

        user = User(
            email=email,
            password_hash=hash_password(draft.password) if draft.password else None,
            name=draft.name,
            surname=draft.surname,
            birthday=draft.birthday,
            photo_url=draft.photo_url,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            # параллельная регистрация с тем же email
            self.db.rollback()
            raise ConflictError(f"User with email {email} already exists") from e

        self.db.refresh(user)
        logger.info("User %s registered (%s)", user.id, email)
        return user


class UpdateProfileUseCase:
    """Use case: обновить профиль (только переданные поля)"""

    UPDATABLE = ("name", "surname", "birthday", "photo_url")

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, changes: dict) -> User:
        user = require_user(self.db, user_id)

        for field_name in self.UPDATABLE:
            if field_name not in changes:
                continue
            value = changes[field_name]
            if field_name in ("name", "surname") and not value:
                raise UserValidationError(f"{field_name} не может быть пустым")
            setattr(user, field_name, value)

        self.db.commit()
        self.db.refresh(user)
        return user


class EnsureOAuthUserUseCase:
    """
    Use case: пользователь при OAuth2-входе

    Ищем по (provider, provider_id), затем по email (привязываем провайдера),
    иначе создаём нового пользователя без пароля.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        provider: str,
        provider_id: str,
        email: str,
        name: str | None = None,
        surname: str | None = None,
        photo_url: str | None = None,
    ) -> User:
        user = self.db.query(User).filter(
            User.provider == provider,
            User.provider_id == provider_id,
        ).first()
        if user is not None:
            return user

        email = email.strip().lower()
        user = get_user_by_email(self.db, email)
        if user is not None:
            user.provider = provider
            user.provider_id = provider_id
            if photo_url and not user.photo_url:
                user.photo_url = photo_url
            self.db.commit()
            logger.info("Linked %s identity to user %s", provider, user.id)
            return user

        user = User(
            email=email,
            name=name or email.split("@")[0],
            surname=surname or "",
            photo_url=photo_url,
            provider=provider,
            provider_id=provider_id,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        logger.info("Created user %s from %s login", user.id, provider)
        return user
