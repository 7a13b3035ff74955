from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.infrastructure.db.models import User

# pbkdf2_sha256: no native deps
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    # OAuth-only users have no local password
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email).first()


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user
