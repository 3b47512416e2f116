import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.errors import AuthError, AuthErrorCode
from app.models.user import User


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email).first()


def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
    try:
        key = uuid.UUID(str(user_id))
    except ValueError:
        return None
    return db.query(User).filter(User.id == key).first()


def create_user(db: Session, full_name: str, email: str, password_hash: str) -> User:
    """
    Persist a new unverified user.

    The unique index on ``users.email`` is what guarantees one user per
    email; the lookup beforehand only gives a clean error in the common
    case. A concurrent insert that loses the race surfaces as an
    IntegrityError and gets the same error.

    Raises:
        AuthError(DUPLICATE_EMAIL) if the email is taken
    """
    if get_user_by_email(db, email):
        raise AuthError(
            error_code=AuthErrorCode.DUPLICATE_EMAIL,
            description="User already exists",
        )

    user = User(
        full_name=full_name,
        email=email,
        password_hash=password_hash,
        verified=False,
    )

    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise AuthError(
            error_code=AuthErrorCode.DUPLICATE_EMAIL,
            description="User already exists",
        )
    db.refresh(user)

    return user


def mark_verified(db: Session, user: User) -> User:
    """Flip the verified flag; a no-op for users that are already verified."""
    if not user.verified:
        user.verified = True
        db.commit()
        db.refresh(user)
    return user
